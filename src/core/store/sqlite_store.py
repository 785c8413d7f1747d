"""
SQLite entry store implementation.

Clean, efficient implementation using aiosqlite.
"""

import asyncio
import json
import re
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.store.base import EntryStore
from src.models.bridge import Directive, PendingBlock
from src.models.entry import AiMetadata, Entry, EntryRole
from src.models.profile import Profile, ProfileRole
from src.models.stream import Stream, StreamMetadata
from src.models.version import EntryVersion
from src.utils.exceptions import (
    ConflictError,
    InvariantError,
    KolamError,
    NotFoundError,
    StoreError,
)
from src.utils.id_generator import generate_entry_id, generate_version_id
from src.utils.logger import get_logger

logger = get_logger(__name__)

_ENTRY_COLUMNS = """
    id, stream_id, sequence_id, role, content, profile_id, version_head, is_staged,
    parent_context_ids, ai_metadata, created_at, updated_at
"""

_VERSION_COLUMNS = "id, entry_id, version_number, content_snapshot, commit_message, committed_at"
_LIKE_SPECIAL = re.compile(r"[\\%_]")


class SQLiteEntryStore(EntryStore):
    """
    SQLite-based store for streams, entries, versions and pending blocks.

    Features:
    - Foreign keys with cascading deletes (stream -> entries -> versions)
    - UNIQUE(entry_id, version_number) guards the version chain
    - UNIQUE(stream_id) on pending blocks: one live export per stream
    - Multi-statement writes run under a lock so coroutines sharing the
      connection never interleave inside a transaction
    """

    def __init__(self, db_path: str = "data/kolam.db"):
        """
        Initialize SQLite entry store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row
            # Enable foreign keys
            await self.connection.execute("PRAGMA foreign_keys = ON")
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS streams (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                tags TEXT DEFAULT '[]',
                color TEXT,
                pinned INTEGER DEFAULT 0,
                next_sequence INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                role TEXT NOT NULL,
                color TEXT,
                initials TEXT,
                bio TEXT,
                is_default INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS entries (
                id TEXT PRIMARY KEY,
                stream_id TEXT NOT NULL,
                sequence_id INTEGER NOT NULL,
                role TEXT CHECK(role IN ('user', 'assistant')) NOT NULL,
                content TEXT NOT NULL,
                profile_id TEXT,
                version_head INTEGER NOT NULL DEFAULT 0,
                is_staged INTEGER DEFAULT 0,
                parent_context_ids TEXT,
                ai_metadata TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (stream_id, sequence_id),
                FOREIGN KEY (stream_id) REFERENCES streams(id) ON DELETE CASCADE,
                FOREIGN KEY (profile_id) REFERENCES profiles(id) ON DELETE SET NULL
            );

            CREATE TABLE IF NOT EXISTS entry_versions (
                id TEXT PRIMARY KEY,
                entry_id TEXT NOT NULL,
                version_number INTEGER NOT NULL,
                content_snapshot TEXT NOT NULL,
                commit_message TEXT,
                committed_at TEXT NOT NULL,
                UNIQUE (entry_id, version_number),
                FOREIGN KEY (entry_id) REFERENCES entries(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS pending_blocks (
                id TEXT PRIMARY KEY,
                stream_id TEXT NOT NULL UNIQUE,
                bridge_key TEXT NOT NULL UNIQUE,
                staged_entry_ids TEXT NOT NULL,
                directive TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (stream_id) REFERENCES streams(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_entries_stream ON entries(stream_id, sequence_id);
            CREATE INDEX IF NOT EXISTS idx_entries_updated ON entries(updated_at);
            CREATE INDEX IF NOT EXISTS idx_versions_entry ON entry_versions(entry_id);
            """
        )

        await self.connection.commit()
        logger.debug(f"SQLite entry store ready at {self.db_path}")

    async def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    # ═══════════════════════════════════════════════════════════
    # STREAM OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_stream(self, stream: Stream) -> Stream:
        """Persist a new stream."""
        await self.connect()

        async with self._write_lock:
            await self._write(
                """
                INSERT INTO streams (id, title, description, tags, color, pinned,
                                     next_sequence, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    stream.id,
                    stream.title,
                    stream.description,
                    json.dumps(stream.tags),
                    stream.color,
                    int(stream.pinned),
                    stream.created_at.isoformat(),
                    stream.updated_at.isoformat(),
                ),
            )

        return stream

    async def get_stream(self, stream_id: str) -> Stream | None:
        """Retrieve a stream by ID."""
        await self.connect()

        cursor = await self.connection.execute("SELECT * FROM streams WHERE id = ?", (stream_id,))
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_stream(row)

    async def list_streams(self) -> list[StreamMetadata]:
        """List all streams with entry counts."""
        await self.connect()

        cursor = await self.connection.execute(
            """
            SELECT s.id, s.title, s.pinned, s.color, s.tags, s.updated_at,
                   COUNT(e.id) AS entry_count
            FROM streams s
            LEFT JOIN entries e ON s.id = e.stream_id
            GROUP BY s.id
            ORDER BY s.pinned DESC, s.updated_at DESC
            """
        )
        rows = await cursor.fetchall()

        return [
            StreamMetadata(
                id=row["id"],
                title=row["title"],
                entry_count=row["entry_count"],
                last_updated=datetime.fromisoformat(row["updated_at"]),
                pinned=bool(row["pinned"]),
                color=row["color"],
                tags=json.loads(row["tags"]) if row["tags"] else [],
            )
            for row in rows
        ]

    async def update_stream(self, stream: Stream) -> None:
        """Overwrite a stream's mutable fields."""
        await self.connect()

        async with self._write_lock:
            cursor = await self._write(
                """
                UPDATE streams
                SET title = ?, description = ?, tags = ?, color = ?, pinned = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    stream.title,
                    stream.description,
                    json.dumps(stream.tags),
                    stream.color,
                    int(stream.pinned),
                    stream.updated_at.isoformat(),
                    stream.id,
                ),
            )

        if cursor.rowcount == 0:
            raise NotFoundError(f"Stream not found: {stream.id}", {"stream_id": stream.id})

    async def delete_stream(self, stream_id: str) -> bool:
        """Delete a stream; entries, versions and pending block cascade."""
        await self.connect()

        async with self._write_lock:
            cursor = await self._write("DELETE FROM streams WHERE id = ?", (stream_id,))

        return cursor.rowcount > 0

    # ═══════════════════════════════════════════════════════════
    # ENTRY OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_entry(
        self,
        stream_id: str,
        role: EntryRole,
        content: dict[str, Any],
        profile_id: str | None = None,
        parent_context_ids: list[str] | None = None,
        ai_metadata: AiMetadata | None = None,
    ) -> Entry:
        """Create an entry at the end of a stream."""
        await self.connect()

        now = datetime.now()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    "UPDATE streams SET next_sequence = next_sequence + 1, updated_at = ? "
                    "WHERE id = ?",
                    (now.isoformat(), stream_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

                cursor = await self.connection.execute(
                    "SELECT next_sequence FROM streams WHERE id = ?", (stream_id,)
                )
                row = await cursor.fetchone()

                entry = Entry(
                    id=generate_entry_id(),
                    stream_id=stream_id,
                    sequence_id=row["next_sequence"],
                    role=role,
                    content=content,
                    profile_id=profile_id,
                    parent_context_ids=parent_context_ids,
                    ai_metadata=ai_metadata,
                    created_at=now,
                    updated_at=now,
                )

                await self.connection.execute(
                    f"INSERT INTO entries ({_ENTRY_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        entry.id,
                        entry.stream_id,
                        entry.sequence_id,
                        entry.role.value,
                        json.dumps(entry.content, ensure_ascii=False),
                        entry.profile_id,
                        entry.version_head,
                        int(entry.is_staged),
                        json.dumps(entry.parent_context_ids)
                        if entry.parent_context_ids is not None
                        else None,
                        entry.ai_metadata.model_dump_json() if entry.ai_metadata else None,
                        entry.created_at.isoformat(),
                        entry.updated_at.isoformat(),
                    ),
                )
                await self.connection.commit()
            except KolamError:
                await self.connection.rollback()
                raise
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(f"Failed to create entry: {e}", {"stream_id": stream_id}) from e

        return entry

    async def get_entry(self, entry_id: str) -> Entry | None:
        """Retrieve an entry by ID."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE id = ?", (entry_id,)
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_entry(row)

    async def list_entries(self, stream_id: str) -> list[Entry]:
        """List a stream's entries ordered by sequence ID."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE stream_id = ? ORDER BY sequence_id ASC",
            (stream_id,),
        )
        rows = await cursor.fetchall()

        return [self._row_to_entry(row) for row in rows]

    async def get_entries(self, entry_ids: list[str]) -> list[Entry]:
        """Retrieve several entries ordered by sequence ID."""
        await self.connect()

        if not entry_ids:
            return []

        placeholders = ",".join("?" * len(entry_ids))
        cursor = await self.connection.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE id IN ({placeholders}) "
            "ORDER BY sequence_id ASC",
            list(entry_ids),
        )
        rows = await cursor.fetchall()

        return [self._row_to_entry(row) for row in rows]

    async def update_entry_content(self, entry_id: str, content: dict[str, Any]) -> Entry:
        """Replace an entry's draft content."""
        await self.connect()

        now = datetime.now().isoformat()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    "UPDATE entries SET content = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(content, ensure_ascii=False), now, entry_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Entry not found: {entry_id}", {"entry_id": entry_id})

                await self.connection.execute(
                    "UPDATE streams SET updated_at = ? "
                    "WHERE id = (SELECT stream_id FROM entries WHERE id = ?)",
                    (now, entry_id),
                )
                await self.connection.commit()
            except KolamError:
                await self.connection.rollback()
                raise
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(f"Failed to update entry: {e}", {"entry_id": entry_id}) from e

        return await self.get_entry(entry_id)

    async def update_entries_profile(
        self, entry_ids: list[str], profile_id: str | None
    ) -> list[str]:
        """Set the profile of several entries."""
        await self.connect()

        if not entry_ids:
            return []

        placeholders = ",".join("?" * len(entry_ids))

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    f"SELECT id FROM entries WHERE id IN ({placeholders})", list(entry_ids)
                )
                existing = {row["id"] for row in await cursor.fetchall()}

                await self.connection.execute(
                    f"UPDATE entries SET profile_id = ?, updated_at = ? WHERE id IN ({placeholders})",
                    [profile_id, datetime.now().isoformat(), *entry_ids],
                )
                await self.connection.commit()
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(f"Failed to update entry profiles: {e}") from e

        return [entry_id for entry_id in entry_ids if entry_id in existing]

    async def set_staged_flags(self, stream_id: str, staged_ids: list[str]) -> None:
        """Mirror the staging selector onto is_staged."""
        await self.connect()

        async with self._write_lock:
            try:
                await self.connection.execute(
                    "UPDATE entries SET is_staged = 0 WHERE stream_id = ?", (stream_id,)
                )
                if staged_ids:
                    placeholders = ",".join("?" * len(staged_ids))
                    await self.connection.execute(
                        f"UPDATE entries SET is_staged = 1 "
                        f"WHERE stream_id = ? AND id IN ({placeholders})",
                        [stream_id, *staged_ids],
                    )
                await self.connection.commit()
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(f"Failed to mirror staging: {e}", {"stream_id": stream_id}) from e

    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry; its versions cascade."""
        await self.connect()

        async with self._write_lock:
            cursor = await self._write("DELETE FROM entries WHERE id = ?", (entry_id,))

        return cursor.rowcount > 0

    async def search_entries(self, query: str, limit: int = 50) -> list[Entry]:
        """
        Substring search over entry text.

        LIKE narrows the candidates on the stored JSON; the match is then
        confirmed on the rendered text so document structure never matches.
        """
        await self.connect()

        pattern = "%" + _LIKE_SPECIAL.sub(r"\\\g<0>", query) + "%"
        cursor = await self.connection.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE content LIKE ? ESCAPE '\\' "
            "ORDER BY updated_at DESC",
            (pattern,),
        )
        rows = await cursor.fetchall()

        needle = query.casefold()
        matches = []
        for row in rows:
            entry = self._row_to_entry(row)
            if needle in entry.plain_text().casefold():
                matches.append(entry)
                if len(matches) >= limit:
                    break

        return matches

    # ═══════════════════════════════════════════════════════════
    # VERSION OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def commit_version(
        self,
        entry_id: str,
        content: dict[str, Any] | None = None,
        commit_message: str | None = None,
    ) -> EntryVersion:
        """Append a snapshot to an entry's chain."""
        await self.connect()

        now = datetime.now()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    "SELECT stream_id, content, version_head FROM entries WHERE id = ?",
                    (entry_id,),
                )
                entry_row = await cursor.fetchone()
                if not entry_row:
                    raise NotFoundError(f"Entry not found: {entry_id}", {"entry_id": entry_id})

                cursor = await self.connection.execute(
                    "SELECT COUNT(*) AS n, COUNT(DISTINCT version_number) AS distinct_n, "
                    "COALESCE(MAX(version_number), 0) AS last "
                    "FROM entry_versions WHERE entry_id = ?",
                    (entry_id,),
                )
                chain = await cursor.fetchone()
                last = chain["last"]

                if chain["n"] != last or chain["distinct_n"] != last:
                    raise InvariantError(
                        f"Version chain of {entry_id} is not contiguous",
                        {"entry_id": entry_id, "count": chain["n"], "max": last},
                    )
                if entry_row["version_head"] != last:
                    raise InvariantError(
                        f"Version head of {entry_id} disagrees with its chain",
                        {
                            "entry_id": entry_id,
                            "version_head": entry_row["version_head"],
                            "max": last,
                        },
                    )

                snapshot = content if content is not None else json.loads(entry_row["content"])
                version = EntryVersion(
                    id=generate_version_id(),
                    entry_id=entry_id,
                    version_number=last + 1,
                    content_snapshot=snapshot,
                    commit_message=commit_message,
                    committed_at=now,
                )
                snapshot_json = json.dumps(snapshot, ensure_ascii=False)

                await self.connection.execute(
                    f"INSERT INTO entry_versions ({_VERSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        version.id,
                        version.entry_id,
                        version.version_number,
                        snapshot_json,
                        version.commit_message,
                        version.committed_at.isoformat(),
                    ),
                )
                await self.connection.execute(
                    "UPDATE entries SET content = ?, version_head = ?, updated_at = ? WHERE id = ?",
                    (snapshot_json, version.version_number, now.isoformat(), entry_id),
                )
                await self.connection.execute(
                    "UPDATE streams SET updated_at = ? WHERE id = ?",
                    (now.isoformat(), entry_row["stream_id"]),
                )
                await self.connection.commit()
            except KolamError:
                await self.connection.rollback()
                raise
            except sqlite3.IntegrityError as e:
                await self.connection.rollback()
                raise InvariantError(
                    f"Duplicate version number for {entry_id}: {e}", {"entry_id": entry_id}
                ) from e
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(f"Failed to commit version: {e}", {"entry_id": entry_id}) from e

        return version

    async def list_versions(self, entry_id: str) -> list[EntryVersion]:
        """An entry's versions in ascending order."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {_VERSION_COLUMNS} FROM entry_versions WHERE entry_id = ? "
            "ORDER BY version_number ASC",
            (entry_id,),
        )
        rows = await cursor.fetchall()

        return [self._row_to_version(row) for row in rows]

    async def get_latest_version(self, entry_id: str) -> EntryVersion | None:
        """The highest-numbered version."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {_VERSION_COLUMNS} FROM entry_versions WHERE entry_id = ? "
            "ORDER BY version_number DESC LIMIT 1",
            (entry_id,),
        )
        row = await cursor.fetchone()

        return self._row_to_version(row) if row else None

    async def get_version(self, entry_id: str, version_number: int) -> EntryVersion | None:
        """A specific version."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {_VERSION_COLUMNS} FROM entry_versions "
            "WHERE entry_id = ? AND version_number = ?",
            (entry_id, version_number),
        )
        row = await cursor.fetchone()

        return self._row_to_version(row) if row else None

    # ═══════════════════════════════════════════════════════════
    # PENDING BLOCK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def replace_pending_block(self, block: PendingBlock) -> PendingBlock | None:
        """Upsert the stream's pending block."""
        await self.connect()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    "SELECT 1 FROM streams WHERE id = ?", (block.stream_id,)
                )
                if not await cursor.fetchone():
                    raise NotFoundError(
                        f"Stream not found: {block.stream_id}", {"stream_id": block.stream_id}
                    )

                cursor = await self.connection.execute(
                    "SELECT * FROM pending_blocks WHERE stream_id = ?", (block.stream_id,)
                )
                previous_row = await cursor.fetchone()
                previous = self._row_to_pending_block(previous_row) if previous_row else None

                await self.connection.execute(
                    """
                    INSERT INTO pending_blocks (id, stream_id, bridge_key, staged_entry_ids,
                                                directive, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(stream_id) DO UPDATE SET
                        id = excluded.id,
                        bridge_key = excluded.bridge_key,
                        staged_entry_ids = excluded.staged_entry_ids,
                        directive = excluded.directive,
                        created_at = excluded.created_at
                    """,
                    (
                        block.id,
                        block.stream_id,
                        block.bridge_key,
                        json.dumps(block.staged_entry_ids),
                        block.directive.value,
                        block.created_at.isoformat(),
                    ),
                )
                await self.connection.commit()
            except KolamError:
                await self.connection.rollback()
                raise
            except sqlite3.IntegrityError as e:
                await self.connection.rollback()
                raise ConflictError(
                    f"Bridge key already held by a live pending block: {e}",
                    {"stream_id": block.stream_id},
                ) from e
            except sqlite3.Error as e:
                await self.connection.rollback()
                raise StoreError(
                    f"Failed to store pending block: {e}", {"stream_id": block.stream_id}
                ) from e

        return previous

    async def get_pending_block(self, stream_id: str) -> PendingBlock | None:
        """The stream's pending block."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT * FROM pending_blocks WHERE stream_id = ?", (stream_id,)
        )
        row = await cursor.fetchone()

        return self._row_to_pending_block(row) if row else None

    async def delete_pending_block(self, pending_block_id: str) -> bool:
        """Delete a pending block by ID."""
        await self.connect()

        async with self._write_lock:
            cursor = await self._write(
                "DELETE FROM pending_blocks WHERE id = ?", (pending_block_id,)
            )

        return cursor.rowcount > 0

    async def bridge_key_in_use(self, bridge_key: str) -> bool:
        """True if a live pending block carries this key."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT 1 FROM pending_blocks WHERE bridge_key = ?", (bridge_key,)
        )
        return await cursor.fetchone() is not None

    # ═══════════════════════════════════════════════════════════
    # PROFILE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_profile(self, profile: Profile) -> Profile:
        """Persist a new profile."""
        await self.connect()

        async with self._write_lock:
            await self._write(
                """
                INSERT INTO profiles (id, name, role, color, initials, bio, is_default,
                                      created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    profile.id,
                    profile.name,
                    profile.role.value,
                    profile.color,
                    profile.initials,
                    profile.bio,
                    int(profile.is_default),
                    profile.created_at.isoformat(),
                    profile.updated_at.isoformat(),
                ),
            )

        return profile

    async def get_profile(self, profile_id: str) -> Profile | None:
        """Retrieve a profile by ID."""
        await self.connect()

        cursor = await self.connection.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,))
        row = await cursor.fetchone()

        return self._row_to_profile(row) if row else None

    async def list_profiles(self) -> list[Profile]:
        """All profiles, default first."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT * FROM profiles ORDER BY is_default DESC, name ASC"
        )
        rows = await cursor.fetchall()

        return [self._row_to_profile(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    async def _write(self, query: str, params: tuple | list) -> aiosqlite.Cursor:
        """Run a single-statement write and commit. Caller holds the write lock."""
        try:
            cursor = await self.connection.execute(query, params)
            await self.connection.commit()
            return cursor
        except sqlite3.Error as e:
            await self.connection.rollback()
            raise StoreError(f"Write failed: {e}") from e

    def _row_to_stream(self, row: aiosqlite.Row) -> Stream:
        """Convert database row to Stream object."""
        return Stream(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            color=row["color"],
            pinned=bool(row["pinned"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_entry(self, row: aiosqlite.Row) -> Entry:
        """Convert database row to Entry object."""
        return Entry(
            id=row["id"],
            stream_id=row["stream_id"],
            sequence_id=row["sequence_id"],
            role=EntryRole(row["role"]),
            content=json.loads(row["content"]),
            profile_id=row["profile_id"],
            version_head=row["version_head"],
            is_staged=bool(row["is_staged"]),
            parent_context_ids=(
                json.loads(row["parent_context_ids"]) if row["parent_context_ids"] else None
            ),
            ai_metadata=(
                AiMetadata.model_validate_json(row["ai_metadata"]) if row["ai_metadata"] else None
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_version(self, row: aiosqlite.Row) -> EntryVersion:
        """Convert database row to EntryVersion object."""
        return EntryVersion(
            id=row["id"],
            entry_id=row["entry_id"],
            version_number=row["version_number"],
            content_snapshot=json.loads(row["content_snapshot"]),
            commit_message=row["commit_message"],
            committed_at=datetime.fromisoformat(row["committed_at"]),
        )

    def _row_to_pending_block(self, row: aiosqlite.Row) -> PendingBlock:
        """Convert database row to PendingBlock object."""
        return PendingBlock(
            id=row["id"],
            stream_id=row["stream_id"],
            bridge_key=row["bridge_key"],
            staged_entry_ids=json.loads(row["staged_entry_ids"]),
            directive=Directive(row["directive"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_profile(self, row: aiosqlite.Row) -> Profile:
        """Convert database row to Profile object."""
        return Profile(
            id=row["id"],
            name=row["name"],
            role=ProfileRole(row["role"]),
            color=row["color"],
            initials=row["initials"],
            bio=row["bio"],
            is_default=bool(row["is_default"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
