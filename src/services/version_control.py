"""
Version Control Engine - append-only snapshot chains per entry.

Every commit stores a full copy of the document. Reverting commits an old
snapshot again as a new version, so history only grows and a revert can
itself be reverted.
"""

import asyncio
from collections import defaultdict
from typing import Any

from src.core.store.base import EntryStore
from src.models.version import EntryVersion
from src.utils.exceptions import InvariantError, NotFoundError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class VersionControlEngine:
    """
    Commit, inspect and revert entry versions.

    Commits on the same entry are serialized; commits on different entries
    proceed independently. Version numbers always come from the store.
    """

    def __init__(self, store: EntryStore):
        """
        Initialize Version Control Engine.

        Args:
            store: Persistence collaborator
        """
        self.store = store
        self._entry_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def forget(self, entry_id: str) -> None:
        """Drop the commit lock of a deleted entry, unless a commit still holds it."""
        lock = self._entry_locks.get(entry_id)
        if lock is not None and not lock.locked():
            del self._entry_locks[entry_id]

    async def commit(
        self,
        entry_id: str,
        content: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> EntryVersion:
        """
        Commit a new version of an entry.

        Args:
            entry_id: Entry to commit
            content: Document to snapshot; None snapshots the current draft
            message: Optional commit message

        Returns:
            The new EntryVersion (number = previous latest + 1, or 1)

        Raises:
            NotFoundError: If the entry doesn't exist
            InvariantError: If the stored chain is broken
        """
        async with self._entry_locks[entry_id]:
            try:
                version = await self.store.commit_version(entry_id, content, message)
            except InvariantError as e:
                logger.error(
                    f"Version chain invariant broken: {e.message}",
                    extra={"entry_id": entry_id, **e.context},
                )
                raise

        logger.info(
            f"Committed {entry_id} v{version.version_number}",
            extra={"operation": "commit", "entry_id": entry_id, "version": version.version_number},
        )
        return version

    async def list_versions(self, entry_id: str) -> list[EntryVersion]:
        """All versions of an entry, ascending. Empty for unknown entries."""
        return await self.store.list_versions(entry_id)

    async def get_latest(self, entry_id: str) -> EntryVersion | None:
        return await self.store.get_latest_version(entry_id)

    async def get_by_number(self, entry_id: str, version_number: int) -> EntryVersion | None:
        """A version by number; None below 1 or beyond the chain."""
        if version_number < 1:
            return None
        return await self.store.get_version(entry_id, version_number)

    async def revert(self, entry_id: str, version_number: int) -> EntryVersion:
        """
        Restore an entry to an earlier version by committing it again.

        Args:
            entry_id: Entry to revert
            version_number: Version whose snapshot to restore

        Returns:
            The newly committed version

        Raises:
            NotFoundError: If the version doesn't exist (the chain is left unchanged)
        """
        target = await self.get_by_number(entry_id, version_number)
        if target is None:
            raise NotFoundError(
                f"Version {version_number} not found for entry {entry_id}",
                {"entry_id": entry_id, "version_number": version_number},
            )

        logger.info(
            f"Reverting {entry_id} to v{version_number}",
            extra={"operation": "revert", "entry_id": entry_id, "target": version_number},
        )
        return await self.commit(
            entry_id,
            content=target.content_snapshot,
            message=f"Revert to version {version_number}",
        )

    async def verify_chain(self, entry_id: str) -> int:
        """
        Check that an entry's chain runs 1..n without gaps or duplicates.

        Returns:
            n, the length of the chain

        Raises:
            NotFoundError: If the entry doesn't exist
            InvariantError: If the chain or version head is inconsistent
        """
        entry = await self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Entry not found: {entry_id}", {"entry_id": entry_id})

        numbers = [version.version_number for version in await self.list_versions(entry_id)]
        expected = list(range(1, len(numbers) + 1))

        if numbers != expected:
            raise InvariantError(
                f"Version chain of {entry_id} is not contiguous",
                {"entry_id": entry_id, "numbers": numbers},
            )
        if entry.version_head != len(numbers):
            raise InvariantError(
                f"Version head of {entry_id} disagrees with its chain",
                {"entry_id": entry_id, "version_head": entry.version_head, "max": len(numbers)},
            )

        return len(numbers)
