"""
Base interface for Kolam persistence.

The engines never cache authoritative state: version numbers, pending
blocks and entry existence are always read back through this interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from src.models.bridge import PendingBlock
from src.models.entry import AiMetadata, Entry, EntryRole
from src.models.profile import Profile
from src.models.stream import Stream, StreamMetadata
from src.models.version import EntryVersion


class EntryStore(ABC):
    """Abstract base class for stream/entry/version storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (create tables/schema)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
        pass

    # ═══════════════════════════════════════════════════════════
    # STREAM OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_stream(self, stream: Stream) -> Stream:
        """
        Persist a new stream.

        Args:
            stream: Stream to store

        Returns:
            The stored stream
        """
        pass

    @abstractmethod
    async def get_stream(self, stream_id: str) -> Stream | None:
        """
        Retrieve a stream by ID.

        Returns:
            Stream or None if not found
        """
        pass

    @abstractmethod
    async def list_streams(self) -> list[StreamMetadata]:
        """
        List all streams, pinned first then most recently updated.
        """
        pass

    @abstractmethod
    async def update_stream(self, stream: Stream) -> None:
        """
        Overwrite a stream's mutable fields.

        Raises:
            NotFoundError: If the stream doesn't exist
        """
        pass

    @abstractmethod
    async def delete_stream(self, stream_id: str) -> bool:
        """
        Delete a stream with its entries, versions and pending block.

        Returns:
            True if a stream was deleted
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # ENTRY OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_entry(
        self,
        stream_id: str,
        role: EntryRole,
        content: dict[str, Any],
        profile_id: str | None = None,
        parent_context_ids: list[str] | None = None,
        ai_metadata: AiMetadata | None = None,
    ) -> Entry:
        """
        Create an entry at the end of a stream.

        The sequence ID is allocated from a per-stream counter and is never
        handed out twice, even after entries are deleted.

        Raises:
            NotFoundError: If the stream doesn't exist
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: str) -> Entry | None:
        """Retrieve an entry by ID."""
        pass

    @abstractmethod
    async def list_entries(self, stream_id: str) -> list[Entry]:
        """List a stream's entries ordered by sequence ID."""
        pass

    @abstractmethod
    async def get_entries(self, entry_ids: list[str]) -> list[Entry]:
        """
        Retrieve several entries, ordered by sequence ID.

        Unknown IDs are skipped.
        """
        pass

    @abstractmethod
    async def update_entry_content(self, entry_id: str, content: dict[str, Any]) -> Entry:
        """
        Replace an entry's draft content without committing a version.

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        pass

    @abstractmethod
    async def update_entries_profile(
        self, entry_ids: list[str], profile_id: str | None
    ) -> list[str]:
        """
        Set the profile of several entries.

        Returns:
            IDs of the entries that were updated
        """
        pass

    @abstractmethod
    async def set_staged_flags(self, stream_id: str, staged_ids: list[str]) -> None:
        """Mirror the staging selector onto the entries' is_staged flag."""
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: str) -> bool:
        """
        Delete an entry and its version chain.

        Returns:
            True if an entry was deleted
        """
        pass

    @abstractmethod
    async def search_entries(self, query: str, limit: int = 50) -> list[Entry]:
        """Substring search over entry content, most recently updated first."""
        pass

    # ═══════════════════════════════════════════════════════════
    # VERSION OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def commit_version(
        self,
        entry_id: str,
        content: dict[str, Any] | None = None,
        commit_message: str | None = None,
    ) -> EntryVersion:
        """
        Append a snapshot to an entry's chain.

        Allocates `last + 1`, stores the snapshot and moves the entry's
        content and version head to it in one transaction. With content
        None the entry's current draft is snapshotted.

        Raises:
            NotFoundError: If the entry doesn't exist
            InvariantError: If the existing chain has a gap or duplicate
        """
        pass

    @abstractmethod
    async def list_versions(self, entry_id: str) -> list[EntryVersion]:
        """An entry's versions in ascending version order."""
        pass

    @abstractmethod
    async def get_latest_version(self, entry_id: str) -> EntryVersion | None:
        """The highest-numbered version, or None."""
        pass

    @abstractmethod
    async def get_version(self, entry_id: str, version_number: int) -> EntryVersion | None:
        """A specific version, or None."""
        pass

    # ═══════════════════════════════════════════════════════════
    # PENDING BLOCK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def replace_pending_block(self, block: PendingBlock) -> PendingBlock | None:
        """
        Store a pending block, replacing the stream's previous one.

        Returns:
            The replaced block, or None if the stream had none

        Raises:
            NotFoundError: If the stream doesn't exist
            ConflictError: If the bridge key is held by another live block
        """
        pass

    @abstractmethod
    async def get_pending_block(self, stream_id: str) -> PendingBlock | None:
        """The stream's pending block, or None."""
        pass

    @abstractmethod
    async def delete_pending_block(self, pending_block_id: str) -> bool:
        """
        Delete a pending block by ID.

        Returns:
            True if a block was deleted
        """
        pass

    @abstractmethod
    async def bridge_key_in_use(self, bridge_key: str) -> bool:
        """True if a live pending block carries this key."""
        pass

    # ═══════════════════════════════════════════════════════════
    # PROFILE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_profile(self, profile: Profile) -> Profile:
        """Persist a new profile."""
        pass

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Profile | None:
        """Retrieve a profile by ID."""
        pass

    @abstractmethod
    async def list_profiles(self) -> list[Profile]:
        """All profiles, default first then by name."""
        pass
