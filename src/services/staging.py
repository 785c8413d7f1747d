"""
Staging Selector - the working set of entries for the next export.

Pure in-memory state scoped to one active stream. Switching streams empties
it so IDs from one stream can never leak into another stream's export.
"""

from collections.abc import Iterable

from pydantic import BaseModel, Field

from src.models.entry import Entry, EntryRole
from src.utils.logger import get_logger

logger = get_logger(__name__)


class StagedPartition(BaseModel):
    """Staged entries split by author."""

    user_entries: list[Entry] = Field(default_factory=list)
    ai_entries: list[Entry] = Field(default_factory=list)

    @property
    def ignored_ai_count(self) -> int:
        """Number of staged entries a user-only bulk operation skips."""
        return len(self.ai_entries)


class StagingSelector:
    """
    Set of staged entry IDs for the active stream.

    Never touches entry content. Removing an ID that isn't staged is a
    no-op, which makes deletion of staged entries safe at any time.
    """

    def __init__(self, stream_id: str | None = None):
        self.stream_id = stream_id
        self._staged: set[str] = set()

    def activate(self, stream_id: str | None) -> None:
        """Make a stream active; staging is reset whenever it changes."""
        if stream_id != self.stream_id:
            if self._staged:
                logger.debug(
                    f"Active stream changed, dropping {len(self._staged)} staged entries",
                    extra={"from_stream": self.stream_id, "to_stream": stream_id},
                )
            self._staged.clear()
        self.stream_id = stream_id

    def stage(self, entry_id: str) -> None:
        self._staged.add(entry_id)

    def unstage(self, entry_id: str) -> None:
        self._staged.discard(entry_id)

    def toggle(self, entry_id: str) -> bool:
        """
        Flip an entry's staging.

        Returns:
            True if the entry is staged afterwards
        """
        if entry_id in self._staged:
            self._staged.discard(entry_id)
            return False
        self._staged.add(entry_id)
        return True

    def clear_all(self) -> None:
        self._staged.clear()

    def set_all(self, entry_ids: Iterable[str]) -> None:
        """Replace the staged set."""
        self._staged = set(entry_ids)

    def discard(self, entry_id: str) -> None:
        """Forget an entry that no longer exists."""
        self._staged.discard(entry_id)

    def prune(self, existing_ids: Iterable[str]) -> set[str]:
        """
        Drop staged IDs that are not in `existing_ids`.

        Returns:
            The IDs that were dropped
        """
        existing = set(existing_ids)
        dropped = self._staged - existing
        self._staged &= existing
        return dropped

    def is_staged(self, entry_id: str) -> bool:
        return entry_id in self._staged

    def staged_ids(self) -> set[str]:
        """A copy of the staged set."""
        return set(self._staged)

    def __len__(self) -> int:
        return len(self._staged)

    def ordered(self, entries: Iterable[Entry]) -> list[Entry]:
        """Staged entries among `entries`, in stream order regardless of staging order."""
        staged = [entry for entry in entries if entry.id in self._staged]
        return sorted(staged, key=lambda entry: entry.sequence_id)

    def partition(self, entries: Iterable[Entry]) -> StagedPartition:
        """
        Split staged entries into user-authored and AI-authored.

        Bulk operations that must not touch AI entries use `user_entries`
        and report `ignored_ai_count` back to the caller.
        """
        partition = StagedPartition()
        for entry in self.ordered(entries):
            if entry.role == EntryRole.USER:
                partition.user_entries.append(entry)
            else:
                partition.ai_entries.append(entry)
        return partition
