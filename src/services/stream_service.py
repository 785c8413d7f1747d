"""
Stream Service - streams, entries, profiles and staging commands.

Keeps the staging selector consistent with the store: opening a stream
activates it, deleting entries drops them from staging, and every staging
change is mirrored onto the entries' is_staged flag.
"""

from datetime import datetime
from typing import Any

from src.core.store.base import EntryStore
from src.models.entry import BulkProfileResult, Entry, EntryRole, EntryView
from src.models.profile import Profile, ProfileRole
from src.models.stream import Stream, StreamDetails, StreamMetadata
from src.services.bridge import BridgeProtocolEngine
from src.services.staging import StagingSelector
from src.services.version_control import VersionControlEngine
from src.utils.document import empty_document, text_to_document
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.id_generator import generate_profile_id, generate_stream_id
from src.utils.logger import get_logger

logger = get_logger(__name__)


class StreamService:
    """CRUD over streams, entries and profiles, plus staging commands."""

    def __init__(
        self,
        store: EntryStore,
        staging: StagingSelector,
        versions: VersionControlEngine | None = None,
        bridge: BridgeProtocolEngine | None = None,
    ):
        self.store = store
        self.staging = staging
        self.versions = versions
        self.bridge = bridge

    # ═══════════════════════════════════════════════════════════
    # STREAMS
    # ═══════════════════════════════════════════════════════════

    async def create_stream(
        self,
        title: str,
        description: str | None = None,
        tags: list[str] | None = None,
        color: str | None = None,
        pinned: bool = False,
    ) -> Stream:
        stream = Stream(
            id=generate_stream_id(),
            title=title,
            description=description,
            tags=tags or [],
            color=color,
            pinned=pinned,
        )
        await self.store.create_stream(stream)
        logger.info(f"Created stream {stream.id}", extra={"operation": "create_stream"})
        return stream

    async def list_streams(self) -> list[StreamMetadata]:
        """Streams for the sidebar, pinned first, then most recently updated."""
        return await self.store.list_streams()

    async def get_stream_details(self, stream_id: str) -> StreamDetails:
        """
        A stream with its entries in sequence order, profiles joined in.

        Raises:
            NotFoundError: If the stream doesn't exist
        """
        stream = await self.store.get_stream(stream_id)
        if stream is None:
            raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

        entries = await self.store.list_entries(stream_id)
        return StreamDetails(stream=stream, entries=await self._views(entries))

    async def open_stream(self, stream_id: str) -> StreamDetails:
        """Make a stream active and return its details. Switching streams resets staging."""
        details = await self.get_stream_details(stream_id)
        previous = self.staging.stream_id
        self.staging.activate(stream_id)

        if previous is not None and previous != stream_id:
            await self.store.set_staged_flags(previous, [])
        return details

    async def update_stream(
        self,
        stream_id: str,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        color: str | None = None,
        pinned: bool | None = None,
    ) -> Stream:
        """
        Update the given fields of a stream; None leaves a field unchanged.

        Raises:
            NotFoundError: If the stream doesn't exist
        """
        stream = await self.store.get_stream(stream_id)
        if stream is None:
            raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

        changes: dict[str, Any] = {
            "title": title,
            "description": description,
            "tags": tags,
            "color": color,
            "pinned": pinned,
        }
        updated = stream.model_copy(
            update={key: value for key, value in changes.items() if value is not None}
        )
        updated.updated_at = datetime.now()

        await self.store.update_stream(updated)
        return updated

    async def delete_stream(self, stream_id: str) -> None:
        """
        Delete a stream with its entries, versions and pending block.

        Raises:
            NotFoundError: If the stream doesn't exist
        """
        entry_ids = [entry.id for entry in await self.store.list_entries(stream_id)]
        if not await self.store.delete_stream(stream_id):
            raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

        if self.versions is not None:
            for entry_id in entry_ids:
                self.versions.forget(entry_id)
        if self.bridge is not None:
            self.bridge.forget(stream_id)

        if self.staging.stream_id == stream_id:
            self.staging.activate(None)
        logger.info(f"Deleted stream {stream_id}", extra={"operation": "delete_stream"})

    # ═══════════════════════════════════════════════════════════
    # ENTRIES
    # ═══════════════════════════════════════════════════════════

    async def create_entry(
        self,
        stream_id: str,
        content: dict[str, Any] | None = None,
        text: str | None = None,
        profile_id: str | None = None,
    ) -> Entry:
        """
        Append a user entry to a stream.

        Args:
            stream_id: Owning stream
            content: Rich document; takes precedence over `text`
            text: Markdown text converted to a document
            profile_id: Optional profile

        Raises:
            NotFoundError: If the stream or profile doesn't exist
        """
        if profile_id is not None and await self.store.get_profile(profile_id) is None:
            raise NotFoundError(f"Profile not found: {profile_id}", {"profile_id": profile_id})

        if content is None:
            content = text_to_document(text) if text else empty_document()

        entry = await self.store.create_entry(
            stream_id, EntryRole.USER, content, profile_id=profile_id
        )
        logger.debug(
            f"Created entry {entry.id} (#{entry.sequence_id})",
            extra={"operation": "create_entry", "stream_id": stream_id},
        )
        return entry

    async def get_entry(self, entry_id: str) -> Entry:
        entry = await self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Entry not found: {entry_id}", {"entry_id": entry_id})
        return entry

    async def update_entry_content(self, entry_id: str, content: dict[str, Any]) -> Entry:
        """Save a draft. Drafts are not versions until committed."""
        return await self.store.update_entry_content(entry_id, content)

    async def delete_entry(self, entry_id: str) -> None:
        """
        Delete an entry; it silently leaves staging if it was staged.

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        if not await self.store.delete_entry(entry_id):
            raise NotFoundError(f"Entry not found: {entry_id}", {"entry_id": entry_id})

        self.staging.discard(entry_id)
        if self.versions is not None:
            self.versions.forget(entry_id)
        logger.info(f"Deleted entry {entry_id}", extra={"operation": "delete_entry"})

    async def search_entries(self, query: str, limit: int = 50) -> list[Entry]:
        if not query.strip():
            return []
        return await self.store.search_entries(query, limit)

    # ═══════════════════════════════════════════════════════════
    # PROFILES
    # ═══════════════════════════════════════════════════════════

    async def create_profile(
        self,
        name: str,
        role: ProfileRole | str = ProfileRole.SELF,
        color: str | None = None,
        initials: str | None = None,
        bio: str | None = None,
        is_default: bool = False,
    ) -> Profile:
        profile = Profile(
            id=generate_profile_id(),
            name=name,
            role=ProfileRole(role),
            color=color,
            initials=initials or "".join(part[0] for part in name.split()[:2]).upper(),
            bio=bio,
            is_default=is_default,
        )
        return await self.store.create_profile(profile)

    async def get_profile(self, profile_id: str) -> Profile:
        profile = await self.store.get_profile(profile_id)
        if profile is None:
            raise NotFoundError(f"Profile not found: {profile_id}", {"profile_id": profile_id})
        return profile

    async def list_profiles(self) -> list[Profile]:
        return await self.store.list_profiles()

    async def _views(self, entries: list[Entry]) -> list[EntryView]:
        profiles = {profile.id: profile for profile in await self.store.list_profiles()}
        return [
            EntryView(**entry.model_dump(), profile=profiles.get(entry.profile_id))
            for entry in entries
        ]

    # ═══════════════════════════════════════════════════════════
    # STAGING
    # ═══════════════════════════════════════════════════════════

    async def _active_entry(self, entry_id: str) -> Entry:
        entry = await self.get_entry(entry_id)
        if entry.stream_id != self.staging.stream_id:
            raise ValidationError(
                f"Entry {entry_id} is not in the active stream",
                {"entry_id": entry_id, "active_stream_id": self.staging.stream_id},
            )
        return entry

    async def _mirror(self) -> None:
        if self.staging.stream_id is not None:
            await self.store.set_staged_flags(
                self.staging.stream_id, sorted(self.staging.staged_ids())
            )

    async def stage(self, entry_id: str) -> None:
        await self._active_entry(entry_id)
        self.staging.stage(entry_id)
        await self._mirror()

    async def unstage(self, entry_id: str) -> None:
        self.staging.unstage(entry_id)
        await self._mirror()

    async def toggle_staging(self, entry_id: str) -> bool:
        """Returns True if the entry is staged afterwards."""
        await self._active_entry(entry_id)
        staged = self.staging.toggle(entry_id)
        await self._mirror()
        return staged

    async def clear_staging(self) -> None:
        self.staging.clear_all()
        await self._mirror()

    async def stage_all(self) -> list[str]:
        """Stage every entry of the active stream."""
        if self.staging.stream_id is None:
            raise ValidationError("No active stream")
        entries = await self.store.list_entries(self.staging.stream_id)
        self.staging.set_all(entry.id for entry in entries)
        await self._mirror()
        return [entry.id for entry in entries]

    async def staged_entries(self) -> list[Entry]:
        """Staged entries of the active stream in sequence order."""
        if self.staging.stream_id is None:
            return []
        return self.staging.ordered(await self.store.list_entries(self.staging.stream_id))

    async def bulk_update_entry_profile(self, profile_id: str | None) -> BulkProfileResult:
        """
        Assign a profile to every staged user entry.

        Assistant entries in the selection are left alone and counted in
        `ignored_ai_count`.

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        if profile_id is not None and await self.store.get_profile(profile_id) is None:
            raise NotFoundError(f"Profile not found: {profile_id}", {"profile_id": profile_id})

        if self.staging.stream_id is None:
            return BulkProfileResult(profile_id=profile_id)

        entries = await self.store.list_entries(self.staging.stream_id)
        partition = self.staging.partition(entries)

        updated = await self.store.update_entries_profile(
            [entry.id for entry in partition.user_entries], profile_id
        )

        logger.info(
            f"Assigned profile to {len(updated)} entries",
            extra={
                "operation": "bulk_update_entry_profile",
                "profile_id": profile_id,
                "ignored_ai_count": partition.ignored_ai_count,
            },
        )
        return BulkProfileResult(
            profile_id=profile_id,
            updated_ids=updated,
            ignored_ai_count=partition.ignored_ai_count,
        )
