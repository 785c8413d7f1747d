"""
Tests for the Stream Service: streams, entries, profiles and staging commands.
"""

import pytest

from src.models import EntryRole, ProfileRole
from src.utils.document import text_to_document
from src.utils.exceptions import NotFoundError, ValidationError


@pytest.mark.integration
class TestStreams:
    """Stream commands."""

    async def test_create_and_list(self, engine):
        pinned = await engine.streams.create_stream(title="Pinned", pinned=True)
        await engine.streams.create_stream(title="Loose", tags=["misc"])

        listing = await engine.streams.list_streams()

        assert listing[0].id == pinned.id
        assert {meta.title for meta in listing} == {"Pinned", "Loose"}

    async def test_details_in_sequence_order(self, engine, stream):
        details = await engine.streams.get_stream_details(stream.id)

        assert details.stream.title == "Fishing trip"
        assert [entry.sequence_id for entry in details.entries] == [1, 2]

    async def test_details_missing(self, engine):
        with pytest.raises(NotFoundError):
            await engine.streams.get_stream_details("stm_missing")

    async def test_update_partial(self, engine, stream):
        updated = await engine.streams.update_stream(stream.id, pinned=True)

        assert updated.pinned is True
        assert updated.title == "Fishing trip"
        assert (await engine.store.get_stream(stream.id)).pinned is True

    async def test_update_missing(self, engine):
        with pytest.raises(NotFoundError):
            await engine.streams.update_stream("stm_missing", title="x")

    async def test_delete_active_stream_resets_staging(self, engine, stream):
        entries = await engine.store.list_entries(stream.id)
        await engine.streams.stage(entries[0].id)

        await engine.streams.delete_stream(stream.id)

        assert engine.staging.stream_id is None
        assert len(engine.staging) == 0
        with pytest.raises(NotFoundError):
            await engine.streams.delete_stream(stream.id)

    async def test_delete_stream_releases_locks(self, engine, stream):
        entries = await engine.store.list_entries(stream.id)
        await engine.versions.commit(entries[0].id)
        await engine.streams.stage(entries[0].id)
        await engine.bridge.generate_export(stream.id)

        await engine.streams.delete_stream(stream.id)

        assert entries[0].id not in engine.versions._entry_locks
        assert stream.id not in engine.bridge._stream_locks

    async def test_switching_streams_resets_staging(self, engine, stream):
        entries = await engine.store.list_entries(stream.id)
        await engine.streams.stage(entries[0].id)
        other = await engine.streams.create_stream(title="Other")

        await engine.streams.open_stream(other.id)

        assert len(engine.staging) == 0
        assert (await engine.store.get_entry(entries[0].id)).is_staged is False


@pytest.mark.integration
class TestEntries:
    """Entry commands."""

    async def test_create_from_text(self, engine, stream):
        entry = await engine.streams.create_entry(stream.id, text="# Gear\n\n- rod")

        assert entry.sequence_id == 3
        assert entry.role == EntryRole.USER
        assert entry.plain_text() == "# Gear\n\n- rod"

    async def test_create_empty(self, engine, stream):
        entry = await engine.streams.create_entry(stream.id)
        assert entry.plain_text() == ""

    async def test_create_with_unknown_profile(self, engine, stream):
        with pytest.raises(NotFoundError):
            await engine.streams.create_entry(stream.id, text="x", profile_id="prf_missing")

    async def test_create_in_missing_stream(self, engine):
        with pytest.raises(NotFoundError):
            await engine.streams.create_entry("stm_missing", text="x")

    async def test_update_draft(self, engine, stream):
        entry = (await engine.store.list_entries(stream.id))[0]

        updated = await engine.streams.update_entry_content(entry.id, text_to_document("edited"))

        assert updated.plain_text() == "edited"
        assert updated.version_head == 0

    async def test_delete_staged_entry_drops_it_silently(self, engine, stream):
        third = await engine.streams.create_entry(stream.id, text="third")
        ids = [entry.id for entry in await engine.store.list_entries(stream.id)]
        assert ids[2] == third.id
        for entry_id in ids:
            await engine.streams.stage(entry_id)

        await engine.streams.delete_entry(ids[1])

        assert engine.staging.staged_ids() == {ids[0], ids[2]}

    async def test_delete_entry_releases_commit_lock(self, engine, stream):
        entries = await engine.store.list_entries(stream.id)
        await engine.versions.commit(entries[0].id)
        assert entries[0].id in engine.versions._entry_locks

        await engine.streams.delete_entry(entries[0].id)

        assert entries[0].id not in engine.versions._entry_locks

    async def test_delete_missing(self, engine):
        with pytest.raises(NotFoundError):
            await engine.streams.delete_entry("ent_missing")

    async def test_search(self, engine, stream):
        results = await engine.streams.search_entries("dawn")

        assert len(results) == 1
        assert "dawn" in results[0].plain_text()
        assert await engine.streams.search_entries("   ") == []

    async def test_search_non_ascii(self, engine, stream):
        await engine.streams.create_entry(stream.id, text="Grab a café au lait before the pond.")

        results = await engine.streams.search_entries("café")

        assert len(results) == 1
        assert "café au lait" in results[0].plain_text()


@pytest.mark.integration
class TestProfiles:
    """Profile commands."""

    async def test_create_derives_initials(self, engine):
        profile = await engine.streams.create_profile(name="Ada Lovelace", role="reference")

        assert profile.initials == "AL"
        assert profile.role == ProfileRole.REFERENCE
        assert (await engine.streams.get_profile(profile.id)).name == "Ada Lovelace"

    async def test_get_missing(self, engine):
        with pytest.raises(NotFoundError):
            await engine.streams.get_profile("prf_missing")

    async def test_entry_view_joins_current_profile(self, engine, stream):
        profile = await engine.streams.create_profile(name="Me")
        entry = (await engine.store.list_entries(stream.id))[0]
        await engine.store.update_entries_profile([entry.id], profile.id)

        details = await engine.streams.get_stream_details(stream.id)

        assert details.entries[0].profile.id == profile.id
        assert details.entries[1].profile is None


@pytest.mark.integration
class TestStaging:
    """Staging commands."""

    async def test_stage_mirrors_flag(self, engine, stream):
        entry = (await engine.store.list_entries(stream.id))[0]

        await engine.streams.stage(entry.id)
        assert (await engine.store.get_entry(entry.id)).is_staged is True

        await engine.streams.unstage(entry.id)
        assert (await engine.store.get_entry(entry.id)).is_staged is False

    async def test_toggle(self, engine, stream):
        entry = (await engine.store.list_entries(stream.id))[0]

        assert await engine.streams.toggle_staging(entry.id) is True
        assert await engine.streams.toggle_staging(entry.id) is False
        assert len(engine.staging) == 0

    async def test_stage_entry_of_inactive_stream(self, engine, stream):
        other = await engine.streams.create_stream(title="Other")
        foreign = await engine.streams.create_entry(other.id, text="x")

        with pytest.raises(ValidationError):
            await engine.streams.stage(foreign.id)

    async def test_stage_all_and_clear(self, engine, stream):
        staged = await engine.streams.stage_all()
        assert len(staged) == 2
        assert [e.id for e in await engine.streams.staged_entries()] == staged

        await engine.streams.clear_staging()
        assert await engine.streams.staged_entries() == []

    async def test_bulk_profile_skips_ai_entries(self, engine, stream, make_assistant_entry):
        profile = await engine.streams.create_profile(name="Me")
        ai_entry = await make_assistant_entry(stream.id, "An AI answer")
        await engine.streams.stage_all()

        result = await engine.streams.bulk_update_entry_profile(profile.id)

        user_ids = [e.id for e in await engine.store.list_entries(stream.id) if e.is_user_authored]
        assert result.updated_ids == user_ids
        assert len(result.updated_ids) == 2
        assert result.ignored_ai_count == 1
        assert (await engine.store.get_entry(ai_entry.id)).profile_id is None
        for entry_id in user_ids:
            assert (await engine.store.get_entry(entry_id)).profile_id == profile.id

    async def test_bulk_profile_unknown_profile(self, engine, stream):
        await engine.streams.stage_all()

        with pytest.raises(NotFoundError):
            await engine.streams.bulk_update_entry_profile("prf_missing")

    async def test_bulk_profile_clear(self, engine, stream):
        profile = await engine.streams.create_profile(name="Me")
        await engine.streams.stage_all()
        await engine.streams.bulk_update_entry_profile(profile.id)

        result = await engine.streams.bulk_update_entry_profile(None)

        assert len(result.updated_ids) == 2
        details = await engine.streams.get_stream_details(stream.id)
        assert all(entry.profile is None for entry in details.entries)
