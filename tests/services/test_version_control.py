"""
Tests for the Version Control Engine.
"""

import asyncio

import pytest

from src.utils.document import text_to_document
from src.utils.exceptions import InvariantError, NotFoundError


@pytest.fixture
async def entry(engine, stream):
    entries = await engine.store.list_entries(stream.id)
    return entries[0]


@pytest.mark.integration
class TestCommit:
    """Tests for committing versions."""

    async def test_first_commit_is_version_one(self, engine, entry):
        version = await engine.versions.commit(entry.id, message="first")

        assert version.version_number == 1
        assert version.commit_message == "first"
        assert version.content_snapshot == entry.content

    async def test_commits_are_contiguous(self, engine, entry):
        for i in range(5):
            await engine.versions.commit(entry.id, text_to_document(f"draft {i}"))

        numbers = [v.version_number for v in await engine.versions.list_versions(entry.id)]

        assert numbers == [1, 2, 3, 4, 5]
        assert await engine.versions.verify_chain(entry.id) == 5

    async def test_commit_moves_content_and_head(self, engine, entry):
        await engine.versions.commit(entry.id, text_to_document("new text"))

        loaded = await engine.store.get_entry(entry.id)

        assert loaded.version_head == 1
        assert loaded.plain_text() == "new text"

    async def test_commit_snapshots_draft(self, engine, entry):
        await engine.streams.update_entry_content(entry.id, text_to_document("draft"))

        version = await engine.versions.commit(entry.id)

        assert version.content_snapshot == text_to_document("draft")

    async def test_concurrent_commits_serialize(self, engine, entry):
        await asyncio.gather(
            *(engine.versions.commit(entry.id, text_to_document(f"c{i}")) for i in range(10))
        )

        numbers = [v.version_number for v in await engine.versions.list_versions(entry.id)]
        assert numbers == list(range(1, 11))

    async def test_forget_keeps_held_lock(self, engine, entry):
        lock = engine.versions._entry_locks[entry.id]
        async with lock:
            engine.versions.forget(entry.id)
            assert entry.id in engine.versions._entry_locks

        engine.versions.forget(entry.id)

        assert entry.id not in engine.versions._entry_locks

    async def test_commit_missing_entry(self, engine):
        with pytest.raises(NotFoundError):
            await engine.versions.commit("ent_missing")

    async def test_commit_on_broken_chain(self, engine, entry):
        await engine.versions.commit(entry.id)
        await engine.store.connection.execute(
            "UPDATE entries SET version_head = 7 WHERE id = ?", (entry.id,)
        )
        await engine.store.connection.commit()

        with pytest.raises(InvariantError):
            await engine.versions.commit(entry.id)
        with pytest.raises(InvariantError):
            await engine.versions.verify_chain(entry.id)


@pytest.mark.integration
class TestQueries:
    """Tests for reading versions."""

    async def test_no_versions(self, engine, entry):
        assert await engine.versions.list_versions(entry.id) == []
        assert await engine.versions.get_latest(entry.id) is None

    async def test_latest(self, engine, entry):
        await engine.versions.commit(entry.id)
        await engine.versions.commit(entry.id, text_to_document("second"))

        latest = await engine.versions.get_latest(entry.id)

        assert latest.version_number == 2

    async def test_get_by_number_bounds(self, engine, entry):
        await engine.versions.commit(entry.id)

        assert (await engine.versions.get_by_number(entry.id, 1)).version_number == 1
        assert await engine.versions.get_by_number(entry.id, 0) is None
        assert await engine.versions.get_by_number(entry.id, -1) is None
        assert await engine.versions.get_by_number(entry.id, 2) is None

    async def test_verify_missing_entry(self, engine):
        with pytest.raises(NotFoundError):
            await engine.versions.verify_chain("ent_missing")


@pytest.mark.integration
class TestRevert:
    """Tests for reverting."""

    async def test_revert_commits_old_snapshot(self, engine, entry):
        await engine.versions.commit(entry.id, text_to_document("one"))
        await engine.versions.commit(entry.id, text_to_document("two"))
        await engine.versions.commit(entry.id, text_to_document("three"))

        reverted = await engine.versions.revert(entry.id, 1)

        assert reverted.version_number == 4
        assert reverted.content_snapshot == text_to_document("one")
        assert reverted.commit_message == "Revert to version 1"
        loaded = await engine.store.get_entry(entry.id)
        assert loaded.plain_text() == "one"
        assert loaded.version_head == 4

    async def test_revert_can_be_reverted(self, engine, entry):
        await engine.versions.commit(entry.id, text_to_document("one"))
        await engine.versions.commit(entry.id, text_to_document("two"))
        await engine.versions.revert(entry.id, 1)

        again = await engine.versions.revert(entry.id, 2)

        assert again.version_number == 4
        assert again.content_snapshot == text_to_document("two")

    async def test_revert_missing_version_leaves_chain(self, engine, entry):
        await engine.versions.commit(entry.id)

        with pytest.raises(NotFoundError):
            await engine.versions.revert(entry.id, 5)

        assert len(await engine.versions.list_versions(entry.id)) == 1
