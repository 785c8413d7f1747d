"""
Tests for the Staging Selector.
"""

import pytest

from src.models import Entry, EntryRole
from src.services.staging import StagingSelector


def _entry(entry_id, sequence_id, role=EntryRole.USER):
    return Entry(id=entry_id, stream_id="stm_1", sequence_id=sequence_id, role=role)


@pytest.fixture
def selector():
    return StagingSelector("stm_1")


@pytest.mark.unit
class TestStagingSelector:
    """Tests for staging operations."""

    def test_stage_and_unstage(self, selector):
        selector.stage("ent_a")
        assert selector.is_staged("ent_a")

        selector.unstage("ent_a")
        assert not selector.is_staged("ent_a")

    def test_unstage_unknown_is_noop(self, selector):
        selector.unstage("ent_missing")
        assert len(selector) == 0

    def test_toggle_twice_is_noop(self, selector):
        selector.stage("ent_b")
        before = selector.staged_ids()

        assert selector.toggle("ent_a") is True
        assert selector.toggle("ent_a") is False

        assert selector.staged_ids() == before

    def test_set_all_and_clear_all(self, selector):
        selector.set_all(["ent_a", "ent_b"])
        assert selector.staged_ids() == {"ent_a", "ent_b"}

        selector.clear_all()
        assert selector.staged_ids() == set()

    def test_staged_ids_is_a_copy(self, selector):
        selector.stage("ent_a")
        selector.staged_ids().add("ent_b")
        assert selector.staged_ids() == {"ent_a"}

    def test_activate_other_stream_resets(self, selector):
        selector.stage("ent_a")

        selector.activate("stm_2")

        assert selector.stream_id == "stm_2"
        assert len(selector) == 0

    def test_activate_same_stream_keeps_staging(self, selector):
        selector.stage("ent_a")
        selector.activate("stm_1")
        assert selector.is_staged("ent_a")

    def test_discard_deleted_entry(self, selector):
        selector.stage("ent_a")
        selector.discard("ent_a")
        selector.discard("ent_a")
        assert len(selector) == 0

    def test_prune(self, selector):
        selector.set_all(["ent_a", "ent_gone"])

        dropped = selector.prune(["ent_a", "ent_b"])

        assert dropped == {"ent_gone"}
        assert selector.staged_ids() == {"ent_a"}

    def test_ordered_by_sequence_not_staging_order(self, selector):
        entries = [_entry("ent_a", 1), _entry("ent_b", 2), _entry("ent_c", 3)]
        selector.stage("ent_c")
        selector.stage("ent_a")

        assert [entry.id for entry in selector.ordered(reversed(entries))] == ["ent_a", "ent_c"]

    def test_selection_never_mutates_entries(self, selector):
        entry = _entry("ent_a", 1)
        snapshot = entry.model_dump()

        selector.toggle("ent_a")
        selector.ordered([entry])

        assert entry.model_dump() == snapshot

    def test_partition(self, selector):
        entries = [
            _entry("ent_a", 1),
            _entry("ent_b", 2, EntryRole.ASSISTANT),
            _entry("ent_c", 3),
            _entry("ent_d", 4),
        ]
        selector.set_all(["ent_a", "ent_b", "ent_c"])

        partition = selector.partition(entries)

        assert [entry.id for entry in partition.user_entries] == ["ent_a", "ent_c"]
        assert [entry.id for entry in partition.ai_entries] == ["ent_b"]
        assert partition.ignored_ai_count == 1
