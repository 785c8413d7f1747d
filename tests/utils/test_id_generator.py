"""
Tests for ID generation utilities.

Tests cover:
1. Entity ID formats (stream, entry, version, pending block, profile)
2. Uniqueness guarantees
3. Bridge key alphabet and length
"""

import pytest

from src.utils import (
    generate_bridge_key,
    generate_entry_id,
    generate_pending_block_id,
    generate_profile_id,
    generate_stream_id,
    generate_version_id,
)
from src.utils.id_generator import BRIDGE_KEY_ALPHABET


@pytest.mark.unit
class TestEntityIds:
    """Tests for entity ID generation."""

    @pytest.mark.parametrize(
        "generator, prefix",
        [
            (generate_stream_id, "stm_"),
            (generate_entry_id, "ent_"),
            (generate_version_id, "ver_"),
            (generate_pending_block_id, "pb_"),
            (generate_profile_id, "prf_"),
        ],
    )
    def test_format(self, generator, prefix):
        """Test ID format: prefix + 12 hex chars."""
        generated = generator()

        assert generated.startswith(prefix)
        suffix = generated[len(prefix) :]
        assert len(suffix) == 12
        int(suffix, 16)

    def test_uniqueness(self):
        """Test that generated entry IDs are unique."""
        ids = [generate_entry_id() for _ in range(1000)]
        assert len(ids) == len(set(ids))


@pytest.mark.unit
class TestGenerateBridgeKey:
    """Tests for bridge key generation."""

    def test_default_length(self):
        assert len(generate_bridge_key()) == 8

    def test_custom_length(self):
        assert len(generate_bridge_key(16)) == 16

    def test_alphabet(self):
        """Keys use lowercase letters and digits only."""
        for _ in range(200):
            key = generate_bridge_key()
            assert set(key) <= set(BRIDGE_KEY_ALPHABET)
            assert key.isalnum()

    def test_keys_differ(self):
        keys = {generate_bridge_key() for _ in range(500)}
        assert len(keys) == 500

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            generate_bridge_key(0)
