"""
ID generation utilities for Kolam.

Provides consistent ID generation for all entity types:
- Streams: stm_xxx
- Entries: ent_xxx
- Entry versions: ver_xxx
- Pending blocks: pb_xxx
- Profiles: prf_xxx

Bridge keys are not IDs: they are short tokens a person copies through a
third-party chat window, see generate_bridge_key.
"""

import secrets
from uuid import uuid4

BRIDGE_KEY_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


def generate_stream_id() -> str:
    """
    Generate unique Stream ID.

    Returns:
        ID in format "stm_xxx" where xxx is 12 hex characters
    """
    return f"stm_{uuid4().hex[:12]}"


def generate_entry_id() -> str:
    """
    Generate unique Entry ID.

    Returns:
        ID in format "ent_xxx" where xxx is 12 hex characters
    """
    return f"ent_{uuid4().hex[:12]}"


def generate_version_id() -> str:
    """
    Generate unique EntryVersion ID.

    Returns:
        ID in format "ver_xxx" where xxx is 12 hex characters
    """
    return f"ver_{uuid4().hex[:12]}"


def generate_pending_block_id() -> str:
    """
    Generate unique PendingBlock ID.

    Returns:
        ID in format "pb_xxx" where xxx is 12 hex characters
    """
    return f"pb_{uuid4().hex[:12]}"


def generate_profile_id() -> str:
    """
    Generate unique Profile ID.

    Returns:
        ID in format "prf_xxx" where xxx is 12 hex characters
    """
    return f"prf_{uuid4().hex[:12]}"


def generate_bridge_key(length: int = 8) -> str:
    """
    Generate a random bridge key.

    Uniqueness against live pending blocks is the caller's job; this only
    draws the token.

    Args:
        length: Number of characters (lowercase letters and digits)

    Returns:
        Random key such as "k3v9x0qa"
    """
    if length < 1:
        raise ValueError("Bridge key length must be positive")
    return "".join(secrets.choice(BRIDGE_KEY_ALPHABET) for _ in range(length))
