"""
Version tracking models for entries.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EntryVersion(BaseModel):
    """
    Immutable content snapshot of an entry.

    Version numbers start at 1 and increase by one per commit with no gaps.
    A revert adds a new version; nothing is ever rewritten.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique version ID (ver_xxx)")
    entry_id: str = Field(..., description="Owning entry ID")
    version_number: int = Field(..., ge=1, description="Position in the entry's chain")
    content_snapshot: dict[str, Any] = Field(..., description="Full document at commit time")
    commit_message: str | None = Field(default=None, description="Optional commit message")
    committed_at: datetime = Field(default_factory=datetime.now)
