"""
Stream models: named, ordered containers of entries.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.models.entry import EntryView


class Stream(BaseModel):
    """A named stream. Owns its entries, their versions and its pending block."""

    id: str = Field(..., description="Unique stream ID (stm_xxx)")
    title: str = Field(..., min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    color: str | None = None
    pinned: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class StreamMetadata(BaseModel):
    """Sidebar listing row for a stream."""

    id: str
    title: str
    entry_count: int = 0
    last_updated: datetime
    pinned: bool = False
    color: str | None = None
    tags: list[str] = Field(default_factory=list)


class StreamDetails(BaseModel):
    """A stream together with its entries in sequence order."""

    stream: Stream
    entries: list[EntryView] = Field(default_factory=list)
