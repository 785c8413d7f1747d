"""
Entry model: one chronological note inside a stream.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.models.profile import Profile
from src.utils.document import document_to_text, empty_document


class EntryRole(str, Enum):
    """Who authored an entry."""

    USER = "user"
    ASSISTANT = "assistant"


class AiMetadata(BaseModel):
    """Provenance of an entry imported from an external AI reply."""

    model: str = Field(..., description="Display name of the model, e.g. 'Claude 3.5 Sonnet'")
    provider: str = Field(default="other", description="anthropic, openai, google, ...")
    directive: str = Field(..., description="Directive of the export this reply answers")
    bridge_key: str = Field(..., description="Bridge key that linked the reply to its export")
    summary: str | None = Field(default=None, description="One-line summary given by the AI")


class Entry(BaseModel):
    """
    A note in a stream, independently version controlled.

    `version_head` is the highest committed version number, or 0 while the
    content is an uncommitted draft. Only a commit moves it up.

    `is_staged` mirrors the staging selector for display; the selector is
    authoritative.
    """

    # Core identity
    id: str = Field(..., description="Unique entry ID (ent_xxx)")
    stream_id: str = Field(..., description="Owning stream ID")
    sequence_id: int = Field(..., ge=1, description="Position in the stream, never reused")
    role: EntryRole = Field(default=EntryRole.USER, description="Author role")

    # Content
    content: dict[str, Any] = Field(default_factory=empty_document, description="Rich document")
    profile_id: str | None = Field(default=None, description="Associated profile ID")

    # Versioning
    version_head: int = Field(default=0, ge=0, description="Latest committed version number")
    is_staged: bool = Field(default=False, description="Display mirror of staging state")

    # Bridge provenance
    parent_context_ids: list[str] | None = Field(
        default=None,
        description="Entries that were exported to produce this assistant entry",
    )
    ai_metadata: AiMetadata | None = Field(default=None, description="Assistant entry metadata")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update timestamp")

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat()}

    @property
    def is_user_authored(self) -> bool:
        """True for entries written by the user rather than imported from an AI."""
        return self.role == EntryRole.USER

    def plain_text(self) -> str:
        """Content rendered as plain text."""
        return document_to_text(self.content).strip()


class EntryView(Entry):
    """
    Entry with its profile joined in.

    The profile is looked up each time the view is built and is never
    written back; reassigning `profile_id` invalidates it.
    """

    profile: Profile | None = None


class BulkProfileResult(BaseModel):
    """Outcome of reassigning the profile of the staged entries."""

    profile_id: str | None
    updated_ids: list[str] = Field(default_factory=list)
    ignored_ai_count: int = Field(default=0, ge=0, description="Staged non-user entries skipped")
