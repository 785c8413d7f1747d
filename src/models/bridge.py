"""
Bridge protocol models.

An export packages staged entries into a prompt carrying a one-time bridge
key. The export is remembered as a PendingBlock until the reply comes back
(or the user discards it).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from src.models.entry import Entry
from src.models.version import EntryVersion


class Directive(str, Enum):
    """Instruction mode of an export."""

    DUMP = "DUMP"  # Refactor & restructure
    CRITIQUE = "CRITIQUE"  # Find gaps & issues
    GENERATE = "GENERATE"  # Expand & elaborate


class PendingBlock(BaseModel):
    """
    An export awaiting its reply.

    At most one exists per stream. Creating another replaces it and mints a
    new ID, so callers holding the old ID can tell they are stale.
    """

    id: str = Field(..., description="Unique pending block ID (pb_xxx)")
    stream_id: str
    bridge_key: str = Field(..., min_length=1)
    staged_entry_ids: list[str] = Field(
        default_factory=list, description="Exported entries in sequence order"
    )
    directive: Directive
    created_at: datetime = Field(default_factory=datetime.now)

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat()}


class TokenStatus(str, Enum):
    """How close an export is to the target model's limit."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"


class TokenUsage(BaseModel):
    """Token budget of an export against a model limit."""

    used: int = Field(..., ge=0)
    limit: int = Field(..., gt=0)
    percentage: float = Field(..., ge=0.0, le=100.0)
    status: TokenStatus


class BridgeExport(BaseModel):
    """Result of composing an export."""

    pending_block: PendingBlock
    prompt: str
    staged_entry_ids: list[str]
    token_usage: TokenUsage

    @property
    def bridge_key(self) -> str:
        return self.pending_block.bridge_key


class ParsedReply(BaseModel):
    """An AI reply with protocol markers removed."""

    content: str = ""
    bridge_key: str | None = None
    ai_model: str | None = None
    summary: str | None = None
    directive: str | None = None
    is_structured: bool = False
    warnings: list[str] = Field(default_factory=list)


class BridgeImportResult(BaseModel):
    """
    Outcome of importing a reply.

    `matched=False` is the ordinary "key not found" outcome: the pending
    block is kept and nothing was written.
    """

    matched: bool
    pending_block_id: str
    expected_key: str
    found_key: str | None = None
    entry: Entry | None = None
    version: EntryVersion | None = None
    warnings: list[str] = Field(default_factory=list)
