"""
Data models for Kolam.

Core models:
- Stream, StreamMetadata, StreamDetails: containers of entries
- Entry, EntryView, EntryRole, AiMetadata: notes inside a stream
- EntryVersion: immutable content snapshots
- Profile, ProfileRole: identity tags on entries
- Directive, PendingBlock, BridgeExport, BridgeImportResult: bridge protocol
- ParsedReply, TokenUsage, TokenStatus: reply parsing and export budgets
"""

from src.models.bridge import (
    BridgeExport,
    BridgeImportResult,
    Directive,
    ParsedReply,
    PendingBlock,
    TokenStatus,
    TokenUsage,
)
from src.models.entry import AiMetadata, BulkProfileResult, Entry, EntryRole, EntryView
from src.models.profile import Profile, ProfileRole
from src.models.stream import Stream, StreamDetails, StreamMetadata
from src.models.version import EntryVersion

__all__ = [
    # Stream models
    "Stream",
    "StreamMetadata",
    "StreamDetails",
    # Entry models
    "Entry",
    "EntryView",
    "EntryRole",
    "AiMetadata",
    "BulkProfileResult",
    # Version models
    "EntryVersion",
    # Profile models
    "Profile",
    "ProfileRole",
    # Bridge models
    "Directive",
    "PendingBlock",
    "BridgeExport",
    "BridgeImportResult",
    "ParsedReply",
    "TokenUsage",
    "TokenStatus",
]
