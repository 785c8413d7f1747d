"""
Services for Kolam.

High-level business logic services:
- KolamEngine: Wires all services to one store
- StagingSelector: Working set of entries for the next export
- VersionControlEngine: Append-only version chains per entry
- BridgeProtocolEngine: Bridge keys, pending blocks, export and import
- StreamService: Streams, entries, profiles and staging commands
"""

from src.services.bridge import BridgeProtocolEngine
from src.services.composer import compose
from src.services.kolam_engine import KolamEngine
from src.services.reply_parser import parse_reply, provider_for_model
from src.services.staging import StagedPartition, StagingSelector
from src.services.stream_service import StreamService
from src.services.version_control import VersionControlEngine

__all__ = [
    "KolamEngine",
    "BridgeProtocolEngine",
    "StagingSelector",
    "StagedPartition",
    "StreamService",
    "VersionControlEngine",
    "compose",
    "parse_reply",
    "provider_for_model",
]
