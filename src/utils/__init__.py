"""Utility modules for Kolam."""

from src.utils.document import document_to_text, empty_document, text_to_document
from src.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    InvariantError,
    KolamError,
    NotFoundError,
    StoreError,
    TokenBudgetExceededError,
    ValidationError,
)
from src.utils.id_generator import (
    generate_bridge_key,
    generate_entry_id,
    generate_pending_block_id,
    generate_profile_id,
    generate_stream_id,
    generate_version_id,
)
from src.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_stream_id",
    "generate_entry_id",
    "generate_version_id",
    "generate_pending_block_id",
    "generate_profile_id",
    "generate_bridge_key",
    # Documents
    "document_to_text",
    "text_to_document",
    "empty_document",
    # Exceptions
    "KolamError",
    "StoreError",
    "NotFoundError",
    "ConflictError",
    "InvariantError",
    "ValidationError",
    "TokenBudgetExceededError",
    "ConfigurationError",
]
