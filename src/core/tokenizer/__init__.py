"""
Tokenizer module for export token budgets.

Provides accurate token counting using tiktoken with fast approximation fallback.
Used to check an export prompt against the target chat model's context limit.
"""

from src.config import TokenizerConfig
from src.core.tokenizer.tokenizer import Tokenizer, token_status

__all__ = ["Tokenizer", "TokenizerConfig", "token_status"]
