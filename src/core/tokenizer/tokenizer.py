"""
Token counting utilities for export budgets.

Uses tiktoken for accurate OpenAI-compatible token counting with
character-based approximation as fallback.
"""

import math
import re

import tiktoken

from src.config import ModelLimit, TokenizerConfig
from src.models.bridge import TokenStatus, TokenUsage

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")


def token_status(percentage: float) -> TokenStatus:
    """Classify a usage percentage of a model's limit."""
    if percentage > 100:
        return TokenStatus.EXCEEDED
    if percentage > 95:
        return TokenStatus.CRITICAL
    if percentage > 80:
        return TokenStatus.WARNING
    return TokenStatus.NORMAL


class Tokenizer:
    """
    Token counter for export prompts.

    Usage:
        tokenizer = Tokenizer()
        count = tokenizer.count_tokens("Hello world")
        usage = tokenizer.usage(prompt, config.model_limit("claude-sonnet"))
    """

    def __init__(self, config: TokenizerConfig | None = None):
        """
        Initialize tokenizer with configuration.

        Args:
            config: Optional tokenizer configuration. Uses defaults if not provided.
        """
        self.config = config or TokenizerConfig()
        self._encoder: tiktoken.Encoding | None = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        """
        Lazy-load tiktoken encoder.

        Returns:
            Tiktoken encoding instance
        """
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.config.model)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        """
        Count tokens using the configured provider.

        Args:
            text: Text to count tokens for

        Returns:
            Token count
        """
        if not text:
            return 0

        if self.config.provider == "approximate":
            return self.estimate_tokens(text)

        return len(self.encoder.encode(text))

    def estimate_tokens(self, text: str) -> int:
        """
        Fast approximate token count using character ratios.

        Prose uses the configured chars_per_token ratio (default 4.0);
        fenced code compresses better and is counted at 3 characters per token.

        Args:
            text: Text to estimate tokens for

        Returns:
            Approximate token count
        """
        if not text:
            return 0

        code = "".join(_CODE_BLOCK.findall(text))
        prose = _CODE_BLOCK.sub("", text)

        return math.ceil(len(prose) / self.config.chars_per_token) + math.ceil(len(code) / 3)

    def usage(self, text: str, limit: ModelLimit) -> TokenUsage:
        """
        Measure text against a model's context limit.

        Args:
            text: Export prompt
            limit: Target model limits

        Returns:
            TokenUsage with percentage capped at 100
        """
        used = self.count_tokens(text)
        percentage = used / limit.token_limit * 100
        status = token_status(percentage)

        if status == TokenStatus.NORMAL and used >= limit.warning_threshold:
            status = TokenStatus.WARNING

        return TokenUsage(
            used=used,
            limit=limit.token_limit,
            percentage=min(percentage, 100.0),
            status=status,
        )
