"""
Tests for Tokenizer class.

Tests cover:
1. Token counting (accurate and approximate)
2. Approximation of prose and fenced code
3. Usage status against model limits
4. Edge cases (empty, unicode)
"""

import pytest

from src.config import ModelLimit, TokenizerConfig
from src.core.tokenizer import Tokenizer, token_status
from src.models.bridge import TokenStatus


@pytest.fixture
def tiktoken_tokenizer():
    """Tokenizer backed by tiktoken; skipped when the encoding cannot be loaded."""
    tokenizer = Tokenizer()
    try:
        tokenizer.encoder
    except Exception as e:
        pytest.skip(f"tiktoken encoding not available: {e}")
    return tokenizer


@pytest.fixture
def approximate():
    return Tokenizer(TokenizerConfig(provider="approximate"))


@pytest.mark.unit
class TestTokenCounting:
    """Tests for token counting functionality."""

    def test_count_tokens_simple(self, tiktoken_tokenizer):
        count = tiktoken_tokenizer.count_tokens("Hello, world!")
        assert count > 0
        assert isinstance(count, int)

    def test_count_tokens_empty(self):
        assert Tokenizer().count_tokens("") == 0

    def test_count_tokens_unicode(self, tiktoken_tokenizer):
        assert tiktoken_tokenizer.count_tokens("Hello, 世界! 🌍") > 0

    def test_count_tokens_deterministic(self, tiktoken_tokenizer):
        text = "The quick brown fox jumps over the lazy dog."
        assert tiktoken_tokenizer.count_tokens(text) == tiktoken_tokenizer.count_tokens(text)

    def test_approximate_provider_skips_tiktoken(self, approximate):
        assert approximate.count_tokens("a" * 40) == 10
        assert approximate._encoder is None


@pytest.mark.unit
class TestTokenEstimation:
    """Tests for approximate token estimation."""

    def test_estimate_prose(self, approximate):
        assert approximate.estimate_tokens("Hello world!") == 3  # 12 chars / 4

    def test_estimate_rounds_up(self, approximate):
        assert approximate.estimate_tokens("Hello") == 2

    def test_estimate_empty(self, approximate):
        assert approximate.estimate_tokens("") == 0

    def test_estimate_custom_ratio(self):
        tokenizer = Tokenizer(TokenizerConfig(provider="approximate", chars_per_token=5.0))
        assert tokenizer.estimate_tokens("Hello world test") == 4  # 16 chars / 5

    def test_code_counts_denser_than_prose(self, approximate):
        code = "```\n" + "x" * 23 + "\n```"  # 31 chars
        assert approximate.estimate_tokens(code) == 11  # ceil(31 / 3)
        assert approximate.estimate_tokens("y" * 31) == 8  # ceil(31 / 4)


@pytest.mark.unit
class TestTokenStatus:
    """Tests for usage classification."""

    @pytest.mark.parametrize(
        "percentage, expected",
        [
            (0, TokenStatus.NORMAL),
            (80, TokenStatus.NORMAL),
            (80.5, TokenStatus.WARNING),
            (95, TokenStatus.WARNING),
            (96, TokenStatus.CRITICAL),
            (100, TokenStatus.CRITICAL),
            (100.1, TokenStatus.EXCEEDED),
        ],
    )
    def test_thresholds(self, percentage, expected):
        assert token_status(percentage) == expected

    def test_usage_normal(self, approximate):
        limit = ModelLimit(name="Tiny", token_limit=100, warning_threshold=90)
        usage = approximate.usage("a" * 40, limit)

        assert usage.used == 10
        assert usage.limit == 100
        assert usage.percentage == 10.0
        assert usage.status == TokenStatus.NORMAL

    def test_usage_warning_threshold(self, approximate):
        """Crossing the model's warning threshold warns even below 80%."""
        limit = ModelLimit(name="Tiny", token_limit=100, warning_threshold=50)
        usage = approximate.usage("a" * 240, limit)

        assert usage.used == 60
        assert usage.status == TokenStatus.WARNING

    def test_usage_exceeded_caps_percentage(self, approximate):
        limit = ModelLimit(name="Tiny", token_limit=10, warning_threshold=8)
        usage = approximate.usage("a" * 400, limit)

        assert usage.used == 100
        assert usage.percentage == 100.0
        assert usage.status == TokenStatus.EXCEEDED
