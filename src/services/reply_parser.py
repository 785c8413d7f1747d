"""
Reply parsing for imported AI responses.

Replies pasted back from a chat window usually carry the requested
<kolam_response> envelope plus assorted debris: HTML from rich-text
clipboards, chatty openers, the bridge marker line. parse_reply strips all
of it and keeps the payload.
"""

import html
import re

from src.models.bridge import ParsedReply
from src.services.composer import BRIDGE_MARKER_PATTERN

_ENVELOPE = re.compile(
    r"<kolam_response\b(?P<attrs>[^>]*)>(?P<body>.*?)(?:</kolam_response>|$)",
    re.IGNORECASE | re.DOTALL,
)
_DIRECTIVE_ATTR = re.compile(r'directive\s*=\s*"([^"]*)"', re.IGNORECASE)


def _tag(name: str) -> re.Pattern:
    return re.compile(rf"<{name}>\s*(.*?)\s*</{name}>", re.IGNORECASE | re.DOTALL)


_AI_MODEL = _tag("ai_model")
_SUMMARY = _tag("summary")
_CONTENT = _tag("content")
_OPEN_CONTENT = re.compile(r"<content>\s*(.*)", re.IGNORECASE | re.DOTALL)

_HTML_ARTIFACTS = [
    (re.compile(r"<div[^>]*>", re.IGNORECASE), ""),
    (re.compile(r"</div>", re.IGNORECASE), "\n"),
    (re.compile(r"<span[^>]*>", re.IGNORECASE), ""),
    (re.compile(r"</span>", re.IGNORECASE), ""),
    (re.compile(r"<p(\s[^>]*)?>", re.IGNORECASE), ""),
    (re.compile(r"</p>", re.IGNORECASE), "\n\n"),
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r'\s*style="[^"]*"', re.IGNORECASE), ""),
    (re.compile(r'\s*class="[^"]*"', re.IGNORECASE), ""),
]

_BOILERPLATE = [
    re.compile(r"^Here's my analysis:\s*", re.IGNORECASE),
    re.compile(r"^Based on the context you provided[,.]?\s*", re.IGNORECASE),
    re.compile(r"^I apologize, but\s*", re.IGNORECASE),
    re.compile(r"^Let me analyze this[.:]?\s*", re.IGNORECASE),
]

_PROVIDERS = [
    ("anthropic", ("claude",)),
    ("openai", ("gpt", "openai", "o1", "o3", "chatgpt")),
    ("google", ("gemini", "bard", "palm")),
    ("meta", ("llama", "meta")),
    ("mistral", ("mistral", "mixtral")),
    ("xai", ("grok",)),
]


def provider_for_model(model_name: str) -> str:
    """
    Guess the provider of a model from its display name.

    Returns:
        "anthropic", "openai", "google", "meta", "mistral", "xai" or "other"
    """
    lower = model_name.lower()
    for provider, needles in _PROVIDERS:
        if any(needle in lower for needle in needles):
            return provider
    return "other"


def strip_markers(text: str) -> str:
    """Remove every bridge marker from text."""
    return BRIDGE_MARKER_PATTERN.sub("", text)


def clean_text(text: str) -> str:
    """Drop pasted HTML, chatty openers and excess blank lines."""
    for pattern, replacement in _HTML_ARTIFACTS:
        text = pattern.sub(replacement, text)

    text = text.strip()
    for pattern in _BOILERPLATE:
        text = pattern.sub("", text)

    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def parse_reply(raw_text: str) -> ParsedReply:
    """
    Split an AI reply into payload and protocol metadata.

    Args:
        raw_text: Text as pasted by the user

    Returns:
        ParsedReply; `is_structured` is False when no envelope was found,
        in which case the whole reply (minus markers) is the content
    """
    warnings: list[str] = []
    text = raw_text or ""

    # Rich-text clipboards escape the envelope tags
    if "&lt;kolam_response" in text.lower():
        text = html.unescape(text)

    match = BRIDGE_MARKER_PATTERN.search(text)
    bridge_key = match.group(1) if match else None
    if bridge_key is None:
        warnings.append("No bridge marker found in reply")

    text = strip_markers(text)

    envelope = _ENVELOPE.search(text)
    if envelope is None:
        warnings.append("Reply is not wrapped in <kolam_response>; importing it as-is")
        return ParsedReply(
            content=clean_text(text),
            bridge_key=bridge_key,
            is_structured=False,
            warnings=warnings,
        )

    body = envelope.group("body")
    directive_match = _DIRECTIVE_ATTR.search(envelope.group("attrs"))
    ai_model = _AI_MODEL.search(body)
    summary = _SUMMARY.search(body)
    content = _CONTENT.search(body) or _OPEN_CONTENT.search(body)

    if content is None:
        warnings.append("Missing <content> section; importing the envelope body")
        payload = _SUMMARY.sub("", _AI_MODEL.sub("", body))
    else:
        payload = content.group(1)
        if not _CONTENT.search(body):
            warnings.append("Unclosed <content> section")

    if ai_model is None:
        warnings.append("Missing <ai_model> section")

    return ParsedReply(
        content=clean_text(payload),
        bridge_key=bridge_key,
        ai_model=ai_model.group(1).strip() if ai_model else None,
        summary=summary.group(1).strip() if summary else None,
        directive=directive_match.group(1).strip().upper() if directive_match else None,
        is_structured=True,
        warnings=warnings,
    )
