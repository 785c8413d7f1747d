"""
Conversion between rich entry documents and plain text.

Entry content is a ProseMirror-style JSON document:
    {"type": "doc", "content": [{"type": "paragraph", "content": [...]}, ...]}

document_to_text renders it as Markdown-flavoured text for exports.
text_to_document goes the other way for imported AI replies.
"""

import re
from typing import Any

_HEADING = re.compile(r"^(#{1,6})\s+(.+)$")
_BULLET = re.compile(r"^[-*]\s+(.+)$")
_RULE = re.compile(r"^(-{3,}|_{3,}|\*{3,})$")


def empty_document() -> dict[str, Any]:
    """Return a document holding a single empty paragraph."""
    return {"type": "doc", "content": [{"type": "paragraph", "content": []}]}


def document_to_text(node: dict[str, Any] | None) -> str:
    """
    Render a document (or any node) to plain text.

    Args:
        node: Document or node dict; None renders as ""

    Returns:
        Text with Markdown markers for headings, lists, code and quotes
    """
    if not node:
        return ""

    text = node.get("text", "") or ""

    for child in node.get("content") or []:
        child_text = document_to_text(child)
        child_type = child.get("type")

        if child_type == "paragraph":
            text += child_text + "\n\n"
        elif child_type == "heading":
            level = (child.get("attrs") or {}).get("level", 1)
            text += "#" * level + " " + child_text + "\n\n"
        elif child_type in ("bulletList", "orderedList"):
            text += child_text + "\n"
        elif child_type == "listItem":
            text += "- " + child_text.strip() + "\n"
        elif child_type == "codeBlock":
            language = (child.get("attrs") or {}).get("language") or ""
            text += f"```{language}\n{child_text}\n```\n\n"
        elif child_type == "blockquote":
            quoted = child_text.strip().replace("\n", "\n> ")
            text += "> " + quoted + "\n\n"
        elif child_type == "horizontalRule":
            text += "---\n\n"
        elif child_type == "hardBreak":
            text += "\n"
        else:
            text += child_text

    return text


def _paragraph(text: str) -> dict[str, Any]:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def text_to_document(text: str) -> dict[str, Any]:
    """
    Build a document from Markdown-flavoured text.

    Recognises ATX headings, "-"/"*" bullet items (consecutive items share a
    list), horizontal rules and fenced code blocks. Everything else becomes
    paragraphs split on blank lines.

    Args:
        text: Plain text, typically an imported AI reply

    Returns:
        Document dict; never empty
    """
    nodes: list[dict[str, Any]] = []
    paragraph: list[str] = []
    code_lines: list[str] | None = None
    code_language = ""

    def flush_paragraph() -> None:
        if paragraph:
            joined = "\n".join(paragraph).strip()
            if joined:
                nodes.append(_paragraph(joined))
            paragraph.clear()

    for line in (text or "").split("\n"):
        if code_lines is not None:
            if line.strip().startswith("```"):
                node: dict[str, Any] = {"type": "codeBlock", "attrs": {"language": code_language or None}}
                if code_lines:
                    node["content"] = [{"type": "text", "text": "\n".join(code_lines)}]
                nodes.append(node)
                code_lines = None
            else:
                code_lines.append(line)
            continue

        stripped = line.strip()

        if stripped.startswith("```"):
            flush_paragraph()
            code_lines = []
            code_language = stripped[3:].strip()
            continue

        heading = _HEADING.match(stripped)
        if heading:
            flush_paragraph()
            nodes.append(
                {
                    "type": "heading",
                    "attrs": {"level": len(heading.group(1))},
                    "content": [{"type": "text", "text": heading.group(2)}],
                }
            )
            continue

        if _RULE.match(stripped):
            flush_paragraph()
            nodes.append({"type": "horizontalRule"})
            continue

        bullet = _BULLET.match(stripped)
        if bullet:
            flush_paragraph()
            item = {"type": "listItem", "content": [_paragraph(bullet.group(1))]}
            if nodes and nodes[-1]["type"] == "bulletList":
                nodes[-1]["content"].append(item)
            else:
                nodes.append({"type": "bulletList", "content": [item]})
            continue

        if not stripped:
            flush_paragraph()
            continue

        paragraph.append(line)

    # Unterminated fence: keep what we have as code
    if code_lines is not None:
        node = {"type": "codeBlock", "attrs": {"language": code_language or None}}
        if code_lines:
            node["content"] = [{"type": "text", "text": "\n".join(code_lines)}]
        nodes.append(node)

    flush_paragraph()

    if not nodes:
        return empty_document()

    return {"type": "doc", "content": nodes}
