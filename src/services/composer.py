"""
Directive Composer - builds the plain-text export prompt.

compose() is a pure function: identical inputs give byte-identical output.
The prompt carries exactly one bridge marker line, `[[BRIDGE:<key>]]`, as
its last line.
"""

import re
from collections.abc import Iterable

from src.models.bridge import Directive
from src.models.entry import Entry

BRIDGE_MARKER_PATTERN = re.compile(r"\[\[BRIDGE:([A-Za-z0-9]+)\]\]")

_DIRECTIVE_TEXT = {
    Directive.DUMP: """<directive>
You are a thinking partner helping to refactor and restructure notes.

TASK: Analyze the provided context and improve its organization, clarity, and coherence.

Focus on:
- Logical flow and structure
- Removing redundancy
- Clarifying ambiguous points
- Suggesting better organization (headings, lists, groupings)
- Preserving all original information (do not omit important details)
</directive>""",
    Directive.CRITIQUE: """<directive>
You are a critical thinking partner analyzing these notes.

TASK: Identify logical gaps, inconsistencies, missing information, and potential improvements.
Do not rewrite the notes.

Structure your critique:
1. **Strengths:** What works well (be brief)
2. **Gaps:** Missing information or unexplored angles
3. **Inconsistencies:** Conflicting statements or logic errors
4. **Questions:** Key questions that need answers
5. **Recommendations:** Specific next steps

Be constructive and specific. Cite which parts you're referencing.
</directive>""",
    Directive.GENERATE: """<directive>
You are a creative thinking partner helping to expand these notes.

TASK: Generate new content that builds upon, complements, or extends the provided context.

Guidelines:
- Maintain consistency with existing ideas
- Add concrete examples, details, or elaborations
- Explore implications or applications
- Suggest related concepts or connections
- Clearly mark speculative ideas vs. extensions of stated facts
</directive>""",
}

_CONTENT_HINT = {
    Directive.DUMP: "Your refactored content here in Markdown format",
    Directive.CRITIQUE: "Your critique here in Markdown format, following the structure above",
    Directive.GENERATE: "Your generated content here in Markdown format",
}

_OUTPUT_FORMAT = """<output_format>
You MUST wrap your entire response in the following structure:

<kolam_response directive="{directive}">
<ai_model>YOUR_MODEL_NAME (e.g., Claude 3.5 Sonnet, GPT-4, Gemini Pro)</ai_model>
<summary>One-sentence summary of what you did</summary>
<content>
[{content_hint}]
</content>
</kolam_response>

After the structure, repeat the bridge line that ends this message exactly as written,
on its own line. The application uses it to match your response to this request.
</output_format>"""


def bridge_marker(bridge_key: str) -> str:
    """The marker line embedded in exports, e.g. "[[BRIDGE:k3v9x0qa]]"."""
    return f"[[BRIDGE:{bridge_key}]]"


def defuse_markers(text: str) -> str:
    """Break up marker-shaped text inside entry content so an export holds one marker."""
    return BRIDGE_MARKER_PATTERN.sub(lambda match: f"[ [BRIDGE:{match.group(1)}] ]", text)


def format_entry(entry: Entry) -> str:
    """Render one entry with XML-style delimiters."""
    tag = f"{entry.role.value}_entry"
    body = defuse_markers(entry.plain_text())
    return (
        f'<{tag} id="{entry.id}" sequence="{entry.sequence_id}" '
        f'timestamp="{entry.created_at.isoformat()}">\n{body}\n</{tag}>'
    )


def compose(directive: Directive | str, entries: Iterable[Entry], bridge_key: str) -> str:
    """
    Build the export text for a directive.

    Args:
        directive: DUMP, CRITIQUE or GENERATE
        entries: Staged entries, in any order; rendered by sequence ID
        bridge_key: Key to embed in the marker line

    Returns:
        Plain text ready to paste into a chat window

    Raises:
        ValueError: If the directive is unknown or the key is not alphanumeric
    """
    directive = Directive(directive)
    if not bridge_key or not bridge_key.isalnum():
        raise ValueError(f"Bridge key must be alphanumeric: {bridge_key!r}")

    ordered = sorted(entries, key=lambda entry: entry.sequence_id)
    context = "\n\n".join(format_entry(entry) for entry in ordered)

    sections = [
        _DIRECTIVE_TEXT[directive],
        f"<context>\n{context}\n</context>",
        _OUTPUT_FORMAT.format(
            directive=directive.value, content_hint=_CONTENT_HINT[directive]
        ),
        bridge_marker(bridge_key),
    ]
    return "\n\n".join(sections)
