"""Turn a raw LLM completion into bare Mermaid source.

Models wrap diagrams in code fences, lead with a sentence of preamble and
trail off into explanations. The cleaner is a line scanner with three
states::

    BEFORE_DIAGRAM --(keyword header line)--> IN_DIAGRAM
    IN_DIAGRAM     --(fence or trailing prose)---> DONE

Lines are only captured while IN_DIAGRAM.
"""

from __future__ import annotations

import re
from enum import Enum

DIAGRAM_KEYWORDS = ("flowchart", "graph")

_FENCE_RE = re.compile(r"^\s*```")
_NUMBERED_ITEM_RE = re.compile(r"^\d+\.(\s|$)")
_PROSE_PREFIXES = (
    "This diagram",
    "The diagram",
    "This flowchart",
    "The flowchart",
    "The flow shows",
    "This illustrates",
    "This shows",
    "Note:",
    "Explanation",
    "Key components",
)


class _State(Enum):
    BEFORE_DIAGRAM = "before-diagram"
    IN_DIAGRAM = "in-diagram"
    DONE = "done"


def is_diagram_header(line: str, keywords: tuple[str, ...] = DIAGRAM_KEYWORDS) -> bool:
    """True if *line* opens with one of *keywords* as a whole word (``graphically`` does not)."""
    for keyword in keywords:
        rest = line[len(keyword) :]
        if line.startswith(keyword) and (not rest or rest[0].isspace()):
            return True
    return False


def is_trailing_prose(line: str) -> bool:
    """Return True if a stripped diagram-body *line* reads like explanation text."""
    return line.startswith(_PROSE_PREFIXES) or bool(_NUMBERED_ITEM_RE.match(line))


def strip_code_fences(text: str) -> str:
    """Drop a leading ```lang line and a trailing ``` line, whatever the language tag."""
    lines = text.strip().splitlines()
    if lines and _FENCE_RE.match(lines[0]):
        lines = lines[1:]
    if lines and _FENCE_RE.match(lines[-1]):
        lines = lines[:-1]
    return "\n".join(lines)


def clean_diagram_response(
    response: str,
    keywords: tuple[str, ...] = DIAGRAM_KEYWORDS,
) -> str:
    """Extract the diagram body from *response*.

    Returns ``""`` when no line starts with one of *keywords*. Already-clean
    input (no fences, no prose) comes back unchanged.
    """
    state = _State.BEFORE_DIAGRAM
    captured: list[str] = []

    for line in strip_code_fences(response).splitlines():
        stripped = line.strip()
        if state is _State.BEFORE_DIAGRAM:
            if is_diagram_header(stripped, keywords):
                state = _State.IN_DIAGRAM
                captured.append(stripped)
            continue

        # IN_DIAGRAM
        if _FENCE_RE.match(line) or is_trailing_prose(stripped):
            state = _State.DONE
            break
        captured.append(line)

    return "\n".join(captured).strip()
