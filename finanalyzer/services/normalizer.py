# =============================================================================
# Output Normalization — Deterministic, No LLM
# =============================================================================
#
# The last word on report/answer formatting for both pipelines:
#   report sections → one "• " bullet per line, no markdown characters,
#                     no blank or duplicate lines
#   answers         → single-spaced, trimmed prose
# =============================================================================

from __future__ import annotations

import re

BULLET = "• "

# Characters a report section must never contain.
MARKDOWN_CHARS = "*#_`"

# Leading list markers an LLM may emit instead of (or before) "•".
_LEADING_MARKER_RE = re.compile(r"^(?:[•·▪]\s*|[-–+]\s+|\d{1,2}[.)]\s+)")
_MARKDOWN_RE = re.compile(r"[*#_`]")
_WHITESPACE_RE = re.compile(r"\s+")


def limit_text(text: str | None, max_length: int) -> str:
    """Truncate to at most max_length characters, marking the cut with '...'."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return f"{text[: max_length - 3]}..."


def _strip_leading_markers(line: str) -> str:
    previous = None
    while previous != line:
        previous = line
        line = _LEADING_MARKER_RE.sub("", line, count=1).strip()
    return line


def format_report_bullets(content: str) -> str:
    """
    Normalize a report section into plain "• " bullets.

    Every surviving line starts with exactly one "• " and contains none of
    the characters in MARKDOWN_CHARS. Identical lines are kept once.
    """
    lines: list[str] = []
    seen: set[str] = set()
    for raw_line in (content or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        line = _MARKDOWN_RE.sub("", line)
        line = _strip_leading_markers(line)
        line = _WHITESPACE_RE.sub(" ", line).strip()
        if not line:
            continue
        bullet = f"{BULLET}{line}"
        if bullet not in seen:
            seen.add(bullet)
            lines.append(bullet)
    return "\n".join(lines)


def normalize_answer(content: str) -> str:
    """Collapse all whitespace to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", content or "").strip()
