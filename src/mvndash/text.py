"""Log-line normalization applied before lines reach the output buffer."""

from __future__ import annotations

import re

# CSI sequences: ESC [ parameters intermediates final-byte
_CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
# Two-character escapes such as ESC M or ESC =
_ESC_RE = re.compile(r"\x1b[=>@-Z\\-_]")


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ESC_RE.sub("", _CSI_RE.sub("", text))


def normalize_line(raw: str) -> str | None:
    """Normalize a raw output line for display and search.

    Escape sequences and carriage returns are removed and trailing
    whitespace trimmed. Returns ``None`` when nothing visible remains, so
    callers drop the line instead of storing an empty entry.
    """
    cleaned = strip_ansi(raw).replace("\r", "").rstrip()
    if not cleaned.strip():
        return None
    return cleaned
