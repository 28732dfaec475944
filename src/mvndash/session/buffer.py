"""Rolling output buffer for build sessions."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator

from mvndash.text import normalize_line


@dataclass(frozen=True)
class OutputLine:
    """A normalized output line and its ingestion index."""

    index: int
    text: str


class OutputBuffer:
    """Ordered store of normalized lines for one session.

    Keeps at most ``max_lines`` lines; the oldest are dropped first. Every
    stored line gets the next value of a counter that is never reset, so
    indices strictly increase for the whole life of the session, across
    ``clear()`` and trimming alike.

    Only the render thread touches a buffer, so there is no locking.
    """

    def __init__(self, max_lines: int = 10_000) -> None:
        self._lines: deque[OutputLine] = deque(maxlen=max_lines)
        self._next_index: int = 0

    def append(self, raw: str) -> OutputLine | None:
        """Normalize and store a raw line.

        Returns the stored line, or None when normalization left nothing
        visible and the line was dropped.
        """
        text = normalize_line(raw)
        if text is None:
            return None
        line = OutputLine(index=self._next_index, text=text)
        self._next_index += 1
        self._lines.append(line)
        return line

    def extend(self, raws: list[str]) -> list[OutputLine]:
        """Append several raw lines, returning the ones actually stored."""
        stored = []
        for raw in raws:
            line = self.append(raw)
            if line is not None:
                stored.append(line)
        return stored

    def lines(self) -> list[OutputLine]:
        return list(self._lines)

    def texts(self) -> list[str]:
        return [line.text for line in self._lines]

    def read_tail(self, n: int = 100) -> list[OutputLine]:
        """Read the last N lines."""
        if n <= 0:
            return []
        lines = list(self._lines)
        return lines[-n:]

    def position_of(self, index: int) -> int | None:
        """Position in the current buffer of the line with ``index``."""
        if not self._lines:
            return None
        first = self._lines[0].index
        pos = index - first
        if 0 <= pos < len(self._lines) and self._lines[pos].index == index:
            return pos
        return None

    def clear(self) -> None:
        """Drop all lines. The index counter keeps counting."""
        self._lines.clear()

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def total_lines(self) -> int:
        """Total number of lines ever stored."""
        return self._next_index

    @property
    def max_lines(self) -> int | None:
        return self._lines.maxlen

    def __iter__(self) -> Iterator[OutputLine]:
        return iter(self._lines)

    def __len__(self) -> int:
        return len(self._lines)
