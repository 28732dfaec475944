"""Regex search over session output, with cyclic match navigation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from mvndash.errors import PatternError
from mvndash.session.buffer import OutputLine


@dataclass(frozen=True)
class SearchMatch:
    """A match inside one output line; ``start``/``end`` index its text."""

    line_index: int
    start: int
    end: int


@dataclass
class SearchState:
    """Ordered matches plus a cursor.

    ``current`` is None exactly when there are no matches.
    """

    query: str
    matches: list[SearchMatch] = field(default_factory=list)
    current: int | None = None

    def __post_init__(self) -> None:
        if self.matches and self.current is None:
            self.current = 0
        elif not self.matches:
            self.current = None

    @property
    def has_matches(self) -> bool:
        return bool(self.matches)

    @property
    def total(self) -> int:
        return len(self.matches)

    def current_match(self) -> SearchMatch | None:
        if self.current is None:
            return None
        return self.matches[self.current]

    def next(self) -> SearchMatch | None:
        """Advance to the next match, wrapping from the last to the first."""
        if self.current is None:
            return None
        self.current = (self.current + 1) % len(self.matches)
        return self.matches[self.current]

    def previous(self) -> SearchMatch | None:
        """Step back one match, wrapping from the first to the last."""
        if self.current is None:
            return None
        self.current = (self.current - 1) % len(self.matches)
        return self.matches[self.current]

    def jump_to(self, index: int) -> None:
        if 0 <= index < len(self.matches):
            self.current = index

    def matches_on_line(self, line_index: int) -> list[tuple[int, int, bool]]:
        """(start, end, is_current) spans for highlighting one line."""
        current = self.current_match()
        return [
            (m.start, m.end, m == current)
            for m in self.matches
            if m.line_index == line_index
        ]

    def status(self) -> str:
        if self.current is None:
            return f"/{self.query}: no matches"
        return f"/{self.query}: {self.current + 1}/{len(self.matches)}"


def compile_pattern(query: str) -> re.Pattern[str]:
    """Compile a search query.

    Raises:
        PatternError: the query is not a valid regular expression.
    """
    try:
        return re.compile(query)
    except re.error as e:
        raise PatternError(query, str(e)) from e


def compute(lines: Iterable[OutputLine], pattern: re.Pattern[str]) -> list[SearchMatch]:
    """Collect non-overlapping matches, ordered by (line_index, start)."""
    matches: list[SearchMatch] = []
    for line in lines:
        for m in pattern.finditer(line.text):
            matches.append(SearchMatch(line.index, m.start(), m.end()))
    return matches


def search(lines: Iterable[OutputLine], query: str) -> SearchState:
    """Compile ``query`` and run it over ``lines``.

    Raises:
        PatternError: invalid query.
    """
    return SearchState(query=query, matches=compute(lines, compile_pattern(query)))


class SearchController:
    """Search input, live/confirmed search state and query history for a session.

    A live search (``input`` is not None) is recomputed by the owning
    session whenever new lines arrive. A confirmed search is computed once
    on submit and left alone afterwards.
    """

    def __init__(self) -> None:
        self.state: SearchState | None = None
        self.input: str | None = None
        self.error: str | None = None
        self.history: list[str] = []
        self._history_index: int | None = None

    @property
    def is_live(self) -> bool:
        return self.input is not None

    def begin_input(self) -> None:
        self.input = ""
        self._history_index = None
        self.error = None

    def cancel_input(self) -> None:
        self.input = None
        self._history_index = None
        self.error = None

    def push_char(self, ch: str, lines: Iterable[OutputLine]) -> None:
        if self.input is None:
            return
        self.input += ch
        self._history_index = None
        self.refresh(lines)

    def backspace(self, lines: Iterable[OutputLine]) -> None:
        if self.input is None:
            return
        self.input = self.input[:-1]
        self._history_index = None
        self.refresh(lines)

    def refresh(self, lines: Iterable[OutputLine]) -> None:
        """Recompute the live search; a bad pattern keeps the prior state."""
        if self.input is None:
            return
        if not self.input:
            self.state = None
            self.error = None
            return
        self._apply(self.input, lines, keep_current=True)

    def submit(self, lines: Iterable[OutputLine]) -> None:
        if self.input is None:
            return
        query = self.input
        if not query:
            self.input = None
            self.state = None
            self.error = None
            self._history_index = None
            return
        if self._apply(query, lines, keep_current=False):
            if query not in self.history:
                self.history.append(query)
            self.input = None
            self._history_index = None

    def recall_previous(self) -> None:
        if not self.history or self.input is None:
            return
        if self._history_index is None:
            idx = len(self.history) - 1
        else:
            idx = max(self._history_index - 1, 0)
        self.input = self.history[idx]
        self._history_index = idx

    def recall_next(self) -> None:
        if not self.history or self._history_index is None:
            return
        idx = self._history_index + 1
        if idx < len(self.history):
            self.input = self.history[idx]
            self._history_index = idx
        else:
            self.input = ""
            self._history_index = None

    def next_match(self) -> SearchMatch | None:
        if self.state is None:
            return None
        return self.state.next()

    def previous_match(self) -> SearchMatch | None:
        if self.state is None:
            return None
        return self.state.previous()

    def reset(self) -> None:
        """Forget the current matches (the output they pointed at is gone)."""
        self.state = None
        self.input = None
        self.error = None
        self._history_index = None

    def status(self) -> str | None:
        if self.input is not None:
            text = f"/{self.input}"
            if self.error:
                return f"{text}  [{self.error}]"
            if self.state is not None:
                total = self.state.total
                return f"{text}  ({total} match{'es' if total != 1 else ''})"
            return text
        if self.state is not None:
            return self.state.status()
        return None

    def _apply(self, query: str, lines: Iterable[OutputLine], keep_current: bool) -> bool:
        try:
            pattern = compile_pattern(query)
        except PatternError as e:
            self.error = e.reason
            return False
        matches = compute(lines, pattern)
        current = None
        if keep_current and self.state is not None and self.state.current is not None and matches:
            current = min(self.state.current, len(matches) - 1)
        self.state = SearchState(query=query, matches=matches, current=current)
        self.error = None
        return True
