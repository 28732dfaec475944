"""Tests for mvndash.session.search."""

from __future__ import annotations

import pytest

from mvndash.errors import PatternError
from mvndash.session.buffer import OutputBuffer, OutputLine
from mvndash.session.search import (
    SearchController,
    SearchMatch,
    SearchState,
    compile_pattern,
    search,
)


def _lines(*texts: str) -> list[OutputLine]:
    return [OutputLine(i, t) for i, t in enumerate(texts)]


SAMPLE = _lines("this is a test", "another test line", "nothing")


class TestSearch:
    def test_finds_matches_in_order(self) -> None:
        state = search(SAMPLE, "test")
        assert state.matches == [SearchMatch(0, 10, 14), SearchMatch(1, 8, 12)]
        assert state.current == 0

    def test_no_matches(self) -> None:
        state = search(SAMPLE, "missing")
        assert not state.has_matches
        assert state.current is None
        assert state.next() is None
        assert state.status() == "/missing: no matches"

    def test_multiple_matches_on_one_line(self) -> None:
        state = search(_lines("a-a-a"), "a")
        assert [(m.start, m.end) for m in state.matches] == [(0, 1), (2, 3), (4, 5)]

    def test_regex_pattern(self) -> None:
        state = search(_lines("Tests run: 12, Failures: 0"), r"\d+")
        assert state.total == 2

    def test_invalid_pattern(self) -> None:
        with pytest.raises(PatternError) as exc_info:
            compile_pattern("[unclosed")
        assert exc_info.value.query == "[unclosed"

    def test_uses_line_index_not_position(self) -> None:
        lines = [OutputLine(40, "x"), OutputLine(41, "y x")]
        state = search(lines, "x")
        assert [m.line_index for m in state.matches] == [40, 41]


class TestNavigation:
    def test_next_wraps(self) -> None:
        state = search(SAMPLE, "test")
        assert state.next() == SearchMatch(1, 8, 12)
        assert state.next() == SearchMatch(0, 10, 14)
        assert state.current == 0

    def test_previous_wraps(self) -> None:
        state = search(SAMPLE, "test")
        assert state.previous() == SearchMatch(1, 8, 12)
        assert state.current == 1

    def test_full_cycle_returns_to_start(self) -> None:
        state = search(_lines("a b a", "a", "c a"), "a")
        start = state.current
        for _ in range(state.total):
            state.next()
        assert state.current == start

    def test_jump_to_ignores_out_of_range(self) -> None:
        state = search(SAMPLE, "test")
        state.jump_to(1)
        assert state.current == 1
        state.jump_to(7)
        assert state.current == 1

    def test_status(self) -> None:
        state = search(SAMPLE, "test")
        state.next()
        assert state.status() == "/test: 2/2"

    def test_matches_on_line_marks_current(self) -> None:
        state = search(_lines("test test"), "test")
        assert state.matches_on_line(0) == [(0, 4, True), (5, 9, False)]
        assert state.matches_on_line(3) == []

    def test_state_without_matches_has_no_cursor(self) -> None:
        assert SearchState(query="q", current=2).current is None


class TestSearchController:
    def test_live_input_searches_as_you_type(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        assert ctrl.is_live
        for ch in "test":
            ctrl.push_char(ch, SAMPLE)
        assert ctrl.state is not None and ctrl.state.total == 2
        assert ctrl.status() == "/test  (2 matches)"

    def test_invalid_pattern_keeps_prior_state(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        for ch in "test":
            ctrl.push_char(ch, SAMPLE)
        before = ctrl.state
        ctrl.push_char("(", SAMPLE)
        assert ctrl.state is before
        assert ctrl.error
        assert "[" in (ctrl.status() or "")
        ctrl.backspace(SAMPLE)
        assert ctrl.error is None

    def test_submit_confirms_and_records_history(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        for ch in "line":
            ctrl.push_char(ch, SAMPLE)
        ctrl.submit(SAMPLE)
        assert not ctrl.is_live
        assert ctrl.history == ["line"]
        assert ctrl.status() == "/line: 1/1"

    def test_submit_invalid_stays_in_input(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        ctrl.push_char("[", SAMPLE)
        ctrl.submit(SAMPLE)
        assert ctrl.is_live
        assert ctrl.history == []

    def test_submit_empty_clears(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        ctrl.submit(SAMPLE)
        assert not ctrl.is_live
        assert ctrl.state is None

    def test_confirmed_search_is_not_recomputed(self) -> None:
        buf = OutputBuffer()
        buf.extend(["one error"])
        ctrl = SearchController()
        ctrl.begin_input()
        for ch in "error":
            ctrl.push_char(ch, buf.lines())
        ctrl.submit(buf.lines())
        buf.extend(["two error"])
        ctrl.refresh(buf.lines())
        assert ctrl.state is not None and ctrl.state.total == 1

    def test_live_refresh_keeps_cursor(self) -> None:
        buf = OutputBuffer()
        buf.extend(["error a", "error b"])
        ctrl = SearchController()
        ctrl.begin_input()
        for ch in "error":
            ctrl.push_char(ch, buf.lines())
        ctrl.next_match()
        buf.extend(["error c"])
        ctrl.refresh(buf.lines())
        assert ctrl.state is not None
        assert ctrl.state.total == 3
        assert ctrl.state.current == 1

    def test_history_recall(self) -> None:
        ctrl = SearchController()
        for query in ("alpha", "beta"):
            ctrl.begin_input()
            for ch in query:
                ctrl.push_char(ch, SAMPLE)
            ctrl.submit(SAMPLE)
        ctrl.begin_input()
        ctrl.recall_previous()
        assert ctrl.input == "beta"
        ctrl.recall_previous()
        assert ctrl.input == "alpha"
        ctrl.recall_previous()
        assert ctrl.input == "alpha"
        ctrl.recall_next()
        assert ctrl.input == "beta"
        ctrl.recall_next()
        assert ctrl.input == ""

    def test_reset(self) -> None:
        ctrl = SearchController()
        ctrl.begin_input()
        ctrl.push_char("t", SAMPLE)
        ctrl.reset()
        assert ctrl.state is None
        assert not ctrl.is_live
        assert ctrl.status() is None
        assert ctrl.next_match() is None
