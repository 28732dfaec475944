"""Session engine: tabs, output buffers, search and popups."""

from mvndash.session.buffer import OutputBuffer, OutputLine
from mvndash.session.focus import Focus
from mvndash.session.manager import SessionManager
from mvndash.session.search import SearchController, SearchMatch, SearchState
from mvndash.session.tab import RunState, Session

__all__ = [
    "Focus",
    "OutputBuffer",
    "OutputLine",
    "RunState",
    "SearchController",
    "SearchMatch",
    "SearchState",
    "Session",
    "SessionManager",
]
