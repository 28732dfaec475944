"""Error taxonomy shared by the session engine."""

from __future__ import annotations


class MvnDashError(Exception):
    """Base class for all mvndash errors."""


class SpawnError(MvnDashError):
    """The executable could not be found or the OS refused to start it."""


class KillError(MvnDashError):
    """A cancel request could not be delivered to the process."""


class PatternError(MvnDashError):
    """A search query is not a valid regular expression."""

    def __init__(self, query: str, reason: str) -> None:
        super().__init__(f"Invalid pattern {query!r}: {reason}")
        self.query = query
        self.reason = reason


class DiscoveryError(MvnDashError):
    """A path is not a recognizable project root, or discovery timed out."""


class ChannelError(MvnDashError):
    """A process worker went away without delivering its terminal event."""


class TabLimitError(MvnDashError):
    """No more tabs can be opened until one is closed."""
