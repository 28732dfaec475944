"""File-watch triggered re-runs."""

from mvndash.watch.debounce import Debouncer
from mvndash.watch.observer import ProjectWatcher, normalize_patterns

__all__ = ["Debouncer", "ProjectWatcher", "normalize_patterns"]
