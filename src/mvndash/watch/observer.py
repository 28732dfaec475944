"""watchdog adapter feeding relevant source changes into a Debouncer."""

from __future__ import annotations

import fnmatch
import logging
import os
import queue
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from mvndash.watch.debounce import Debouncer

logger = logging.getLogger(__name__)

# Only content changes; opened/closed and attribute-only events are ignored.
_RELEVANT_EVENTS = {"created", "modified", "deleted", "moved"}

_IGNORED_SUFFIXES = (".swp", ".tmp", ".bak", "~")


def normalize_patterns(patterns: list[str]) -> list[str]:
    """Forward slashes, no leading ``./``, plus a variant for every ``**/``.

    ``*.xml`` also gets ``**/*.xml`` so bare names match at any depth, and
    ``src/**/*.java`` also gets ``src/*.java`` so ``**`` can match zero
    directories.
    """
    normalized: list[str] = []

    def add(pattern: str) -> None:
        if pattern and pattern not in normalized:
            normalized.append(pattern)

    for raw in patterns:
        pattern = raw.strip().replace("\\", "/")
        while pattern.startswith("./"):
            pattern = pattern[2:]
        if not pattern:
            continue
        add(pattern)
        if "/" not in pattern:
            add(f"**/{pattern}")
        if pattern.startswith("**/"):
            add(pattern[3:])
        if "/**/" in pattern:
            add(pattern.replace("/**/", "/"))
    return normalized


def matches_patterns(relative_path: str, patterns: list[str]) -> bool:
    if not patterns:
        return True
    return any(fnmatch.fnmatchcase(relative_path, p) for p in patterns)


class _ChangeHandler(FileSystemEventHandler):
    """Runs on the watchdog thread; only ever touches the queue."""

    def __init__(self, is_relevant: Callable[[str], bool], sink: queue.SimpleQueue[str]) -> None:
        super().__init__()
        self._is_relevant = is_relevant
        self._sink = sink

    def _handle(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        for path in paths:
            if self._is_relevant(path):
                self._sink.put(path)
                return

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event)


class ProjectWatcher:
    """Recursive watch on a project root, filtered by glob patterns.

    Events cross from the watchdog thread through a queue; ``check_changes``
    drains it on the caller's thread and asks the debouncer whether to fire.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        patterns: list[str],
        debounce_ms: int = 500,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.patterns = normalize_patterns(patterns)
        self.debouncer = Debouncer(debounce_ms / 1000, clock or time.monotonic)
        self._events: queue.SimpleQueue[str] = queue.SimpleQueue()
        self._observer: Observer | None = None

    def is_relevant(self, path: str) -> bool:
        p = Path(path)
        if p.name.endswith(_IGNORED_SUFFIXES):
            return False
        try:
            relative = p.resolve().relative_to(self.root).as_posix()
        except ValueError:
            relative = p.as_posix()
        if relative.startswith("target/") or "/target/" in relative:
            return False
        return matches_patterns(relative, self.patterns)

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.daemon = True
        observer.schedule(
            _ChangeHandler(self.is_relevant, self._events), str(self.root), recursive=True
        )
        observer.start()
        self._observer = observer
        logger.info("Watching %s (%s)", self.root, ", ".join(self.patterns))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2)
        self._observer = None
        logger.debug("Stopped watching %s", self.root)

    @property
    def running(self) -> bool:
        return self._observer is not None

    def notify(self, path: str) -> None:
        """Feed a path as if the observer had reported it."""
        if self.is_relevant(path):
            self._events.put(path)

    def check_changes(self) -> bool:
        while True:
            try:
                path = self._events.get_nowait()
            except queue.Empty:
                break
            logger.debug("File change detected: %s", path)
            self.debouncer.record()
        return self.debouncer.check_changes()
