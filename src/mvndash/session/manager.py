"""Session manager — the ordered set of project tabs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

from mvndash.config import DashConfig
from mvndash.errors import DiscoveryError, TabLimitError
from mvndash.process import ProcessSupervisor
from mvndash.project.discovery import ProjectInfo, discover_project
from mvndash.session.tab import Session
from mvndash.store.favorites import Favorites
from mvndash.store.history import CommandHistory
from mvndash.store.preferences import RecentProjects

logger = logging.getLogger(__name__)

Discover = Callable[..., ProjectInfo]


class SessionManager:
    """Owns the tabs, the active index and the shared stores.

    ``active_index`` is valid whenever there is at least one session. With
    no sessions ``active`` is None; callers check ``is_empty`` first.
    """

    MAX_SESSIONS = 10

    def __init__(
        self,
        config: DashConfig,
        supervisor: ProcessSupervisor | None = None,
        discover: Discover = discover_project,
        persist: bool = True,
    ) -> None:
        self.config = config
        self.supervisor = supervisor or ProcessSupervisor(config.process.kill_grace_period)
        self._discover = discover
        self.persist = persist
        self.sessions: list[Session] = []
        self.active_index = 0

        if persist:
            data_dir = config.data_path
            self.history = CommandHistory.load(data_dir)
            self.favorites = Favorites.load(data_dir)
            self.recent: RecentProjects | None = RecentProjects.load(data_dir)
        else:
            self.history = CommandHistory()
            self.favorites = Favorites()
            self.recent = None

    # -- tabs ----------------------------------------------------------

    @property
    def active(self) -> Session | None:
        if not self.sessions:
            return None
        return self.sessions[self.active_index]

    @property
    def is_empty(self) -> bool:
        return not self.sessions

    def __len__(self) -> int:
        return len(self.sessions)

    def find(self, root: Path) -> int | None:
        for i, session in enumerate(self.sessions):
            if session.root == root:
                return i
        return None

    def create_session(self, path: str | os.PathLike[str]) -> Session:
        """Open a tab for the project containing ``path`` and make it active.

        A project that is already open is just switched to.

        Raises:
            DiscoveryError: ``path`` is not inside a Maven project, or
                discovery failed or timed out. No tab is added.
            TabLimitError: ``MAX_SESSIONS`` tabs are already open.
        """
        info = self._discover(path, timeout=self.config.process.discovery_timeout)

        existing = self.find(info.root)
        if existing is not None:
            logger.info("Project %s already open in tab %d", info.root, existing)
            self.active_index = existing
            return self.sessions[existing]

        if len(self.sessions) >= self.MAX_SESSIONS:
            raise TabLimitError(
                f"Maximum of {self.MAX_SESSIONS} tabs reached, close one first"
            )

        try:
            config = self.config.for_project(info.root)
        except (OSError, ValueError) as e:
            raise DiscoveryError(f"Invalid project config in {info.root}: {e}") from e

        session = Session(
            info,
            config,
            self.supervisor,
            history=self.history,
            favorites=self.favorites,
            recent=self.recent,
            persist=self.persist,
        )
        session.start_watching()
        self.sessions.append(session)
        self.active_index = len(self.sessions) - 1
        if self.recent is not None:
            self.recent.add(info.root)
        logger.info("Opened tab %d for %s", self.active_index, info.root)
        return session

    def close_session(self, index: int | None = None) -> bool:
        """Close a tab (the active one by default), stopping its build."""
        if index is None:
            index = self.active_index
        if not 0 <= index < len(self.sessions):
            return False
        session = self.sessions.pop(index)
        session.cleanup()
        logger.info("Closed tab %d (%s)", index, session.name)

        if not self.sessions:
            self.active_index = 0
        elif self.active_index > index or self.active_index >= len(self.sessions):
            self.active_index = max(self.active_index - 1, 0)
        return True

    def switch_to(self, index: int) -> None:
        if self.sessions:
            self.active_index = max(0, min(index, len(self.sessions) - 1))

    def next_session(self) -> None:
        if self.sessions:
            self.active_index = (self.active_index + 1) % len(self.sessions)

    def previous_session(self) -> None:
        if self.sessions:
            self.active_index = (self.active_index - 1) % len(self.sessions)

    # -- input and ticks -----------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Route a key to the active session; tab keys are handled here."""
        session = self.active
        if session is None:
            return False
        if session.popup is None and not session.search.is_live:
            if key == "ctrl+w":
                self.close_session()
                return True
            if key == "ctrl+right":
                self.next_session()
                return True
            if key == "ctrl+left":
                self.previous_session()
                return True

        handled = session.handle_key(key)
        if session.pending_open is not None:
            path, session.pending_open = session.pending_open, None
            self.open_or_report(path)
        return handled

    def open_or_report(self, path: str | os.PathLike[str]) -> Session | None:
        """``create_session`` with failures turned into status text."""
        try:
            return self.create_session(path)
        except (DiscoveryError, TabLimitError) as e:
            logger.warning("Cannot open %s: %s", path, e)
            if self.active is not None:
                self.active.status = str(e)
            return None

    def poll(self) -> bool:
        """Drain every session's events. Returns True if anything changed."""
        changed = False
        for session in self.sessions:
            if session.poll():
                changed = True
        return changed

    def has_running_processes(self) -> bool:
        return any(s.is_running for s in self.sessions)

    def count_running(self) -> int:
        return sum(1 for s in self.sessions if s.is_running)

    def cleanup(self) -> None:
        logger.info("Cleaning up %d tab(s)", len(self.sessions))
        for session in self.sessions:
            session.cleanup()
        self.supervisor.cleanup()
