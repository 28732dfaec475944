"""One project tab: selections, output, the running build and its popups.

A ``Session`` is owned by the render thread. Process workers never touch
it; they only fill the handle's channel, which ``poll()`` drains once per
tick.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from mvndash.config import DashConfig
from mvndash.errors import ChannelError, KillError, SpawnError
from mvndash.process import ProcessEventType, ProcessHandle, ProcessOutcome, ProcessSupervisor
from mvndash.project.commands import ROOT_MODULE, build_args, format_command, resolve_executable
from mvndash.project.discovery import ProjectInfo
from mvndash.project.starters import find_potential_starters
from mvndash.project.strategy import LaunchStrategy, decide_launch_strategy, launch_goals
from mvndash.session.buffer import OutputBuffer
from mvndash.session.focus import Focus
from mvndash.session.popups import (
    CustomGoalPopup,
    FavoritesPopup,
    HelpPopup,
    HistoryPopup,
    Popup,
    PopupAction,
    PopupResult,
    ProjectPickerPopup,
    StarterManagerPopup,
    StarterPickerPopup,
)
from mvndash.session.search import SearchController, SearchMatch
from mvndash.store.favorites import Favorite, Favorites
from mvndash.store.history import CommandHistory, HistoryEntry, format_module
from mvndash.store.preferences import ModulePreferences, ProjectPreferences, RecentProjects
from mvndash.store.starters import Starter, StartersCache
from mvndash.watch import ProjectWatcher

logger = logging.getLogger(__name__)

PAGE_SIZE = 20

GOAL_KEYS: dict[str, list[str]] = {
    "b": ["clean", "install"],
    "C": ["clean"],
    "c": ["compile"],
    "k": ["package"],
    "t": ["test"],
    "i": ["install"],
    "d": ["dependency:tree"],
}

FOCUS_KEYS = {
    "0": Focus.OUTPUT,
    "1": Focus.PROJECTS,
    "2": Focus.MODULES,
    "3": Focus.PROFILES,
    "4": Focus.FLAGS,
}

HELP_LINES = [
    "Navigation",
    "  left/right, tab     cycle focus between panes",
    "  0-4                 focus output/projects/modules/profiles/flags",
    "  up/down             move selection / scroll output",
    "  pgup/pgdn home/end  scroll output",
    "  space/enter         toggle profile or flag",
    "Build",
    "  b  clean install    c  compile    C  clean",
    "  k  package          t  test       i  install",
    "  d  dependency:tree  s  run starter  S  manage starters",
    "  esc                 kill running build",
    "Popups",
    "  ctrl+h  history     ctrl+f  favorites   ctrl+s  save favorite",
    "  ctrl+r  recent projects                 ctrl+g  custom goals",
    "Search",
    "  /  search output    n/N  next/previous match",
    "  y  copy output to clipboard",
    "Tabs",
    "  ctrl+t  new tab     ctrl+w  close tab   ctrl+left/right  switch",
    "  ?  help             q  quit",
]


class RunState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class ProfileState(enum.Enum):
    DEFAULT = "default"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass
class MavenProfile:
    name: str
    auto_activated: bool = False
    state: ProfileState = ProfileState.DEFAULT

    @property
    def is_active(self) -> bool:
        if self.state is ProfileState.DEFAULT:
            return self.auto_activated
        return self.state is ProfileState.ENABLED

    def to_arg(self) -> str | None:
        """``name`` / ``!name`` for explicit states, None when left to Maven."""
        if self.state is ProfileState.ENABLED:
            return self.name
        if self.state is ProfileState.DISABLED:
            return f"!{self.name}"
        return None

    def toggle(self) -> None:
        if self.state is ProfileState.DEFAULT:
            self.state = ProfileState.DISABLED if self.auto_activated else ProfileState.ENABLED
        else:
            self.state = ProfileState.DEFAULT


@dataclass
class BuildFlag:
    name: str
    flag: str
    enabled: bool = False


BUILTIN_FLAGS = [
    ("Work offline", "-o"),
    ("Force update snapshots", "-U"),
    ("Debug output", "-X"),
    ("Skip tests", "-DskipTests"),
    ("Build with 4 threads", "-T 4"),
    ("Build dependencies", "--also-make"),
    ("Build dependents", "--also-make-dependents"),
]


@dataclass
class RunRequest:
    """Everything needed to (re)start one build."""

    module: str
    goals: list[str]
    profiles: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    use_file_flag: bool = False
    is_starter: bool = False


@dataclass(frozen=True)
class RunResult:
    outcome: ProcessOutcome
    code: int | None = None
    detail: str = ""
    duration: float = 0.0

    def describe(self) -> str:
        text = self.outcome.value.upper()
        if self.code is not None:
            text += f" (exit {self.code})"
        if self.detail:
            text += f": {self.detail}"
        return text


class Session:
    """Build console for one project."""

    def __init__(
        self,
        info: ProjectInfo,
        config: DashConfig,
        supervisor: ProcessSupervisor,
        history: CommandHistory | None = None,
        favorites: Favorites | None = None,
        recent: RecentProjects | None = None,
        watcher: ProjectWatcher | None = None,
        persist: bool = True,
    ) -> None:
        self.info = info
        self.root = info.root
        self.config = config
        self.supervisor = supervisor
        self.history = history if history is not None else CommandHistory()
        self.favorites = favorites if favorites is not None else Favorites()
        self.recent = recent
        self.watcher = watcher
        self.persist = persist

        self.modules = list(info.modules) or [ROOT_MODULE]
        self.module_index = 0
        self.profiles = [
            MavenProfile(name, auto_activated=name in info.auto_profiles)
            for name in info.profiles
        ]
        self.profile_index = 0
        self.flags = [BuildFlag(name, flag) for name, flag in BUILTIN_FLAGS]
        self.flags += [BuildFlag(f.name, f.flag, f.enabled) for f in config.custom_flags]
        self.flag_index = 0

        self.output = OutputBuffer(config.output.max_lines)
        self.output_offset = 0
        self.search = SearchController()
        self.focus = Focus.MODULES
        self.popup: Popup | None = None

        self.run_state = RunState.IDLE
        self.handle: ProcessHandle | None = None
        self.last_request: RunRequest | None = None
        self.last_command: str | None = None
        self.last_result: RunResult | None = None
        self.pending_run: RunRequest | None = None
        self.status = ""
        self.pending_open: Path | None = None

        self.preferences = (
            ProjectPreferences.load(config.data_path, self.root)
            if persist
            else ProjectPreferences()
        )
        self.starters = (
            StartersCache.load(config.data_path, self.root) if persist else StartersCache()
        )
        self._load_module_preferences()

    # -- state ---------------------------------------------------------

    @property
    def name(self) -> str:
        return self.root.name or str(self.root)

    @property
    def is_running(self) -> bool:
        return self.run_state is RunState.RUNNING

    def selected_module(self) -> str:
        return self.modules[self.module_index]

    def profile_args(self) -> list[str]:
        return [arg for arg in (p.to_arg() for p in self.profiles) if arg is not None]

    def enabled_flags(self) -> list[str]:
        return [f.flag for f in self.flags if f.enabled]

    def status_line(self) -> str:
        search_status = self.search.status()
        if search_status is not None:
            return search_status
        if self.status:
            return self.status
        if self.last_result is not None:
            return self.last_result.describe()
        return ""

    # -- running builds ------------------------------------------------

    def run(
        self,
        goals: list[str],
        properties: dict[str, str] | None = None,
        use_file_flag: bool = False,
        is_starter: bool = False,
    ) -> bool:
        """Run ``goals`` on the selected module with the current profiles and flags.

        If a build is already running it is cancelled and this one starts
        as soon as the old one has reported its end. Returns True when the
        process was started (or queued).
        """
        request = RunRequest(
            module=self.selected_module(),
            goals=list(goals),
            profiles=self.profile_args(),
            flags=self.enabled_flags(),
            properties=dict(properties or {}),
            use_file_flag=use_file_flag,
            is_starter=is_starter,
        )
        if self.is_running:
            self.pending_run = request
            logger.info("%s: build running, cancelling before %s", self.name, goals)
            self.kill()
            self.status = f"Restarting: {' '.join(goals)}"
            return True
        return self._start(request)

    def _start(self, request: RunRequest) -> bool:
        executable = resolve_executable(self.root)
        args = build_args(
            request.module,
            request.goals,
            profiles=request.profiles,
            properties=request.properties,
            flags=request.flags,
            settings_path=self.config.maven_settings,
            use_file_flag=request.use_file_flag,
            project_root=self.root,
        )
        command = format_command(executable, args)

        self.output.clear()
        self.output_offset = 0
        self.search.reset()
        self.output.append(f"$ {command}")

        self.last_request = request
        self.last_command = command
        self._record_history(request)

        try:
            self.handle = self.supervisor.start(self.root, executable, args)
        except SpawnError as e:
            logger.warning("%s: %s", self.name, e)
            self.output.append(f"[ERROR] {e}")
            self.last_result = RunResult(ProcessOutcome.ERROR, detail=str(e))
            self.status = str(e)
            return False

        self.run_state = RunState.RUNNING
        self.status = f"Running: {' '.join(request.goals)}"
        return True

    def _record_history(self, request: RunRequest) -> None:
        if request.is_starter:
            return
        self.history.add(
            HistoryEntry(
                project_root=str(self.root),
                module=request.module,
                goal=" ".join(request.goals),
                profiles=request.profiles,
                flags=request.flags,
            )
        )

    def kill(self) -> bool:
        """Ask the running build to stop. A no-op when nothing is running."""
        if self.handle is None or not self.is_running:
            return False
        try:
            sent = self.supervisor.cancel(self.handle)
        except KillError as e:
            logger.warning("%s: %s", self.name, e)
            self.status = str(e)
            return False
        if sent:
            self.status = "Stopping build..."
        return sent

    def poll(self) -> bool:
        """Drain the running build's events. Returns True if anything changed."""
        changed = False
        if self.handle is not None:
            changed = self._drain(self.handle)
        if self.pending_run is not None and not self.is_running:
            request, self.pending_run = self.pending_run, None
            self._start(request)
            changed = True
        if not self.is_running and self.check_watch():
            changed = True
        return changed

    def _drain(self, handle: ProcessHandle) -> bool:
        try:
            events = handle.drain()
        except ChannelError as e:
            logger.error("%s: %s", self.name, e)
            self.output.append(f"[ERROR] {e}")
            self._finish(RunResult(ProcessOutcome.ERROR, detail=str(e), duration=handle.elapsed))
            return True

        new_lines = False
        for event in events:
            if event.type is ProcessEventType.LINE:
                if self.output.append(event.text) is not None:
                    new_lines = True
            elif event.type is ProcessEventType.STARTED:
                logger.debug("%s: build started (pid=%s)", self.name, event.pid)
            elif event.type is ProcessEventType.COMPLETED:
                outcome = handle.outcome or (
                    ProcessOutcome.SUCCESS if event.code == 0 else ProcessOutcome.FAILURE
                )
                self._finish(RunResult(outcome, event.code, duration=handle.elapsed))
            elif event.type is ProcessEventType.ERROR:
                self.output.append(f"[ERROR] {event.message}")
                self._finish(
                    RunResult(ProcessOutcome.ERROR, detail=event.message, duration=handle.elapsed)
                )

        if new_lines and self.search.is_live:
            self.search.refresh(self.output.lines())
        return bool(events)

    def _finish(self, result: RunResult) -> None:
        self.handle = None
        self.run_state = RunState.IDLE
        self.last_result = result
        self.status = ""
        logger.info("%s: build finished: %s", self.name, result.describe())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the running build ends and its events are drained.

        For headless use; the TUI never calls this.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.is_running or self.pending_run is not None:
            handle = self.handle
            if handle is not None:
                remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
                handle.wait(remaining)
            self.poll()
            if deadline is not None and time.monotonic() >= deadline:
                return not (self.is_running or self.pending_run is not None)
        return True

    # -- file watching -------------------------------------------------

    def start_watching(self) -> None:
        if self.watcher is None and self.config.watch.enabled:
            self.watcher = ProjectWatcher(
                self.root, self.config.watch.patterns, self.config.watch.debounce_ms
            )
        if self.watcher is not None:
            self.watcher.start()

    def stop_watching(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()

    def _watch_applies(self, request: RunRequest) -> bool:
        commands = self.config.watch.commands
        if request.is_starter:
            return "start" in commands
        return any(goal in commands for goal in request.goals)

    def check_watch(self) -> bool:
        """Re-run the last build if watched files changed and it is a watch command."""
        if self.watcher is None or not self.watcher.check_changes():
            return False
        request = self.last_request
        if self.is_running or request is None or not self._watch_applies(request):
            return False
        logger.info("%s: files changed, re-running %s", self.name, request.goals)
        started = self._start(request)
        self.output.append("[mvndash] files changed, re-running")
        return started

    # -- selections ----------------------------------------------------

    def move(self, delta: int) -> None:
        """Move the cursor of the focused pane."""
        if self.focus is Focus.MODULES:
            index = max(0, min(self.module_index + delta, len(self.modules) - 1))
            if index != self.module_index:
                self._save_module_preferences()
                self.module_index = index
                self._load_module_preferences()
        elif self.focus is Focus.PROFILES and self.profiles:
            self.profile_index = max(0, min(self.profile_index + delta, len(self.profiles) - 1))
        elif self.focus is Focus.FLAGS and self.flags:
            self.flag_index = max(0, min(self.flag_index + delta, len(self.flags) - 1))
        elif self.focus is Focus.OUTPUT:
            self.scroll(-delta)

    def scroll(self, lines: int) -> None:
        """Scroll output; positive values go back in time."""
        limit = max(len(self.output) - 1, 0)
        self.output_offset = max(0, min(self.output_offset + lines, limit))

    def select_module(self, module: str) -> bool:
        if module not in self.modules:
            return False
        index = self.modules.index(module)
        if index != self.module_index:
            self._save_module_preferences()
            self.module_index = index
            self._load_module_preferences()
        return True

    def toggle_profile(self, index: int | None = None) -> None:
        if not self.profiles:
            return
        profile = self.profiles[self.profile_index if index is None else index]
        profile.toggle()
        logger.info("Profile %s: %s", profile.name, profile.state.value)
        self._save_module_preferences()

    def toggle_flag(self, index: int | None = None) -> None:
        if not self.flags:
            return
        flag = self.flags[self.flag_index if index is None else index]
        flag.enabled = not flag.enabled
        logger.info("Flag %s (%s): %s", flag.name, flag.flag, flag.enabled)
        self._save_module_preferences()

    def apply_selection(self, module: str, profiles: list[str], flags: list[str]) -> None:
        """Restore a module, explicit profile states and enabled flags."""
        self.select_module(module)
        for profile in self.profiles:
            if profile.name in profiles:
                profile.state = ProfileState.ENABLED
            elif f"!{profile.name}" in profiles:
                profile.state = ProfileState.DISABLED
            else:
                profile.state = ProfileState.DEFAULT
        for flag in self.flags:
            flag.enabled = flag.flag in flags

    def _save_module_preferences(self) -> None:
        prefs = ModulePreferences(
            active_profiles=self.profile_args(), enabled_flags=self.enabled_flags()
        )
        self.preferences.set(self.selected_module(), prefs)
        if self.persist:
            self.preferences.save(self.config.data_path, self.root)

    def _load_module_preferences(self) -> None:
        prefs = self.preferences.get(self.selected_module())
        if prefs is None:
            for profile in self.profiles:
                profile.state = ProfileState.DEFAULT
            return
        self.apply_selection(self.selected_module(), prefs.active_profiles, prefs.enabled_flags)

    # -- replay --------------------------------------------------------

    def replay(self, entry: HistoryEntry | Favorite) -> bool:
        self.apply_selection(entry.module, entry.profiles, entry.flags)
        return self.run(entry.goal.split())

    def save_favorite(self, name: str | None = None) -> Favorite | None:
        request = self.last_request
        if request is None or request.is_starter:
            self.status = "Run a command before saving it as a favorite"
            return None
        goal = " ".join(request.goals)
        favorite = Favorite(
            name=name or f"{format_module(request.module)}: {goal}",
            module=request.module,
            goal=goal,
            profiles=request.profiles,
            flags=request.flags,
        )
        self.favorites.add(favorite)
        self.status = f"Saved favorite {favorite.name!r}"
        return favorite

    def yank_output(self) -> str | None:
        """Output text for the clipboard, or None when there is nothing to copy."""
        lines = self.output.texts()
        if not lines:
            self.status = "No output to copy"
            return None
        logger.info("%s: copying %d output lines", self.name, len(lines))
        self.status = f"Copied {len(lines)} lines to clipboard"
        return "\n".join(lines)

    def run_custom_goal(self, index: int) -> bool:
        goals = self.config.custom_goals
        if not 0 <= index < len(goals):
            logger.warning("No custom goal at index %d", index + 1)
            return False
        return self.run(goals[index].goal.split())

    # -- starters ------------------------------------------------------

    def run_starter(self, fqcn: str) -> bool:
        capabilities = self.info.capabilities
        strategy = decide_launch_strategy(capabilities, self.config.launch_mode)
        goals, properties = launch_goals(strategy, fqcn, capabilities)
        self.starters.set_last_used(fqcn)
        self._save_starters()
        return self.run(
            goals,
            properties,
            use_file_flag=strategy is LaunchStrategy.EXEC_JAVA,
            is_starter=True,
        )

    def run_preferred_starter(self) -> bool:
        preferred = self.starters.preferred()
        if preferred is not None:
            return self.run_starter(preferred.fqcn)
        self.open_starter_picker()
        return False

    def _save_starters(self) -> None:
        if self.persist:
            self.starters.save(self.config.data_path, self.root)

    # -- popups --------------------------------------------------------

    def open_history(self) -> None:
        self.popup = HistoryPopup(items=self.history.for_project(str(self.root)))

    def open_favorites(self) -> None:
        self.popup = FavoritesPopup(items=self.favorites.list())

    def open_project_picker(self) -> None:
        projects = self.recent.projects() if self.recent is not None else []
        self.popup = ProjectPickerPopup(items=projects)

    def open_starter_picker(self) -> None:
        candidates = find_potential_starters(self.root)
        if not candidates:
            self.status = "No main classes found"
            return
        self.popup = StarterPickerPopup(items=candidates)

    def open_starter_manager(self) -> None:
        self.popup = StarterManagerPopup(items=list(self.starters.starters))

    def open_custom_goals(self) -> None:
        if not self.config.custom_goals:
            self.status = "No custom goals configured"
            return
        self.popup = CustomGoalPopup(items=list(self.config.custom_goals))

    def open_help(self) -> None:
        self.popup = HelpPopup(lines=list(HELP_LINES))

    def _handle_popup_key(self, popup: Popup, key: str) -> bool:
        result = popup.handle_key(key)
        if result.action is PopupAction.DISMISS:
            self.popup = None
        elif result.action is not PopupAction.NONE:
            self._on_popup_result(popup, result)
        return True

    def _on_popup_result(self, popup: Popup, result: PopupResult) -> None:
        value = result.value
        if isinstance(popup, (HistoryPopup, FavoritesPopup)):
            if result.action is PopupAction.DELETE and isinstance(popup, FavoritesPopup):
                self.favorites.remove(value.name)
                popup.items = self.favorites.list()
                popup.selected = 0
                return
            self.popup = None
            self.replay(value)
        elif isinstance(popup, ProjectPickerPopup):
            self.popup = None
            self.pending_open = value
        elif isinstance(popup, StarterPickerPopup):
            self.popup = None
            label = value.rsplit(".", 1)[-1]
            self.starters.add(
                Starter(fqcn=value, label=label, is_default=not self.starters.starters)
            )
            self.run_starter(value)
        elif isinstance(popup, StarterManagerPopup):
            if result.action is PopupAction.SELECT:
                self.popup = None
                self.run_starter(value.fqcn)
                return
            if result.action is PopupAction.TOGGLE_DEFAULT:
                self.starters.toggle_default(value.fqcn)
            elif result.action is PopupAction.DELETE:
                self.starters.remove(value.fqcn)
            self._save_starters()
            popup.items = list(self.starters.starters)
            popup.selected = min(popup.selected, max(len(popup.items) - 1, 0))
        elif isinstance(popup, CustomGoalPopup):
            self.popup = None
            self.run(value.goal.split())

    # -- input ---------------------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Route one key. While a popup is open it receives every key."""
        if self.popup is not None:
            return self._handle_popup_key(self.popup, key)
        if self.search.is_live:
            return self._handle_search_key(key)

        if key in GOAL_KEYS:
            self.run(GOAL_KEYS[key])
        elif key in FOCUS_KEYS:
            self.focus = FOCUS_KEYS[key]
        elif key in ("right", "tab"):
            self.focus = self.focus.next()
        elif key in ("left", "shift+tab"):
            self.focus = self.focus.previous()
        elif key == "up":
            self.move(-1)
        elif key == "down":
            self.move(1)
        elif key == "pageup":
            self.scroll(PAGE_SIZE)
        elif key == "pagedown":
            self.scroll(-PAGE_SIZE)
        elif key == "home":
            self.scroll(len(self.output))
        elif key == "end":
            self.output_offset = 0
        elif key in (" ", "space", "enter"):
            self._activate()
        elif key == "escape":
            if self.is_running:
                self.kill()
            elif self.search.state is not None:
                self.search.reset()
        elif key == "/":
            self.search.begin_input()
        elif key == "n":
            self._jump(self.search.next_match())
        elif key == "N":
            self._jump(self.search.previous_match())
        elif key == "s":
            self.run_preferred_starter()
        elif key == "S":
            self.open_starter_manager()
        elif key == "?":
            self.open_help()
        elif key == "ctrl+h":
            self.open_history()
        elif key == "ctrl+f":
            self.open_favorites()
        elif key == "ctrl+s":
            self.save_favorite()
        elif key == "ctrl+r":
            self.open_project_picker()
        elif key == "ctrl+g":
            self.open_custom_goals()
        elif key.startswith("alt+") and key[4:].isdigit():
            self.run_custom_goal(int(key[4:]) - 1)
        else:
            return False
        return True

    def _activate(self) -> None:
        if self.focus is Focus.PROFILES:
            self.toggle_profile()
        elif self.focus is Focus.FLAGS:
            self.toggle_flag()
        elif self.focus is Focus.PROJECTS:
            self.open_project_picker()

    def _handle_search_key(self, key: str) -> bool:
        lines = self.output.lines()
        if key == "escape":
            self.search.cancel_input()
        elif key == "enter":
            self.search.submit(lines)
            self._jump(self.search.state.current_match() if self.search.state else None)
        elif key == "backspace":
            self.search.backspace(lines)
        elif key == "up":
            self.search.recall_previous()
        elif key == "down":
            self.search.recall_next()
        elif len(key) == 1 and key.isprintable():
            self.search.push_char(key, lines)
        else:
            return False
        return True

    def _jump(self, match: SearchMatch | None) -> None:
        if match is None:
            return
        position = self.output.position_of(match.line_index)
        if position is None:
            return
        self.output_offset = len(self.output) - 1 - position
        self.focus = Focus.OUTPUT

    # -- lifecycle -----------------------------------------------------

    def cleanup(self) -> None:
        """Stop the build and the watcher, keep the selections."""
        self.pending_run = None
        self.kill()
        self.stop_watching()
        if self.persist:
            self._save_module_preferences()
