"""Main Textual application for the mvndash dashboard."""

from __future__ import annotations

import logging
import os

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.timer import Timer
from textual.widgets import Header, Static

from mvndash.process import ProcessOutcome
from mvndash.session.focus import Focus
from mvndash.session.manager import SessionManager
from mvndash.session.popups import HelpPopup, Popup
from mvndash.session.tab import ProfileState, Session

logger = logging.getLogger(__name__)

# Braille spinner frames
_SPINNER = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

TICK_INTERVAL = 0.1

_MATCH_STYLE = "black on yellow"
_CURRENT_MATCH_STYLE = "black on bright_green"


def _line_style(text: str) -> str:
    if "[ERROR]" in text or "BUILD FAILURE" in text:
        return "red"
    if "[WARNING]" in text or "[WARN]" in text:
        return "yellow"
    if "BUILD SUCCESS" in text:
        return "bold green"
    if text.startswith("$ ") or text.startswith("[mvndash]"):
        return "bold cyan"
    return ""


class TUILogHandler(logging.Handler):
    """Logging handler that keeps the last log message for the status bar.

    Writing to stderr would corrupt the Textual display. Records can come
    from any thread; the handler's own lock serializes ``emit`` and the
    render tick only reads ``last_message``.
    """

    def __init__(self) -> None:
        super().__init__()
        self.last_message: str = ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.last_message = self.format(record)
        except Exception:
            self.handleError(record)


class MvnDashApp(App):
    """mvndash TUI, one tab per Maven project."""

    TITLE = "mvndash"
    CSS = """
    Screen {
        layers: base overlay;
    }

    #tab-bar {
        height: 1;
        background: $surface;
        padding: 0 1;
    }

    #main-layout {
        layout: horizontal;
        height: 1fr;
    }

    #sidebar {
        width: 1fr;
        min-width: 30;
        max-width: 48;
    }

    .pane {
        border: solid $secondary;
        padding: 0 1;
        height: auto;
        max-height: 14;
        overflow-y: auto;
    }

    .pane.focused {
        border: solid $accent;
    }

    #modules-pane, #profiles-pane, #flags-pane {
        height: 1fr;
    }

    #output-pane {
        width: 3fr;
        border: solid $primary;
        padding: 0 1;
    }

    #output-pane.focused {
        border: solid $accent;
    }

    #popup {
        layer: overlay;
        display: none;
        offset: 10 4;
        width: 80%;
        max-height: 80%;
        border: thick $accent;
        background: $panel;
        padding: 0 1;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
    ]

    def __init__(
        self,
        manager: SessionManager,
        paths: list[str] | None = None,
        log_file: str | None = None,
    ) -> None:
        super().__init__()
        self.manager = manager
        self._paths = paths or [os.getcwd()]
        self._log_file = log_file
        self._log_handler: TUILogHandler | None = None
        self._tick_timer: Timer | None = None
        self._spinner_idx = 0
        self._notice = ""

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="tab-bar")
        with Horizontal(id="main-layout"):
            with Vertical(id="sidebar"):
                yield Static(id="projects-pane", classes="pane")
                yield Static(id="modules-pane", classes="pane")
                yield Static(id="profiles-pane", classes="pane")
                yield Static(id="flags-pane", classes="pane")
            yield Static(id="output-pane")
        yield Static(id="popup")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        self._install_log_handler()
        for path in self._paths:
            if self.manager.open_or_report(path) is None:
                self._notice = f"Could not open {path}"
        self._tick_timer = self.set_interval(TICK_INTERVAL, self._tick)
        self._refresh_view()

    def _install_log_handler(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        self._log_handler = TUILogHandler()
        self._log_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(self._log_handler)
        if self._log_file:
            file_handler = logging.FileHandler(self._log_file)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
            root.addHandler(file_handler)
        logging.getLogger("watchdog").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    # --- Tick ---

    def _tick(self) -> None:
        self.manager.poll()
        if self.manager.has_running_processes():
            self._spinner_idx += 1
        self._refresh_view()

    # --- Input ---

    def on_key(self, event: events.Key) -> None:
        key = event.character if event.is_printable and event.character else event.key
        session = self.manager.active
        event.stop()

        if session is None or (session.popup is None and not session.search.is_live):
            if key == "q":
                self.exit()
                return
            if key == "ctrl+t":
                self._new_tab(session)
                return
            if key == "y" and session is not None:
                text = session.yank_output()
                if text is not None:
                    self.copy_to_clipboard(text)
                self._refresh_view()
                return
        if session is None:
            return

        self.manager.handle_key(key)
        self._refresh_view()

    def _new_tab(self, session: Session | None) -> None:
        if session is None:
            self.manager.open_or_report(os.getcwd())
        else:
            session.open_project_picker()
        self._refresh_view()

    def on_unmount(self) -> None:
        running = self.manager.count_running()
        if running:
            logger.info("Stopping %d running build(s)", running)
        if self._tick_timer is not None:
            self._tick_timer.stop()
        self.manager.cleanup()

    # --- Rendering ---

    def _refresh_view(self) -> None:
        session = self.manager.active
        self._render_tabs()
        if session is None:
            self.query_one("#output-pane", Static).update(
                Text("No project open. Press ctrl+t to open the current directory.", style="dim")
            )
            for pane_id in ("projects-pane", "modules-pane", "profiles-pane", "flags-pane"):
                self.query_one(f"#{pane_id}", Static).update("")
            self._render_popup(None)
            self._update_status(None)
            return

        self.sub_title = str(session.root)
        self._render_sidebar(session)
        self._render_output(session)
        self._render_popup(session.popup)
        self._update_status(session)

    def _render_tabs(self) -> None:
        text = Text()
        for i, session in enumerate(self.manager.sessions):
            marker = "●" if session.is_running else " "
            label = f" {i + 1}:{session.name}{marker}"
            style = "bold reverse" if i == self.manager.active_index else ""
            text.append(label, style=style)
            text.append(" ")
        self.query_one("#tab-bar", Static).update(text)

    def _pane(self, pane_id: str, title: str, lines: Text, focused: bool) -> None:
        widget = self.query_one(f"#{pane_id}", Static)
        widget.border_title = title
        widget.set_class(focused, "focused")
        widget.update(lines)

    def _render_sidebar(self, session: Session) -> None:
        focus = session.focus

        projects = Text(str(session.root), style="bold")
        self._pane("projects-pane", "1 Project", projects, focus is Focus.PROJECTS)

        modules = Text()
        for i, module in enumerate(session.modules):
            selected = i == session.module_index
            label = "(root)" if module == "." else module
            modules.append(("> " if selected else "  ") + label + "\n", style="bold" if selected else "")
        self._pane("modules-pane", "2 Modules", modules, focus is Focus.MODULES)

        profiles = Text()
        if not session.profiles:
            profiles.append("no profiles", style="dim")
        for i, profile in enumerate(session.profiles):
            mark = {
                ProfileState.ENABLED: "[x]",
                ProfileState.DISABLED: "[-]",
                ProfileState.DEFAULT: "[*]" if profile.auto_activated else "[ ]",
            }[profile.state]
            cursor = "> " if i == session.profile_index and focus is Focus.PROFILES else "  "
            style = "green" if profile.is_active else ""
            profiles.append(f"{cursor}{mark} {profile.name}\n", style=style)
        self._pane("profiles-pane", "3 Profiles", profiles, focus is Focus.PROFILES)

        flags = Text()
        for i, flag in enumerate(session.flags):
            cursor = "> " if i == session.flag_index and focus is Focus.FLAGS else "  "
            mark = "[x]" if flag.enabled else "[ ]"
            flags.append(f"{cursor}{mark} {flag.name} ", style="green" if flag.enabled else "")
            flags.append(f"{flag.flag}\n", style="dim")
        self._pane("flags-pane", "4 Flags", flags, focus is Focus.FLAGS)

    def _render_output(self, session: Session) -> None:
        widget = self.query_one("#output-pane", Static)
        height = max(widget.size.height, 1)
        lines = session.output.lines()
        end = len(lines) - session.output_offset
        visible = lines[max(end - height, 0) : max(end, 0)]

        state = session.search.state
        text = Text()
        for line in visible:
            row = Text(line.text, style=_line_style(line.text))
            if state is not None:
                for start, stop, is_current in state.matches_on_line(line.index):
                    row.stylize(_CURRENT_MATCH_STYLE if is_current else _MATCH_STYLE, start, stop)
            text.append_text(row)
            text.append("\n")

        title = "0 Output"
        if session.last_command:
            title += f" - {session.last_command}"
        widget.border_title = title
        widget.set_class(session.focus is Focus.OUTPUT, "focused")
        widget.update(text)

    def _render_popup(self, popup: Popup | None) -> None:
        widget = self.query_one("#popup", Static)
        if popup is None:
            widget.display = False
            return
        widget.display = True
        widget.border_title = popup.title

        text = Text()
        if isinstance(popup, HelpPopup):
            for line in popup.lines[popup.scroll :]:
                text.append(line + "\n")
            widget.update(text)
            return

        if popup.filterable:
            text.append(f"filter: {popup.filter}\n", style="dim")
        items = popup.visible_items()
        if not items:
            text.append("(empty)", style="dim")
        for i, item in enumerate(items):
            selected = i == popup.selected
            text.append(
                ("> " if selected else "  ") + popup.label(item) + "\n",
                style="bold reverse" if selected else "",
            )
        widget.update(text)

    def _update_status(self, session: Session | None) -> None:
        status = self.query_one("#status-bar", Static)
        text = Text()
        if session is not None:
            if session.is_running:
                frame = _SPINNER[self._spinner_idx % len(_SPINNER)]
                text.append(f"{frame} running ", style="bold")
            elif session.last_result is not None:
                ok = session.last_result.outcome is ProcessOutcome.SUCCESS
                text.append(
                    f"{session.last_result.outcome.value} ", style="green" if ok else "red"
                )
            line = session.status_line()
            if line:
                text.append(line)
        elif self._notice:
            text.append(self._notice, style="red")
        if self._log_handler and self._log_handler.last_message:
            last_log = self._log_handler.last_message
            if len(last_log) > 80:
                last_log = last_log[:77] + "..."
            text.append(" | " + last_log, style="dim")
        status.update(text)
