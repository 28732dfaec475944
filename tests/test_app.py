"""Smoke tests for the Textual app, driven through the pilot."""

from __future__ import annotations

from mvndash.session.manager import SessionManager
from mvndash.session.popups import HelpPopup
from mvndash.tui.app import MvnDashApp, _line_style


class RecordingApp(MvnDashApp):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.copied: list[str] = []

    def copy_to_clipboard(self, text: str) -> None:
        self.copied.append(text)


class TestLineStyle:
    def test_levels(self) -> None:
        assert _line_style("[ERROR] Failed to execute goal") == "red"
        assert _line_style("[WARNING] deprecated") == "yellow"
        assert _line_style("[INFO] BUILD SUCCESS") == "bold green"
        assert _line_style("$ mvn test") == "bold cyan"
        assert _line_style("[INFO] Compiling 3 source files") == ""


class TestApp:
    async def test_opens_project_tab(self, make_project, config) -> None:
        manager = SessionManager(config, persist=False)
        app = MvnDashApp(manager, paths=[str(make_project(modules=["api"]))])
        async with app.run_test() as pilot:
            await pilot.pause()
            assert len(manager) == 1
            assert manager.active.selected_module() == "api"

    async def test_help_popup(self, make_project, config) -> None:
        manager = SessionManager(config, persist=False)
        app = MvnDashApp(manager, paths=[str(make_project())])
        async with app.run_test() as pilot:
            await pilot.press("question_mark")
            assert isinstance(manager.active.popup, HelpPopup)
            assert app.query_one("#popup").display
            await pilot.press("escape")
            assert manager.active.popup is None

    async def test_focus_keys(self, make_project, config) -> None:
        manager = SessionManager(config, persist=False)
        app = MvnDashApp(manager, paths=[str(make_project())])
        async with app.run_test() as pilot:
            await pilot.press("4")
            assert app.query_one("#flags-pane").has_class("focused")

    async def test_yank_copies_output(self, make_project, config) -> None:
        manager = SessionManager(config, persist=False)
        app = RecordingApp(manager, paths=[str(make_project())])
        async with app.run_test() as pilot:
            await pilot.press("y")
            assert app.copied == []
            assert manager.active.status == "No output to copy"
            manager.active.output.append("[INFO] Building demo")
            manager.active.output.append("[INFO] BUILD SUCCESS")
            await pilot.press("y")
            assert app.copied == ["[INFO] Building demo\n[INFO] BUILD SUCCESS"]
            assert manager.active.status == "Copied 2 lines to clipboard"

    async def test_no_project(self, tmp_path, config) -> None:
        manager = SessionManager(config, persist=False)
        empty = tmp_path / "empty"
        empty.mkdir()
        app = MvnDashApp(manager, paths=[str(empty)])
        async with app.run_test() as pilot:
            await pilot.pause()
            if manager.is_empty:
                await pilot.press("x")
                assert manager.is_empty
