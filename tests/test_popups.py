"""Tests for mvndash.session.popups."""

from __future__ import annotations

from pathlib import Path

from mvndash.config import CustomGoal
from mvndash.session.popups import (
    CustomGoalPopup,
    FavoritesPopup,
    HelpPopup,
    HistoryPopup,
    PopupAction,
    ProjectPickerPopup,
    StarterManagerPopup,
)
from mvndash.store.favorites import Favorite
from mvndash.store.history import HistoryEntry
from mvndash.store.starters import Starter


def _entry(goal: str, module: str = ".") -> HistoryEntry:
    return HistoryEntry(project_root="/p", module=module, goal=goal)


class TestListPopup:
    def test_navigation_wraps(self) -> None:
        popup = ProjectPickerPopup(items=[Path("/a"), Path("/b"), Path("/c")])
        popup.handle_key("up")
        assert popup.current() == Path("/c")
        popup.handle_key("down")
        assert popup.current() == Path("/a")
        popup.handle_key("j")
        assert popup.current() == Path("/b")

    def test_enter_selects(self) -> None:
        popup = ProjectPickerPopup(items=[Path("/a")])
        result = popup.handle_key("enter")
        assert result.action is PopupAction.SELECT
        assert result.value == Path("/a")

    def test_enter_on_empty_list(self) -> None:
        assert ProjectPickerPopup().handle_key("enter").action is PopupAction.NONE

    def test_dismiss_keys(self) -> None:
        assert ProjectPickerPopup().handle_key("escape").action is PopupAction.DISMISS
        assert ProjectPickerPopup().handle_key("q").action is PopupAction.DISMISS

    def test_unknown_keys_are_consumed(self) -> None:
        popup = ProjectPickerPopup(items=[Path("/a")])
        assert popup.handle_key("x").action is PopupAction.NONE


class TestFilter:
    def test_typing_filters(self) -> None:
        popup = HistoryPopup(items=[_entry("clean install"), _entry("test"), _entry("package")])
        for ch in "test":
            popup.handle_key(ch)
        assert popup.filter == "test"
        assert [e.goal for e in popup.visible_items()] == ["test"]

    def test_q_is_filter_text(self) -> None:
        popup = HistoryPopup(items=[_entry("test")])
        assert popup.handle_key("q").action is PopupAction.NONE
        assert popup.filter == "q"
        assert popup.current() is None

    def test_backspace(self) -> None:
        popup = HistoryPopup(items=[_entry("test"), _entry("package")])
        popup.handle_key("z")
        assert popup.visible_items() == []
        popup.handle_key("backspace")
        assert len(popup.visible_items()) == 2

    def test_filter_is_case_insensitive(self) -> None:
        popup = HistoryPopup(items=[_entry("test", module="Api")])
        for ch in "api":
            popup.handle_key(ch)
        assert len(popup.visible_items()) == 1


class TestSpecializedPopups:
    def test_favorite_delete(self) -> None:
        fav = Favorite(name="ship", module=".", goal="deploy")
        result = FavoritesPopup(items=[fav]).handle_key("delete")
        assert result.action is PopupAction.DELETE
        assert result.value is fav

    def test_starter_manager_actions(self) -> None:
        starter = Starter(fqcn="com.example.App", label="App")
        popup = StarterManagerPopup(items=[starter])
        assert popup.handle_key(" ").action is PopupAction.TOGGLE_DEFAULT
        assert popup.handle_key("d").action is PopupAction.DELETE
        assert popup.label(starter) == "App (com.example.App)"

    def test_custom_goal_label(self) -> None:
        goal = CustomGoal(name="Format", goal="spotless:apply")
        assert CustomGoalPopup(items=[goal]).label(goal) == "Format  (spotless:apply)"

    def test_help_scrolls_and_closes(self) -> None:
        popup = HelpPopup(lines=["a", "b", "c"])
        popup.handle_key("down")
        popup.handle_key("down")
        popup.handle_key("down")
        assert popup.scroll == 2
        popup.handle_key("up")
        assert popup.scroll == 1
        assert popup.handle_key("?").action is PopupAction.DISMISS
