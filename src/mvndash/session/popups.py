"""Modal popups.

A session holds at most one popup at a time (``Popup | None``); while it is
set, every key goes to the popup and nothing else reacts. Popups only keep
their own cursor and filter. What a selection means is decided by the
session that opened them, based on the ``PopupResult`` they return.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar, Union

from mvndash.config import CustomGoal
from mvndash.store.favorites import Favorite
from mvndash.store.history import HistoryEntry
from mvndash.store.starters import Starter

T = TypeVar("T")


class PopupAction(enum.Enum):
    NONE = "none"
    DISMISS = "dismiss"
    SELECT = "select"
    DELETE = "delete"
    TOGGLE_DEFAULT = "toggle_default"


@dataclass(frozen=True)
class PopupResult:
    action: PopupAction = PopupAction.NONE
    value: Any = None


_NONE = PopupResult()
_DISMISS = PopupResult(PopupAction.DISMISS)


@dataclass
class ListPopup(Generic[T]):
    """A selectable list, optionally narrowed by a typed filter."""

    items: list[T] = field(default_factory=list)
    selected: int = 0
    filter: str = ""

    filterable = False
    title = ""

    def label(self, item: T) -> str:
        return str(item)

    def visible_items(self) -> list[T]:
        if not self.filter:
            return list(self.items)
        needle = self.filter.lower()
        return [item for item in self.items if needle in self.label(item).lower()]

    def current(self) -> T | None:
        visible = self.visible_items()
        if not visible:
            return None
        return visible[min(self.selected, len(visible) - 1)]

    def move(self, delta: int) -> None:
        count = len(self.visible_items())
        if count == 0:
            self.selected = 0
            return
        self.selected = (self.selected + delta) % count

    def handle_key(self, key: str) -> PopupResult:
        if key == "escape":
            return _DISMISS
        if key == "up":
            self.move(-1)
            return _NONE
        if key == "down":
            self.move(1)
            return _NONE
        if key == "enter":
            item = self.current()
            if item is None:
                return _NONE
            return PopupResult(PopupAction.SELECT, item)
        if self.filterable:
            if key == "backspace":
                self.filter = self.filter[:-1]
                self.selected = 0
                return _NONE
            if len(key) == 1 and key.isprintable():
                self.filter += key
                self.selected = 0
                return _NONE
        else:
            if key == "q":
                return _DISMISS
            if key == "k":
                self.move(-1)
                return _NONE
            if key == "j":
                self.move(1)
                return _NONE
        return self.handle_extra_key(key)

    def handle_extra_key(self, key: str) -> PopupResult:
        return _NONE


@dataclass
class HistoryPopup(ListPopup[HistoryEntry]):
    filterable = True
    title = "History"

    def label(self, item: HistoryEntry) -> str:
        return f"{item.format_time()}  {item.format_command()}"


@dataclass
class FavoritesPopup(ListPopup[Favorite]):
    filterable = True
    title = "Favorites"

    def label(self, item: Favorite) -> str:
        return item.format_summary()

    def handle_extra_key(self, key: str) -> PopupResult:
        if key == "delete":
            item = self.current()
            if item is not None:
                return PopupResult(PopupAction.DELETE, item)
        return _NONE


@dataclass
class ProjectPickerPopup(ListPopup[Path]):
    title = "Recent projects"

    def label(self, item: Path) -> str:
        return str(item)


@dataclass
class StarterPickerPopup(ListPopup[str]):
    """Candidate main classes found by scanning the project sources."""

    filterable = True
    title = "Run starter"


@dataclass
class StarterManagerPopup(ListPopup[Starter]):
    title = "Starters"

    def label(self, item: Starter) -> str:
        return item.display_name()

    def handle_extra_key(self, key: str) -> PopupResult:
        item = self.current()
        if item is None:
            return _NONE
        if key == " ":
            return PopupResult(PopupAction.TOGGLE_DEFAULT, item)
        if key in ("d", "delete"):
            return PopupResult(PopupAction.DELETE, item)
        return _NONE


@dataclass
class CustomGoalPopup(ListPopup[CustomGoal]):
    title = "Custom goals"

    def label(self, item: CustomGoal) -> str:
        return f"{item.name}  ({item.goal})"


@dataclass
class HelpPopup:
    """Static key reference; any dismiss key closes it."""

    lines: list[str] = field(default_factory=list)
    scroll: int = 0
    title = "Help"

    def handle_key(self, key: str) -> PopupResult:
        if key in ("escape", "q", "?"):
            return _DISMISS
        if key in ("down", "j"):
            self.scroll = min(self.scroll + 1, max(len(self.lines) - 1, 0))
        elif key in ("up", "k"):
            self.scroll = max(self.scroll - 1, 0)
        return _NONE


Popup = Union[
    HistoryPopup,
    FavoritesPopup,
    ProjectPickerPopup,
    StarterPickerPopup,
    StarterManagerPopup,
    CustomGoalPopup,
    HelpPopup,
]
