"""Named command bookmarks."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from mvndash.store import read_json, write_json
from mvndash.store.history import format_module

logger = logging.getLogger(__name__)

FAVORITES_FILE = "favorites.json"


class Favorite(BaseModel):
    name: str
    module: str
    goal: str
    profiles: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)

    def format_summary(self) -> str:
        return f"{self.name} → [{format_module(self.module)}] {self.goal}"


_ADAPTER = TypeAdapter(list[Favorite])


class Favorites:
    """Favorites keyed by name; adding an existing name replaces it."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._favorites: list[Favorite] = []

    @classmethod
    def load(cls, data_dir: Path) -> Favorites:
        favorites = cls(data_dir / FAVORITES_FILE)
        favorites._favorites = read_json(favorites.path, _ADAPTER, [])
        return favorites

    def add(self, favorite: Favorite) -> None:
        for i, existing in enumerate(self._favorites):
            if existing.name == favorite.name:
                self._favorites[i] = favorite
                logger.info("Updated favorite: %s", favorite.name)
                break
        else:
            self._favorites.append(favorite)
            logger.info("Added favorite: %s", favorite.name)
        self.save()

    def remove(self, name: str) -> Favorite | None:
        for i, existing in enumerate(self._favorites):
            if existing.name == name:
                removed = self._favorites.pop(i)
                logger.info("Removed favorite: %s", removed.name)
                self.save()
                return removed
        return None

    def list(self) -> list[Favorite]:
        return list(self._favorites)

    def is_empty(self) -> bool:
        return not self._favorites

    def save(self) -> None:
        if self.path is None:
            return
        write_json(self.path, _ADAPTER.dump_python(self._favorites, mode="json"))
