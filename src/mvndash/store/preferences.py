"""Recent projects and per-module selections."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from mvndash.store import project_key, read_json, write_json

logger = logging.getLogger(__name__)

RECENT_FILE = "recent.json"
MAX_RECENT = 20

_PATHS = TypeAdapter(list[str])


class RecentProjects:
    """Most recently opened project roots, newest first."""

    def __init__(self, path: Path | None = None, max_entries: int = MAX_RECENT) -> None:
        self.path = path
        self.max_entries = max_entries
        self._projects: list[str] = []

    @classmethod
    def load(cls, data_dir: Path) -> RecentProjects:
        recent = cls(data_dir / RECENT_FILE)
        recent._projects = read_json(recent.path, _PATHS, [])
        logger.debug("Loaded %d recent projects", len(recent._projects))
        return recent

    def add(self, root: str | os.PathLike[str]) -> None:
        entry = str(root)
        self._projects = [p for p in self._projects if p != entry]
        self._projects.insert(0, entry)
        del self._projects[self.max_entries :]
        self.save()

    def projects(self) -> list[Path]:
        """Recent roots that still exist on disk."""
        return [Path(p) for p in self._projects if Path(p).exists()]

    def save(self) -> None:
        if self.path is None:
            return
        write_json(self.path, list(self._projects))


class ModulePreferences(BaseModel):
    """Explicit profile states (``name`` or ``!name``) and enabled flags."""

    active_profiles: list[str] = Field(default_factory=list)
    enabled_flags: list[str] = Field(default_factory=list)


class ProjectPreferences(BaseModel):
    modules: dict[str, ModulePreferences] = Field(default_factory=dict)

    @staticmethod
    def path_for(data_dir: Path, project_root: str | os.PathLike[str]) -> Path:
        return data_dir / "preferences" / f"{project_key(project_root)}.json"

    @classmethod
    def load(
        cls, data_dir: Path, project_root: str | os.PathLike[str]
    ) -> ProjectPreferences:
        path = cls.path_for(data_dir, project_root)
        return read_json(path, TypeAdapter(cls), cls())

    def save(self, data_dir: Path, project_root: str | os.PathLike[str]) -> bool:
        return write_json(
            self.path_for(data_dir, project_root), self.model_dump(mode="json")
        )

    def get(self, module: str) -> ModulePreferences | None:
        return self.modules.get(module)

    def set(self, module: str, prefs: ModulePreferences) -> None:
        logger.debug(
            "Preferences for %s: profiles=%s flags=%s",
            module,
            prefs.active_profiles,
            prefs.enabled_flags,
        )
        self.modules[module] = prefs
