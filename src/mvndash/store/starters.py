"""Per-project cache of runnable main classes ("starters")."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from mvndash.store import project_key, write_json

logger = logging.getLogger(__name__)


class Starter(BaseModel):
    fqcn: str
    label: str
    is_default: bool = False

    def display_name(self) -> str:
        name = f"{self.label} ({self.fqcn})"
        return f"★ {name}" if self.is_default else name


class StartersCache(BaseModel):
    """Starters saved for one project plus the one used most recently.

    At most one starter is the default.
    """

    starters: list[Starter] = Field(default_factory=list)
    last_used: str | None = None

    @staticmethod
    def path_for(data_dir: Path, project_root: str | os.PathLike[str]) -> Path:
        return data_dir / "starters" / f"{project_key(project_root)}.json"

    @classmethod
    def load(cls, data_dir: Path, project_root: str | os.PathLike[str]) -> StartersCache:
        path = cls.path_for(data_dir, project_root)
        if not path.exists():
            logger.debug("No starters cache for %s", project_root)
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable starters cache %s: %s", path, e)
            return cls()

    def save(self, data_dir: Path, project_root: str | os.PathLike[str]) -> bool:
        path = self.path_for(data_dir, project_root)
        saved = write_json(path, self.model_dump(mode="json"))
        if saved:
            logger.info("Saved %d starters to %s", len(self.starters), path)
        return saved

    def add(self, starter: Starter) -> None:
        """Add or replace the starter with the same class name."""
        if starter.is_default:
            for s in self.starters:
                s.is_default = False
        self.starters = [s for s in self.starters if s.fqcn != starter.fqcn]
        self.starters.append(starter)

    def remove(self, fqcn: str) -> bool:
        before = len(self.starters)
        self.starters = [s for s in self.starters if s.fqcn != fqcn]
        if self.last_used == fqcn:
            self.last_used = None
        return len(self.starters) != before

    def set_default(self, fqcn: str) -> bool:
        found = False
        for s in self.starters:
            s.is_default = s.fqcn == fqcn
            found = found or s.is_default
        return found

    def toggle_default(self, fqcn: str) -> None:
        """Make ``fqcn`` the default, or clear it if it already is."""
        current = self.get_default()
        if current is not None and current.fqcn == fqcn:
            current.is_default = False
        else:
            self.set_default(fqcn)

    def get_default(self) -> Starter | None:
        return next((s for s in self.starters if s.is_default), None)

    def preferred(self) -> Starter | None:
        """The last used starter if still cached, else the default."""
        if self.last_used is not None:
            for s in self.starters:
                if s.fqcn == self.last_used:
                    return s
        return self.get_default()

    def set_last_used(self, fqcn: str) -> None:
        self.last_used = fqcn
