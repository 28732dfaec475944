"""Command history: deduplicated, newest first, bounded."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from mvndash.store import read_json, write_json

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 100
HISTORY_FILE = "command_history.json"


def format_module(module: str) -> str:
    return "(root)" if module == "." else module


class HistoryEntry(BaseModel):
    timestamp: int = Field(default_factory=lambda: int(time.time()))
    project_root: str
    module: str
    goal: str
    profiles: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)

    def command_parts(self) -> list[str]:
        parts = [self.goal]
        if self.profiles:
            parts.append(f"-P {','.join(self.profiles)}")
        parts.extend(self.flags)
        return parts

    def format_command(self) -> str:
        return f"[{format_module(self.module)}] {' '.join(self.command_parts())}"

    def format_time(self) -> str:
        return datetime.fromtimestamp(self.timestamp).strftime("%Y-%m-%d %H:%M:%S")

    def matches(self, other: HistoryEntry) -> bool:
        """Same command, ignoring when it ran."""
        return (
            self.project_root == other.project_root
            and self.module == other.module
            and self.goal == other.goal
            and self.profiles == other.profiles
            and self.flags == other.flags
        )


_ADAPTER = TypeAdapter(list[HistoryEntry])


class CommandHistory:
    """Run history shared by all projects.

    Re-running a command moves its entry to the top instead of adding a
    duplicate.
    """

    def __init__(self, path: Path | None = None, max_size: int = MAX_HISTORY_SIZE) -> None:
        self.path = path
        self.max_size = max_size
        self._entries: list[HistoryEntry] = []

    @classmethod
    def load(cls, data_dir: Path) -> CommandHistory:
        history = cls(data_dir / HISTORY_FILE)
        history._entries = read_json(history.path, _ADAPTER, [])
        logger.debug("Loaded %d history entries", len(history._entries))
        return history

    def add(self, entry: HistoryEntry) -> None:
        for i, existing in enumerate(self._entries):
            if existing.matches(entry):
                del self._entries[i]
                break
        self._entries.insert(0, entry)
        del self._entries[self.max_size :]
        self.save()

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def for_project(self, project_root: str) -> list[HistoryEntry]:
        return [e for e in self._entries if e.project_root == project_root]

    def clear(self) -> None:
        self._entries.clear()
        self.save()

    def save(self) -> None:
        if self.path is None:
            return
        write_json(self.path, _ADAPTER.dump_python(self._entries, mode="json"))

    def __len__(self) -> int:
        return len(self._entries)
