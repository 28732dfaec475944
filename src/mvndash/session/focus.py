"""Pane focus ring."""

from __future__ import annotations

import enum


class Focus(enum.Enum):
    """The five panes, in ring order."""

    PROJECTS = "projects"
    MODULES = "modules"
    PROFILES = "profiles"
    FLAGS = "flags"
    OUTPUT = "output"

    def next(self) -> Focus:
        members = list(Focus)
        return members[(members.index(self) + 1) % len(members)]

    def previous(self) -> Focus:
        members = list(Focus)
        return members[(members.index(self) - 1) % len(members)]
