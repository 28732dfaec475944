"""Scan Java sources for classes that look like application entry points."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_NAME_SUFFIXES = ("Application.java", "Main.java")
_SPRING_MARKERS = ("SpringApplication.run", "@SpringBootApplication")
_SKIP_DIRS = {"target", "build", ".git", "node_modules", ".idea"}


def _java_files(root: Path) -> list[Path]:
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        found.extend(Path(dirpath) / name for name in sorted(filenames) if name.endswith(".java"))
    return found


def extract_fqcn(source: str, file_path: Path) -> str | None:
    """``package.ClassName`` from the package line and the file stem."""
    for line in source.splitlines():
        stripped = line.strip()
        if stripped.startswith("package ") and stripped.endswith(";"):
            package = stripped[len("package ") : -1].strip()
            return f"{package}.{file_path.stem}" if package else file_path.stem
    return None


def find_potential_starters(project_root: str | os.PathLike[str]) -> list[str]:
    """Candidate main classes, name-based matches first, without duplicates.

    A file qualifies when its name ends in ``Application.java`` or
    ``Main.java``, or when it mentions ``SpringApplication.run`` or
    ``@SpringBootApplication``. Files without a package line are skipped.
    """
    root = Path(project_root)
    by_name: list[str] = []
    by_content: list[str] = []
    for path in _java_files(root):
        try:
            source = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read %s: %s", path, e)
            continue
        named = path.name.endswith(_NAME_SUFFIXES)
        if not named and not any(marker in source for marker in _SPRING_MARKERS):
            continue
        fqcn = extract_fqcn(source, path)
        if fqcn is None:
            continue
        (by_name if named else by_content).append(fqcn)

    candidates: list[str] = []
    for fqcn in by_name + by_content:
        if fqcn not in candidates:
            candidates.append(fqcn)
    logger.info("Found %d potential starters in %s", len(candidates), root)
    return candidates
