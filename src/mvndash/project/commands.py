"""Maven command-line construction."""

from __future__ import annotations

import os
import shlex
from pathlib import Path

_WINDOWS = os.name == "nt"

ROOT_MODULE = "."


def resolve_executable(project_root: str | os.PathLike[str]) -> str:
    """Pick the Maven wrapper in ``project_root`` if present, else ``mvn``.

    The wrapper is returned as an absolute path so it does not depend on
    the working directory of the caller.
    """
    root = Path(project_root)
    candidates = ["mvnw.cmd", "mvnw.bat", "mvnw"] if _WINDOWS else ["mvnw"]
    for name in candidates:
        wrapper = root / name
        if wrapper.is_file():
            return str(wrapper.resolve())
    return "mvn.cmd" if _WINDOWS else "mvn"


def is_spring_boot_run(goals: list[str]) -> bool:
    return any(
        "spring-boot:run" in g or ("spring-boot-maven-plugin" in g and ":run" in g)
        for g in goals
    )


def split_flag(flag: str) -> list[str]:
    """Tokens for one flag entry.

    ``"-T 4"`` becomes two tokens; anything after a comma is a display
    alias (``"-U, --update-snapshots"``) and is dropped.
    """
    return flag.split(",", 1)[0].split()


def build_args(
    module: str | None,
    goals: list[str],
    profiles: list[str] | None = None,
    properties: dict[str, str] | None = None,
    flags: list[str] | None = None,
    settings_path: str | None = None,
    use_file_flag: bool = False,
    project_root: str | os.PathLike[str] = ".",
) -> list[str]:
    """Arguments for one Maven invocation, without the executable.

    Order: ``[--settings S] [-P a,b] [-pl M | -f M/pom.xml] flags...
    -Dk=v... goals...``. The root module ``"."`` adds no module scoping.
    """
    flags = list(flags or [])
    args: list[str] = []

    if settings_path:
        args += ["--settings", settings_path]

    if profiles:
        args += ["-P", ",".join(profiles)]

    if module and module != ROOT_MODULE:
        if use_file_flag:
            args += ["-f", str(Path(project_root) / module / "pom.xml")]
            if "exec:java" in goals and not any("also-make" in f for f in flags):
                args.append("--also-make")
        else:
            args += ["-pl", module]

    if is_spring_boot_run(goals):
        flags = [f for f in flags if "also-make" not in f.lower()]
    for flag in flags:
        args.extend(split_flag(flag))

    for key, value in (properties or {}).items():
        args.append(f"-D{key}={value}")

    args.extend(goals)
    return args


def format_command(executable: str, args: list[str]) -> str:
    """Shell-style display string for a command."""
    return " ".join(shlex.quote(part) for part in [executable, *args])
