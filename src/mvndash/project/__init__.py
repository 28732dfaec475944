"""Maven project knowledge: discovery, command lines, launch strategy."""

from mvndash.project.commands import build_args, format_command, resolve_executable
from mvndash.project.discovery import ProjectInfo, discover_project, find_project_root
from mvndash.project.starters import find_potential_starters
from mvndash.project.strategy import Capabilities, LaunchStrategy, decide_launch_strategy

__all__ = [
    "Capabilities",
    "LaunchStrategy",
    "ProjectInfo",
    "build_args",
    "decide_launch_strategy",
    "discover_project",
    "find_potential_starters",
    "find_project_root",
    "format_command",
    "resolve_executable",
]
