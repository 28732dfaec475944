"""Configuration — Pydantic models for mvndash settings."""

from __future__ import annotations

import enum
import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

PROJECT_CONFIG_FILE = "mvndash.json"


class LaunchMode(str, enum.Enum):
    """How a main class is launched when a starter is run."""

    AUTO = "auto"
    FORCE_RUN = "force-run"
    FORCE_EXEC = "force-exec"


class WatchConfig(BaseModel):
    """File-watch re-run settings."""

    enabled: bool = Field(default=False)
    commands: list[str] = Field(
        default_factory=lambda: ["test", "start"],
        description="Goals that are re-run when watched files change",
    )
    patterns: list[str] = Field(
        default_factory=lambda: [
            "src/**/*.java",
            "src/**/*.properties",
            "src/**/*.xml",
        ],
        description="Glob patterns, relative to the project root",
    )
    debounce_ms: int = Field(default=500, ge=0)


class OutputConfig(BaseModel):
    max_lines: int = Field(default=10_000, gt=0, description="Lines kept per session")


class ProcessConfig(BaseModel):
    kill_grace_period: float = Field(
        default=3.0,
        ge=0,
        description="Seconds between the termination request and a forced kill (0 disables)",
    )
    discovery_timeout: float = Field(default=30.0, gt=0)


class CustomFlag(BaseModel):
    """An extra command-line flag shown next to the built-in ones."""

    name: str
    flag: str
    enabled: bool = False


class CustomGoal(BaseModel):
    name: str
    goal: str


class DashConfig(BaseModel):
    """Top-level mvndash configuration."""

    maven_settings: str | None = Field(
        default=None, description="Path passed to --settings"
    )
    launch_mode: LaunchMode = Field(default=LaunchMode.AUTO)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    process: ProcessConfig = Field(default_factory=ProcessConfig)
    custom_flags: list[CustomFlag] = Field(default_factory=list)
    custom_goals: list[CustomGoal] = Field(default_factory=list)
    data_dir: str = Field(
        default="~/.mvndash", description="Directory for history, favorites and caches"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @classmethod
    def load(cls, config_path: str | None = None) -> DashConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            MVNDASH_DATA_DIR        - Override the data directory
            MVNDASH_LAUNCH_MODE     - auto / force-run / force-exec
            MVNDASH_WATCH           - Enable file watching (1/true/yes/on)
            MVNDASH_DEBOUNCE_MS     - Quiet period for watch re-runs
            MVNDASH_MAX_LINES       - Output lines kept per session
            MVNDASH_MAVEN_SETTINGS  - settings.xml passed to every build

        Raises:
            pydantic.ValidationError: the merged config is invalid.
        """
        # override=True so values from .env win over stale shell exports.
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        env_data_dir = os.environ.get("MVNDASH_DATA_DIR")
        if env_data_dir:
            config_data["data_dir"] = env_data_dir

        env_launch_mode = os.environ.get("MVNDASH_LAUNCH_MODE")
        if env_launch_mode:
            config_data["launch_mode"] = env_launch_mode.lower()

        env_settings = os.environ.get("MVNDASH_MAVEN_SETTINGS")
        if env_settings:
            config_data["maven_settings"] = env_settings

        watch = config_data.get("watch", {})
        env_watch = os.environ.get("MVNDASH_WATCH")
        if env_watch:
            watch["enabled"] = env_watch.strip().lower() in ("1", "true", "yes", "on")

        env_debounce = os.environ.get("MVNDASH_DEBOUNCE_MS")
        if env_debounce:
            watch["debounce_ms"] = int(env_debounce)

        if watch:
            config_data["watch"] = watch

        env_max_lines = os.environ.get("MVNDASH_MAX_LINES")
        if env_max_lines:
            output = config_data.get("output", {})
            output["max_lines"] = int(env_max_lines)
            config_data["output"] = output

        return cls.model_validate(config_data)

    def for_project(self, root: str | os.PathLike[str]) -> DashConfig:
        """Return this config with ``<root>/mvndash.json`` merged over it.

        Nested sections are merged key by key; lists are replaced.
        """
        path = Path(root) / PROJECT_CONFIG_FILE
        if not path.is_file():
            return self
        with open(path) as f:
            overrides = json.load(f)
        return type(self).model_validate(
            _deep_merge(self.model_dump(mode="json"), overrides)
        )


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
