"""Choosing between spring-boot:run and exec:java for a main class."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from mvndash.config import LaunchMode

logger = logging.getLogger(__name__)


class LaunchStrategy(enum.Enum):
    SPRING_BOOT_RUN = "spring-boot:run"
    EXEC_JAVA = "exec:java"


@dataclass(frozen=True)
class Capabilities:
    """What the project's POM says about how it can be launched."""

    has_spring_boot_plugin: bool = False
    has_exec_plugin: bool = False
    main_class: str | None = None
    packaging: str | None = None
    spring_boot_version: str | None = None

    def can_use_spring_boot_run(self) -> bool:
        return self.has_spring_boot_plugin and self.packaging in (None, "jar", "war")

    def should_prefer_spring_boot_run(self) -> bool:
        return self.has_spring_boot_plugin and self.packaging == "war"

    def can_use_exec_java(self) -> bool:
        return self.has_exec_plugin or self.main_class is not None

    @property
    def is_spring_boot_1x(self) -> bool:
        return bool(self.spring_boot_version and self.spring_boot_version.startswith("1."))


def decide_launch_strategy(capabilities: Capabilities, mode: LaunchMode) -> LaunchStrategy:
    if mode is LaunchMode.FORCE_RUN:
        return LaunchStrategy.SPRING_BOOT_RUN
    if mode is LaunchMode.FORCE_EXEC:
        return LaunchStrategy.EXEC_JAVA

    if capabilities.should_prefer_spring_boot_run():
        logger.info("Auto launch: Spring Boot war packaging, using spring-boot:run")
        return LaunchStrategy.SPRING_BOOT_RUN
    if capabilities.can_use_spring_boot_run():
        logger.info("Auto launch: Spring Boot plugin detected, using spring-boot:run")
        return LaunchStrategy.SPRING_BOOT_RUN
    if capabilities.can_use_exec_java():
        logger.info("Auto launch: no usable Spring Boot plugin, using exec:java")
        return LaunchStrategy.EXEC_JAVA
    logger.warning("Auto launch: no viable strategy detected, defaulting to spring-boot:run")
    return LaunchStrategy.SPRING_BOOT_RUN


def launch_goals(
    strategy: LaunchStrategy, main_class: str, capabilities: Capabilities
) -> tuple[list[str], dict[str, str]]:
    """Goals and ``-D`` properties that start ``main_class``."""
    if strategy is LaunchStrategy.EXEC_JAVA:
        return ["exec:java"], {"exec.mainClass": main_class}
    if capabilities.is_spring_boot_1x:
        goal = (
            "org.springframework.boot:spring-boot-maven-plugin:"
            f"{capabilities.spring_boot_version}:run"
        )
        return [goal], {"run.main-class": main_class}
    return ["spring-boot:run"], {"spring-boot.run.main-class": main_class}
