"""Tests for mvndash.project.strategy."""

from __future__ import annotations

import pytest

from mvndash.config import LaunchMode
from mvndash.project.strategy import (
    Capabilities,
    LaunchStrategy,
    decide_launch_strategy,
    launch_goals,
)

BOOT_JAR = Capabilities(has_spring_boot_plugin=True, packaging="jar")
BOOT_WAR = Capabilities(has_spring_boot_plugin=True, packaging="war")
BOOT_POM = Capabilities(has_spring_boot_plugin=True, packaging="pom")
EXEC_ONLY = Capabilities(has_exec_plugin=True, packaging="jar")
MAIN_ONLY = Capabilities(main_class="com.example.Main")
NOTHING = Capabilities()


class TestDecideLaunchStrategy:
    @pytest.mark.parametrize(
        "caps, expected",
        [
            (BOOT_JAR, LaunchStrategy.SPRING_BOOT_RUN),
            (BOOT_WAR, LaunchStrategy.SPRING_BOOT_RUN),
            (EXEC_ONLY, LaunchStrategy.EXEC_JAVA),
            (MAIN_ONLY, LaunchStrategy.EXEC_JAVA),
            (NOTHING, LaunchStrategy.SPRING_BOOT_RUN),
        ],
    )
    def test_auto(self, caps: Capabilities, expected: LaunchStrategy) -> None:
        assert decide_launch_strategy(caps, LaunchMode.AUTO) is expected

    def test_pom_packaging_cannot_use_boot_run(self) -> None:
        caps = Capabilities(has_spring_boot_plugin=True, has_exec_plugin=True, packaging="pom")
        assert decide_launch_strategy(caps, LaunchMode.AUTO) is LaunchStrategy.EXEC_JAVA
        assert not BOOT_POM.can_use_spring_boot_run()

    def test_forced_modes_ignore_capabilities(self) -> None:
        assert decide_launch_strategy(EXEC_ONLY, LaunchMode.FORCE_RUN) is LaunchStrategy.SPRING_BOOT_RUN
        assert decide_launch_strategy(BOOT_WAR, LaunchMode.FORCE_EXEC) is LaunchStrategy.EXEC_JAVA


class TestLaunchGoals:
    def test_exec_java(self) -> None:
        goals, props = launch_goals(LaunchStrategy.EXEC_JAVA, "com.example.Main", NOTHING)
        assert goals == ["exec:java"]
        assert props == {"exec.mainClass": "com.example.Main"}

    def test_spring_boot_run(self) -> None:
        goals, props = launch_goals(LaunchStrategy.SPRING_BOOT_RUN, "com.example.App", BOOT_JAR)
        assert goals == ["spring-boot:run"]
        assert props == {"spring-boot.run.main-class": "com.example.App"}

    def test_spring_boot_1x(self) -> None:
        caps = Capabilities(has_spring_boot_plugin=True, spring_boot_version="1.5.22.RELEASE")
        assert caps.is_spring_boot_1x
        goals, props = launch_goals(LaunchStrategy.SPRING_BOOT_RUN, "com.example.App", caps)
        assert goals == [
            "org.springframework.boot:spring-boot-maven-plugin:1.5.22.RELEASE:run"
        ]
        assert props == {"run.main-class": "com.example.App"}
