"""Shared fixtures: throwaway Maven projects with a stub wrapper script."""

from __future__ import annotations

import stat
from pathlib import Path
from typing import Callable

import pytest

from mvndash.config import DashConfig

ECHO_ARGS = '#!/bin/sh\necho "$@"\n'

POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.example</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>
  <packaging>{packaging}</packaging>
  {modules}
  {profiles}
  {build}
</project>
"""


def write_pom(
    root: Path,
    modules: list[str] | None = None,
    profiles: list[tuple[str, bool]] | None = None,
    packaging: str = "pom",
    build: str = "",
) -> Path:
    module_xml = ""
    if modules:
        module_xml = (
            "<modules>"
            + "".join(f"<module>{m}</module>" for m in modules)
            + "</modules>"
        )
    profile_xml = ""
    if profiles:
        items = []
        for name, active in profiles:
            activation = (
                "<activation><activeByDefault>true</activeByDefault></activation>"
                if active
                else ""
            )
            items.append(f"<profile><id>{name}</id>{activation}</profile>")
        profile_xml = "<profiles>" + "".join(items) + "</profiles>"
    root.mkdir(parents=True, exist_ok=True)
    pom = root / "pom.xml"
    pom.write_text(
        POM_TEMPLATE.format(
            packaging=packaging, modules=module_xml, profiles=profile_xml, build=build
        )
    )
    return pom


def write_wrapper(root: Path, script: str = ECHO_ARGS) -> Path:
    wrapper = root / "mvnw"
    wrapper.write_text(script)
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return wrapper


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory for a project root with a pom.xml and an ``mvnw`` stub."""

    def _make(
        name: str = "project",
        modules: list[str] | None = None,
        profiles: list[tuple[str, bool]] | None = None,
        script: str | None = ECHO_ARGS,
    ) -> Path:
        root = tmp_path / name
        write_pom(root, modules=modules, profiles=profiles)
        for module in modules or []:
            write_pom(root / module, packaging="jar")
        if script is not None:
            write_wrapper(root, script)
        return root

    return _make


@pytest.fixture
def config(tmp_path: Path) -> DashConfig:
    return DashConfig(data_dir=str(tmp_path / "data"))
