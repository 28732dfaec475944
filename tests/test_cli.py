"""Tests for the typer CLI."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mvndash.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_data(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MVNDASH_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)


class TestModules:
    def test_lists_modules_and_profiles(self, make_project) -> None:
        root = make_project(modules=["api", "web"], profiles=[("dev", False)])
        result = runner.invoke(app, ["modules", "--path", str(root)])
        assert result.exit_code == 0, result.output
        assert "  api" in result.output
        assert "  web" in result.output
        assert "Profiles: dev" in result.output

    def test_not_a_project(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(app, ["modules", "--path", str(empty)])
        if result.exit_code == 0:
            pytest.skip("a pom.xml exists above the temp directory")
        assert result.exit_code == 1

    def test_invalid_config(self, tmp_path: Path, make_project) -> None:
        config = tmp_path / "bad.json"
        config.write_text('{"launch_mode": "never"}')
        result = runner.invoke(app, ["modules", "--path", str(make_project()), "-c", str(config)])
        assert result.exit_code == 2


@pytest.mark.skipif(os.name != "posix", reason="stub wrapper is a shell script")
class TestRun:
    def test_streams_output(self, make_project) -> None:
        root = make_project(modules=["api"])
        result = runner.invoke(
            app, ["run", "clean", "install", "--path", str(root), "-m", "api", "--flag=-o"]
        )
        assert result.exit_code == 0, result.output
        assert "-pl api -o clean install" in result.output

    def test_exit_code_is_passed_through(self, make_project) -> None:
        root = make_project(script="#!/bin/sh\nexit 3\n")
        result = runner.invoke(app, ["run", "test", "--path", str(root)])
        assert result.exit_code == 3

    def test_unknown_module(self, make_project) -> None:
        root = make_project(modules=["api"])
        result = runner.invoke(app, ["run", "test", "--path", str(root), "-m", "nope"])
        assert result.exit_code == 1
