"""Tests for mvndash.process.supervisor, using small shell scripts."""

from __future__ import annotations

import os
import stat
import time
from pathlib import Path

import pytest

from mvndash.errors import ChannelError, SpawnError
from mvndash.process import ProcessEventType, ProcessOutcome, ProcessSupervisor

pytestmark = pytest.mark.skipif(os.name != "posix", reason="needs a POSIX shell")


def _script(tmp_path: Path, body: str, name: str = "tool.sh") -> Path:
    path = tmp_path / name
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


def _collect(handle, timeout: float = 10.0) -> list:
    """Drain until the terminal event arrives."""
    events = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        events.extend(handle.drain())
        if events and events[-1].is_terminal:
            return events
        time.sleep(0.01)
    raise AssertionError(f"no terminal event within {timeout}s: {events}")


class TestStart:
    def test_streams_lines_in_order(self, tmp_path: Path) -> None:
        script = _script(tmp_path, 'for i in 1 2 3 4 5; do echo "line $i"; done\n')
        handle = ProcessSupervisor().start(tmp_path, str(script), [])
        events = _collect(handle)
        assert events[0].type is ProcessEventType.STARTED
        assert events[0].pid == handle.pid
        lines = [e.text for e in events if e.type is ProcessEventType.LINE]
        assert lines == [f"line {i}" for i in range(1, 6)]
        assert events[-1].type is ProcessEventType.COMPLETED
        assert events[-1].code == 0
        assert handle.outcome is ProcessOutcome.SUCCESS

    def test_exactly_one_terminal_event_after_all_lines(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo out; echo err >&2; exit 3\n")
        handle = ProcessSupervisor().start(tmp_path, str(script), [])
        events = _collect(handle)
        terminal = [e for e in events if e.is_terminal]
        assert len(terminal) == 1
        assert events[-1] is terminal[0]
        assert {e.text for e in events if e.type is ProcessEventType.LINE} == {"out", "err"}
        assert handle.outcome is ProcessOutcome.FAILURE
        assert handle.exit_code == 3

    def test_arguments_are_passed(self, tmp_path: Path) -> None:
        script = _script(tmp_path, 'echo "$@"\n')
        handle = ProcessSupervisor().start(tmp_path, str(script), ["-pl", "a", "test"])
        lines = [e.text for e in _collect(handle) if e.type is ProcessEventType.LINE]
        assert lines == ["-pl a test"]

    def test_invalid_utf8_is_replaced(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "printf 'caf\\351\\n'\n")
        handle = ProcessSupervisor().start(tmp_path, str(script), [])
        lines = [e.text for e in _collect(handle) if e.type is ProcessEventType.LINE]
        assert lines == ["caf�"]

    def test_missing_executable(self, tmp_path: Path) -> None:
        with pytest.raises(SpawnError):
            ProcessSupervisor().start(tmp_path, "definitely-not-a-real-tool-xyz", [])

    def test_missing_workdir(self, tmp_path: Path) -> None:
        with pytest.raises(SpawnError):
            ProcessSupervisor().start(tmp_path / "nope", "sh", ["-c", "true"])

    def test_non_executable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plain.txt"
        path.write_text("not a program")
        with pytest.raises(SpawnError):
            ProcessSupervisor().start(tmp_path, str(path), [])


class TestCancel:
    def test_cancel_reports_killed(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo ready\nexec sleep 30\n")
        supervisor = ProcessSupervisor()
        handle = supervisor.start(tmp_path, str(script), [])
        assert supervisor.cancel(handle) is True
        events = _collect(handle)
        assert events[-1].type is ProcessEventType.COMPLETED
        assert handle.outcome is ProcessOutcome.KILLED

    def test_cancel_is_idempotent(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "exec sleep 30\n")
        supervisor = ProcessSupervisor()
        handle = supervisor.start(tmp_path, str(script), [])
        assert supervisor.cancel(handle) is True
        assert supervisor.cancel(handle) is False
        _collect(handle)

    def test_cancel_after_exit_is_noop(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo done\n")
        supervisor = ProcessSupervisor()
        handle = supervisor.start(tmp_path, str(script), [])
        _collect(handle)
        assert supervisor.cancel(handle) is False
        assert handle.outcome is ProcessOutcome.SUCCESS

    def test_force_kill_after_grace_period(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "trap '' TERM\necho armed\nwhile true; do sleep 0.1; done\n")
        supervisor = ProcessSupervisor(kill_grace_period=0.3)
        handle = supervisor.start(tmp_path, str(script), [])
        # Wait until the trap is installed before signalling.
        deadline = time.monotonic() + 5
        seen = []
        while not any(e.type is ProcessEventType.LINE for e in seen):
            assert time.monotonic() < deadline
            seen.extend(handle.drain())
            time.sleep(0.01)
        supervisor.cancel(handle)
        _collect(handle)
        assert handle.outcome is ProcessOutcome.KILLED

    def test_cleanup_stops_live_processes(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "exec sleep 30\n")
        supervisor = ProcessSupervisor()
        handles = [supervisor.start(tmp_path, str(script), []) for _ in range(2)]
        assert len(supervisor) == 2
        supervisor.cleanup()
        for handle in handles:
            assert handle.wait(timeout=10)
            assert handle.outcome is ProcessOutcome.KILLED
        assert supervisor.live_handles() == []


class TestDrain:
    def test_dead_worker_without_terminal_event(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo hi\n")
        handle = ProcessSupervisor().start(tmp_path, str(script), [])
        assert handle.wait(timeout=10)
        # Simulate a worker that died before reporting its end.
        handle.channel.drain()
        with pytest.raises(ChannelError):
            handle.drain()
