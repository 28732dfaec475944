"""Spawn, stream and cancel build-tool invocations."""

from __future__ import annotations

import enum
import logging
import os
import shutil
import signal
import subprocess
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import IO

from mvndash.errors import ChannelError, KillError, SpawnError
from mvndash.process.channel import EventChannel, ProcessEvent

logger = logging.getLogger(__name__)

_POSIX = os.name == "posix"


class ProcessOutcome(enum.Enum):
    """Terminal outcomes for a supervised process."""

    SUCCESS = "success"
    FAILURE = "failure"
    KILLED = "killed"
    ERROR = "error"


@dataclass
class ProcessHandle:
    """One live external process and the channel its worker writes to.

    The worker thread is the only writer of ``_outcome``; it sets the
    outcome exactly once, right before sending the terminal event. The
    render thread reads events through ``drain()`` and never touches the
    pipe.
    """

    command: list[str]
    cwd: str
    pid: int
    proc: subprocess.Popen[bytes]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: float = field(default_factory=time.time)
    channel: EventChannel = field(default_factory=EventChannel)
    kill_grace_period: float = 3.0

    _pgid: int = field(default=0, init=False)
    _worker: threading.Thread | None = field(default=None, init=False)
    _outcome: ProcessOutcome | None = field(default=None, init=False)
    _exit_code: int | None = field(default=None, init=False)
    _cancel_requested: bool = field(default=False, init=False)
    _terminal_seen: bool = field(default=False, init=False)
    _escalation: threading.Timer | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def _start_worker(self) -> None:
        if _POSIX:
            try:
                self._pgid = os.getpgid(self.pid)
            except ProcessLookupError:
                self._pgid = self.pid
        self._worker = threading.Thread(
            target=self._read_loop, name=f"proc-{self.id}", daemon=True
        )
        self._worker.start()

    def _read_loop(self) -> None:
        """Stream merged stdout/stderr as line events, then the terminal event."""
        self.channel.send(ProcessEvent.started(self.pid))
        stream: IO[bytes] | None = self.proc.stdout
        try:
            if stream is not None:
                for raw in iter(stream.readline, b""):
                    text = raw.decode("utf-8", errors="replace")
                    text = text.rstrip("\n").rstrip("\r")
                    self.channel.send(ProcessEvent.line(text))
            code = self.proc.wait()
        except Exception as e:
            logger.exception("Process %s (pid=%d) reader failed", self.id, self.pid)
            self._finish(ProcessOutcome.ERROR, None)
            self.channel.send(ProcessEvent.error(f"Process error: {e}"))
            return
        finally:
            if stream is not None:
                stream.close()

        if self._cancel_requested:
            outcome = ProcessOutcome.KILLED
        elif code == 0:
            outcome = ProcessOutcome.SUCCESS
        else:
            outcome = ProcessOutcome.FAILURE
        self._finish(outcome, code)
        logger.info(
            "Process %s (pid=%d) finished: %s (code=%s)",
            self.id,
            self.pid,
            outcome.value,
            code,
        )
        self.channel.send(ProcessEvent.completed(code))

    def _finish(self, outcome: ProcessOutcome, code: int | None) -> None:
        with self._lock:
            if self._outcome is not None:
                return
            self._outcome = outcome
            self._exit_code = code
            timer = self._escalation
            self._escalation = None
        if timer is not None:
            timer.cancel()

    def drain(self) -> list[ProcessEvent]:
        """Return every event available right now.

        Raises:
            ChannelError: the worker is gone and no terminal event was ever
                delivered, so nothing more can arrive.
        """
        worker_alive = self._worker is not None and self._worker.is_alive()
        events = self.channel.drain()
        if any(e.is_terminal for e in events):
            self._terminal_seen = True
        if not events and not worker_alive and not self._terminal_seen:
            raise ChannelError(
                f"Worker for process {self.pid} exited without a terminal event"
            )
        return events

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the worker has delivered its terminal event.

        Only meant for headless callers and tests; the render loop never
        blocks on a process. Returns False on timeout.
        """
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()

    def cancel(self) -> bool:
        """Request graceful termination of the whole process group.

        Returns True if a signal was sent, False when the request was a
        no-op (already terminal, or a cancel is already in flight).

        Raises:
            KillError: the OS refused the signal.
        """
        with self._lock:
            if self._outcome is not None or self._cancel_requested:
                return False
            self._cancel_requested = True

        try:
            self._signal(graceful=True)
        except ProcessLookupError:
            logger.debug("Process %d already gone", self.pid)
            return False
        except OSError as e:
            with self._lock:
                self._cancel_requested = False
            raise KillError(f"Failed to stop process {self.pid}: {e}") from e

        logger.info("Sent termination request to process %s (pid=%d)", self.id, self.pid)
        if self.kill_grace_period > 0:
            timer = threading.Timer(self.kill_grace_period, self._force_kill)
            timer.daemon = True
            with self._lock:
                if self._outcome is None:
                    self._escalation = timer
                    timer.start()
        return True

    def _force_kill(self) -> None:
        with self._lock:
            if self._outcome is not None:
                return
        logger.warning(
            "Process %s (pid=%d) still alive after %.1fs, forcing kill",
            self.id,
            self.pid,
            self.kill_grace_period,
        )
        try:
            self._signal(graceful=False)
        except ProcessLookupError:
            logger.debug("Process %d exited before force kill", self.pid)
        except OSError as e:
            logger.warning("Force kill of process %d failed: %s", self.pid, e)

    def _signal(self, graceful: bool) -> None:
        if _POSIX:
            sig = signal.SIGTERM if graceful else signal.SIGKILL
            os.killpg(self._pgid or self.pid, sig)
        elif graceful:
            self.proc.terminate()
        else:
            result = subprocess.run(
                ["taskkill", "/PID", str(self.pid), "/T", "/F"],
                capture_output=True,
                check=False,
            )
            if result.returncode != 0:
                raise OSError(result.stderr.decode(errors="replace").strip())

    @property
    def outcome(self) -> ProcessOutcome | None:
        with self._lock:
            return self._outcome

    @property
    def exit_code(self) -> int | None:
        with self._lock:
            return self._exit_code

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def elapsed(self) -> float:
        return time.time() - self.started_at


class ProcessSupervisor:
    """Starts build processes and keeps track of the live ones.

    Every process runs in its own session (process group) so cancelling it
    also stops the JVMs it forks. A worker thread per process performs the
    blocking reads; callers only ever see events through the handle's
    channel.
    """

    def __init__(self, kill_grace_period: float = 3.0) -> None:
        self.kill_grace_period = kill_grace_period
        self._handles: dict[str, ProcessHandle] = {}

    def start(
        self,
        workdir: str | os.PathLike[str],
        executable: str,
        args: list[str],
        env: dict[str, str] | None = None,
    ) -> ProcessHandle:
        """Spawn ``executable args...`` in ``workdir`` and start streaming.

        Raises:
            SpawnError: the executable or working directory cannot be found,
                or the OS refused to create the process.
        """
        cwd = os.fspath(workdir)
        if not os.path.isdir(cwd):
            raise SpawnError(f"Working directory does not exist: {cwd}")

        resolved = executable
        if os.path.dirname(executable) == "":
            found = shutil.which(executable)
            if found is None:
                raise SpawnError(f"Executable not found: {executable}")
            resolved = found

        command = [resolved, *args]
        full_env = {**os.environ, **(env or {})}
        popen_kwargs: dict[str, object] = {}
        if _POSIX:
            popen_kwargs["start_new_session"] = True
        else:
            popen_kwargs["creationflags"] = getattr(
                subprocess, "CREATE_NEW_PROCESS_GROUP", 0
            )

        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd,
                env=full_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                **popen_kwargs,  # type: ignore[call-overload]
            )
        except OSError as e:
            raise SpawnError(f"Failed to start {executable}: {e}") from e

        handle = ProcessHandle(
            command=command,
            cwd=cwd,
            pid=proc.pid,
            proc=proc,
            kill_grace_period=self.kill_grace_period,
        )
        handle._start_worker()
        self._handles[handle.id] = handle
        logger.info(
            "Process %s started: pid=%d cwd=%s cmd=%s",
            handle.id,
            handle.pid,
            cwd,
            " ".join(command),
        )
        return handle

    def cancel(self, handle: ProcessHandle) -> bool:
        """Request termination. A no-op on terminal handles.

        Raises:
            KillError: the signal could not be delivered.
        """
        return handle.cancel()

    def live_handles(self) -> list[ProcessHandle]:
        """Non-terminal handles; terminal ones are forgotten."""
        for handle_id in [h.id for h in self._handles.values() if h.is_terminal]:
            del self._handles[handle_id]
        return list(self._handles.values())

    def cleanup(self) -> None:
        """Cancel every live process. Called on shutdown."""
        for handle in self.live_handles():
            try:
                handle.cancel()
            except KillError as e:
                logger.warning("Cleanup could not stop process %d: %s", handle.pid, e)
        logger.info("All build processes cleaned up")

    def __len__(self) -> int:
        return len(self.live_handles())
