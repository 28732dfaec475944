"""Build process management: supervised subprocesses streaming line events.

Each build runs in its own process group with a dedicated reader thread.
Output reaches the UI only as immutable events on a per-process channel,
drained by the render loop.
"""

from mvndash.process.channel import EventChannel, ProcessEvent, ProcessEventType
from mvndash.process.supervisor import ProcessHandle, ProcessOutcome, ProcessSupervisor

__all__ = [
    "EventChannel",
    "ProcessEvent",
    "ProcessEventType",
    "ProcessHandle",
    "ProcessOutcome",
    "ProcessSupervisor",
]
