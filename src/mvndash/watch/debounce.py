"""Coalesce bursts of file events into spaced-out triggers."""

from __future__ import annotations

import time
from typing import Callable


class Debouncer:
    """Leading-edge debounce with a fixed quiet period.

    ``record()`` notes a relevant event. ``check_changes()`` fires (returns
    True) when an event is pending and more than ``quiet_period`` seconds
    have passed since it last fired. Events arriving too soon are dropped,
    so a burst that straddles several checks still fires only once.
    """

    def __init__(
        self, quiet_period: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.quiet_period = quiet_period
        self._clock = clock
        self._last_trigger: float | None = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def last_trigger(self) -> float | None:
        return self._last_trigger

    def record(self) -> None:
        self._pending = True

    def check_changes(self) -> bool:
        if not self._pending:
            return False
        now = self._clock()
        if self._last_trigger is not None and now - self._last_trigger <= self.quiet_period:
            self._pending = False
            return False
        self._last_trigger = now
        self._pending = False
        return True

    def reset(self) -> None:
        self._pending = False
