"""Severity-driven poll loop."""

import threading
import time
from collections.abc import Callable, Mapping

import structlog

from .classifier import Severity

log = structlog.get_logger()


class IntervalScheduler:
    """Run poll cycles at a cadence chosen by the current severity.

    The scheduler is also the only timer: between cycles it sleeps until the
    next poll or the pending alert deadline, whichever is first, and fires
    due alerts on its own thread. Cycles never overlap.
    """

    def __init__(
        self,
        intervals: Mapping[Severity, float],
        clock: Callable[[], float] = time.monotonic,
        stop_event: threading.Event | None = None,
    ):
        missing = [s.value for s in Severity if s not in intervals]
        if missing:
            raise ValueError(f"No poll interval for: {', '.join(missing)}")
        self.intervals = dict(intervals)
        self.clock = clock
        self.stop_event = stop_event or threading.Event()

    def next_interval(self, severity: Severity | None) -> float:
        """Poll interval for a severity; None falls back to the RED interval."""
        if severity is None:
            return self.intervals[Severity.RED]
        return self.intervals[severity]

    def run_once(self, cycle: Callable[[], Severity | None]) -> float:
        """Run one cycle and return the delay before the next one."""
        try:
            severity = cycle()
        except Exception:
            log.exception("Error in status check cycle")
            severity = None

        interval = self.next_interval(severity)
        log.info("Next check scheduled", seconds=interval)
        return interval

    def wait_until(
        self,
        next_poll: float,
        next_deadline: Callable[[], float | None],
        on_deadline: Callable[[], None],
    ) -> None:
        """Sleep until next_poll, firing alert deadlines that fall before it."""
        while not self.stop_event.is_set():
            now = self.clock()
            deadline = next_deadline()
            if deadline is not None and deadline <= now:
                try:
                    on_deadline()
                except Exception:
                    log.exception("Error firing notification")
                continue

            if now >= next_poll:
                return

            wake = next_poll if deadline is None else min(next_poll, deadline)
            self.stop_event.wait(wake - now)

    def run(
        self,
        cycle: Callable[[], Severity | None],
        next_deadline: Callable[[], float | None] = lambda: None,
        on_deadline: Callable[[], None] = lambda: None,
    ) -> None:
        """Drive cycles until stop() is called.

        Args:
            cycle: One full poll pass, returning the new severity or None
            next_deadline: Returns the pending alert deadline, if any
            on_deadline: Called when that deadline has passed
        """
        while not self.stop_event.is_set():
            interval = self.run_once(cycle)
            self.wait_until(self.clock() + interval, next_deadline, on_deadline)

    def stop(self) -> None:
        self.stop_event.set()
