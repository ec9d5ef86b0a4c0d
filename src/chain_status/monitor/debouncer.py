"""Debounced notifications for severity transitions."""

import structlog

from .classifier import Severity
from .state import MonitorState, PendingAlert

log = structlog.get_logger()


class NotificationDebouncer:
    """Turn transitions into at most one alert per settled severity.

    A transition arms a pending alert that fires once the fixed timeout has
    elapsed. A further transition inside the window replaces it and restarts
    the window. A transition back to the last published severity cancels it,
    so a status that reverts inside the window never alerts.

    All times come from the caller, so the state machine never reads a clock.
    """

    def __init__(self, state: MonitorState, timeout: float):
        """Initialize the debouncer.

        Args:
            state: Shared monitor state (holds the pending alert)
            timeout: Debounce window in seconds
        """
        self.state = state
        self.timeout = timeout

    @property
    def deadline(self) -> float | None:
        """Deadline of the pending alert, or None when idle."""
        return self.state.pending.deadline if self.state.pending else None

    @property
    def is_pending(self) -> bool:
        return self.state.pending is not None

    def prime(self, severity: Severity) -> None:
        """Seed the last published severity from the first observation."""
        if self.state.last_published_severity is None:
            self.state.last_published_severity = severity
            log.info("Initialized last published status", status=severity.value)

    def on_transition(self, severity: Severity, now: float) -> PendingAlert | None:
        """Handle a transition to a new severity.

        Returns:
            The newly armed pending alert, or None if nothing is pending
        """
        state = self.state
        if state.pending is not None:
            log.debug("Pending notification cleared", status=state.pending.severity.value)
            state.pending = None

        if severity == state.last_published_severity:
            log.info("Notification skipped, status matches last sent", status=severity.value)
            return None

        state.pending = PendingAlert(severity=severity, deadline=now + self.timeout)
        log.info(
            "Notification scheduled",
            status=severity.value,
            timeout_seconds=self.timeout,
        )
        return state.pending

    def fire_due(self, now: float) -> Severity | None:
        """Release the pending alert if its window has elapsed.

        Returns:
            Severity to announce, or None if nothing is due
        """
        state = self.state
        pending = state.pending
        if pending is None or now < pending.deadline:
            return None

        state.pending = None
        if pending.severity == state.last_published_severity:
            return None

        state.last_published_severity = pending.severity
        return pending.severity
