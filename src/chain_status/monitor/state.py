"""Mutable monitor state shared by the tracker and the debouncer."""

from dataclasses import dataclass

from .classifier import Severity


@dataclass(frozen=True)
class PendingAlert:
    """An alert waiting for its debounce window to elapse.

    Replacing the instance on MonitorState is how a pending timer is
    cancelled and re-armed.
    """

    severity: Severity
    deadline: float  # clock seconds


@dataclass
class MonitorState:
    """State owned by one monitor for the lifetime of the process.

    Only the scheduler thread mutates it.
    """

    current_severity: Severity | None = None
    previous_severity: Severity | None = None
    pending: PendingAlert | None = None
    last_published_severity: Severity | None = None
    last_transition_time: float | None = None
    observations: int = 0

    @property
    def pending_severity(self) -> Severity | None:
        return self.pending.severity if self.pending else None
