"""Severity transition tracking."""

from dataclasses import dataclass

import structlog

from .classifier import Severity
from .state import MonitorState

log = structlog.get_logger()


@dataclass(frozen=True)
class Transition:
    """A real change of severity between two observations."""

    from_: Severity
    to: Severity


@dataclass(frozen=True)
class Observation:
    """Result of feeding one classification into the tracker."""

    label_changed: bool  # Target label differs from last cycle's
    transition: Transition | None


class HysteresisTracker:
    """Track current/previous severity and detect real transitions.

    The very first observation only seeds the state; it never produces a
    transition, so a restart does not announce the chain's status again.
    """

    def __init__(self, state: MonitorState):
        self.state = state

    def observe(self, new_severity: Severity, now: float) -> Observation:
        """Record a classification.

        Args:
            new_severity: Severity classified this cycle
            now: Clock time of the observation

        Returns:
            Whether the label target moved and the transition, if any
        """
        state = self.state
        current = state.current_severity
        transition = None

        if current is not None and new_severity != current:
            transition = Transition(from_=current, to=new_severity)
            state.last_transition_time = now
            log.info(
                "Status change detected",
                from_status=current.value,
                to_status=new_severity.value,
            )

        state.previous_severity = current
        state.current_severity = new_severity
        state.observations += 1

        return Observation(label_changed=new_severity != current, transition=transition)
