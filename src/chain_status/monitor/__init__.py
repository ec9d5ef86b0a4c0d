"""Chain status classification, hysteresis and debounced notifications.

The daemon lives in chain_status.monitor.daemon and is not re-exported here,
since it depends on chain_status.config.
"""

from .classifier import (
    Block,
    ClassificationInputInvalid,
    InsufficientData,
    Severity,
    Thresholds,
    classify,
    parse_block,
    parse_sample,
)
from .debouncer import NotificationDebouncer
from .hysteresis import HysteresisTracker, Observation, Transition
from .scheduler import IntervalScheduler
from .state import MonitorState, PendingAlert

__all__ = [
    # Classifier
    "classify",
    "parse_block",
    "parse_sample",
    "Block",
    "Severity",
    "Thresholds",
    "InsufficientData",
    "ClassificationInputInvalid",
    # State
    "MonitorState",
    "PendingAlert",
    # Tracker and debouncer
    "HysteresisTracker",
    "Observation",
    "Transition",
    "NotificationDebouncer",
    # Scheduler
    "IntervalScheduler",
]
