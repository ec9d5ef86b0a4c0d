"""Prometheus metrics for the chain status monitor.

All metrics use the 'chain_status_' prefix.
"""

from prometheus_client import Counter, Gauge, Info

SERVICE_INFO = Info(
    "chain_status_service",
    "Monitor metadata",
)

# Classification
SEVERITY = Gauge(
    "chain_status_severity",
    "Current chain severity (0=green, 1=yellow, 2=red)",
)

LATEST_BLOCK_AGE = Gauge(
    "chain_status_latest_block_age_seconds",
    "Age of the most recent block at the last check",
)

EMPTY_BLOCKS = Gauge(
    "chain_status_empty_blocks",
    "Blocks without transactions in the last sample",
)

POLL_CYCLES = Counter(
    "chain_status_poll_cycles_total",
    "Poll cycles run",
    ["result"],  # result: classified, insufficient, error
)

# Publishing
ALERTS = Counter(
    "chain_status_alerts_total",
    "Alert messages sent per channel",
    ["severity", "status"],  # status: success, failure
)

LABEL_UPDATES = Counter(
    "chain_status_label_updates_total",
    "Channel renames attempted",
    ["status"],  # status: success, failure
)

# Faucet
FAUCET_BALANCE = Gauge(
    "chain_status_faucet_balance_wei",
    "Last observed faucet gas balance",
)
