"""Prometheus metrics for the chain status monitor.

Usage:
    from chain_status.metrics import start_metrics_server, SEVERITY

    start_metrics_server(port=8000)
    SEVERITY.set(2)
"""

from chain_status.metrics.chain import (
    ALERTS,
    EMPTY_BLOCKS,
    FAUCET_BALANCE,
    LABEL_UPDATES,
    LATEST_BLOCK_AGE,
    POLL_CYCLES,
    SERVICE_INFO,
    SEVERITY,
)
from chain_status.metrics.server import start_metrics_server

__all__ = [
    "start_metrics_server",
    "SERVICE_INFO",
    "SEVERITY",
    "LATEST_BLOCK_AGE",
    "EMPTY_BLOCKS",
    "POLL_CYCLES",
    "ALERTS",
    "LABEL_UPDATES",
    "FAUCET_BALANCE",
]
