"""Idempotent status label updates."""

from typing import Protocol

import structlog

from chain_status.metrics import LABEL_UPDATES

log = structlog.get_logger()


class LabelGateway(Protocol):
    def get_label(self, channel_id: str) -> str | None: ...

    def set_label(self, channel_id: str, name: str) -> bool: ...


def publish_label(gateway: LabelGateway, channel_id: str, name: str) -> bool:
    """Rename a channel only when its current name differs.

    Returns:
        True if a rename was issued and succeeded
    """
    current = gateway.get_label(channel_id)
    if current == name:
        log.debug("Channel name already up to date", channel_id=channel_id, name=name)
        return False

    log.info("Updating channel name", channel_id=channel_id, old=current, new=name)
    ok = gateway.set_label(channel_id, name)
    LABEL_UPDATES.labels(status="success" if ok else "failure").inc()
    return ok
