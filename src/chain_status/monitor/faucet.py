"""Faucet balance monitor."""

from typing import TYPE_CHECKING, Protocol

import structlog

from chain_status.explorer import BlockSourceError
from chain_status.metrics import FAUCET_BALANCE

from .labels import LabelGateway, publish_label

if TYPE_CHECKING:
    from chain_status.config import FaucetConfig

log = structlog.get_logger()

FULL = "full"
DRY = "dry"


class BalanceSource(Protocol):
    def fetch_gas_balance(self, address: str) -> int: ...


class FaucetMonitor:
    """Keep a channel name in sync with whether the faucet can pay out."""

    def __init__(self, config: "FaucetConfig", source: BalanceSource, gateway: LabelGateway):
        self.config = config
        self.source = source
        self.gateway = gateway
        self.current_status: str | None = None

    def determine_status(self, balance: int) -> str:
        return FULL if balance > self.config.threshold else DRY

    def label_for(self, status: str) -> str:
        return self.config.full_name if status == FULL else self.config.dry_name

    def check(self) -> str | None:
        """Fetch the balance and rename the channel if the status changed.

        A failed fetch keeps the current status.

        Returns:
            Current status, or None if it is still unknown
        """
        try:
            balance = self.source.fetch_gas_balance(self.config.address)
        except BlockSourceError as e:
            log.error("Failed to fetch faucet balance, maintaining current status", error=str(e))
            return self.current_status

        FAUCET_BALANCE.set(balance)
        status = self.determine_status(balance)
        if status == self.current_status:
            return status

        log.info(
            "Faucet status changed",
            from_status=self.current_status or "initial",
            to_status=status,
            balance=balance,
            threshold=self.config.threshold,
        )
        if self.config.channel_id:
            publish_label(self.gateway, self.config.channel_id, self.label_for(status))
        self.current_status = status
        return status
