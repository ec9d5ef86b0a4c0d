"""On-demand network status report."""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from chain_status.discord import build_embed

from .classifier import Block, InsufficientData, Severity, Thresholds, classify, count_empty

if TYPE_CHECKING:
    from chain_status.config import Config

STATUS_EMOJI = {
    Severity.RED: "🚫",
    Severity.YELLOW: "⚠️",
    Severity.GREEN: "✅",
}


@dataclass
class StatusReport:
    """Summary of a large block sample."""

    severity: Severity
    latest_number: int
    latest_tx_count: int
    latest_age: int  # whole seconds
    blocks_analyzed: int
    empty_blocks: int
    avg_block_time: float

    @property
    def empty_percentage(self) -> int:
        return round(self.empty_blocks / self.blocks_analyzed * 100)

    def to_text(self, config: "Config") -> str:
        lines = [
            f"{STATUS_EMOJI[self.severity]} {config.messages[self.severity]}",
            f"Latest block: #{self.latest_number}, {self.latest_tx_count} tx, "
            f"age: {self.latest_age} seconds",
            f"Blocks analyzed: {self.blocks_analyzed}",
            f"Empty blocks: {self.empty_blocks} ({self.empty_percentage}%)",
            f"Avg block time: {self.avg_block_time:.2f} seconds",
        ]
        if config.block_explorer_url:
            lines.append(f"Block explorer: {config.block_explorer_url}")
        return "\n".join(lines)

    def to_embed(self, config: "Config", now: datetime) -> dict[str, Any]:
        fields = [
            {"name": "Blocks\nanalyzed", "value": f"{self.blocks_analyzed}\n \n", "inline": True},
            {
                "name": "Empty\nblocks",
                "value": f"{self.empty_blocks} ({self.empty_percentage}%)\n \n",
                "inline": True,
            },
            {
                "name": "Avg\nblock time",
                "value": f"{self.avg_block_time:.2f} seconds",
                "inline": True,
            },
        ]
        if config.block_explorer_url:
            fields.append({"name": "\u200b", "value": "\n\n", "inline": False})
            fields.append(
                {"name": "Block explorer:", "value": config.block_explorer_url, "inline": False}
            )

        return build_embed(
            title=config.messages[self.severity],
            color=config.colors[self.severity],
            description=(
                f"Latest block: #{self.latest_number}, {self.latest_tx_count} tx, "
                f"age: {self.latest_age} seconds\n\u200b"
            ),
            fields=fields,
            footer_text=config.branding.name,
            footer_icon=config.branding.icon_url,
            timestamp=now,
        )


def average_block_time(sample: Sequence[Block], now: datetime) -> float:
    """Mean gap between consecutive blocks, counting the latest block's age as one gap."""
    gaps = [
        (newer.timestamp - older.timestamp).total_seconds()
        for newer, older in zip(sample, sample[1:])
    ]
    gaps.append(int((now - sample[0].timestamp).total_seconds()))
    return sum(gaps) / len(gaps)


def build_report(sample: Sequence[Block], thresholds: Thresholds, now: datetime) -> StatusReport:
    """Build a report from any non-empty sample.

    Raises:
        InsufficientData: If the sample is empty
    """
    if not sample:
        raise InsufficientData("No blocks fetched")

    severity = classify(sample, replace(thresholds, min_sample_size=1), now)
    latest = sample[0]

    return StatusReport(
        severity=severity,
        latest_number=latest.number,
        latest_tx_count=latest.tx_count,
        latest_age=int((now - latest.timestamp).total_seconds()),
        blocks_analyzed=len(sample),
        empty_blocks=count_empty(sample),
        avg_block_time=average_block_time(sample, now),
    )
