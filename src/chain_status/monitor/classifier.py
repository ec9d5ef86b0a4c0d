"""Block sample classifier for chain health."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import total_ordering
from typing import Any


@total_ordering
class Severity(Enum):
    """Chain health levels, ordered GREEN < YELLOW < RED."""

    GREEN = "green"  # Blocks are fresh and mostly non-empty
    YELLOW = "yellow"  # Slow blocks or too many empty blocks
    RED = "red"  # Chain appears halted

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_RANK = {Severity.GREEN: 0, Severity.YELLOW: 1, Severity.RED: 2}


class InsufficientData(Exception):
    """Raised when a block sample is too small to classify."""

    pass


class ClassificationInputInvalid(InsufficientData):
    """Raised when a block carries a malformed timestamp or tx count."""

    pass


@dataclass(frozen=True)
class Block:
    """A single block as seen by the classifier."""

    number: int
    timestamp: datetime
    tx_count: int


@dataclass(frozen=True)
class Thresholds:
    """Classification thresholds, fixed for the lifetime of a run."""

    critical_block_age: float = 600.0  # seconds
    warning_block_age: float = 60.0  # seconds
    max_empty_blocks: int = 8  # out of the sample
    min_sample_size: int = 11


def parse_timestamp(value: Any) -> datetime:
    """Parse an explorer timestamp into an aware UTC datetime."""
    if not isinstance(value, str) or not value:
        raise ClassificationInputInvalid(f"Invalid block timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ClassificationInputInvalid(f"Invalid block timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_block(raw: dict[str, Any]) -> Block:
    """Build a Block from an explorer JSON item.

    Raises:
        ClassificationInputInvalid: If number, timestamp or txCount is malformed
    """
    if not isinstance(raw, dict):
        raise ClassificationInputInvalid(f"Invalid block entry: {raw!r}")

    number = raw.get("number")
    tx_count = raw.get("txCount")
    # bool is an int subclass; neither field should ever be one
    if not isinstance(number, int) or isinstance(number, bool):
        raise ClassificationInputInvalid(f"Invalid block number: {number!r}")
    if not isinstance(tx_count, int) or isinstance(tx_count, bool) or tx_count < 0:
        raise ClassificationInputInvalid(f"Invalid tx count for block {number}: {tx_count!r}")

    return Block(number=number, timestamp=parse_timestamp(raw.get("timestamp")), tx_count=tx_count)


def parse_sample(items: Iterable[dict[str, Any]]) -> list[Block]:
    """Parse explorer items, keeping their most-recent-first order."""
    return [parse_block(item) for item in items]


def block_age(sample: Sequence[Block], now: datetime) -> float:
    """Seconds between now and the latest block.

    Absolute value so small clock skew never yields a negative age.
    """
    return abs((now - sample[0].timestamp).total_seconds())


def count_empty(sample: Sequence[Block]) -> int:
    """Number of blocks without transactions."""
    return sum(1 for block in sample if block.tx_count == 0)


def classify(sample: Sequence[Block], thresholds: Thresholds, now: datetime) -> Severity:
    """Classify a block sample.

    Args:
        sample: Blocks ordered most-recent first
        thresholds: Age and empty-block limits
        now: Current time (aware)

    Returns:
        RED if the latest block is older than the critical age, YELLOW if it is
        older than the warning age or too many blocks are empty, else GREEN

    Raises:
        InsufficientData: If the sample is smaller than min_sample_size
    """
    if len(sample) < thresholds.min_sample_size:
        raise InsufficientData(
            f"Got {len(sample)} blocks, need at least {thresholds.min_sample_size}"
        )

    age = block_age(sample, now)
    if age > thresholds.critical_block_age:
        return Severity.RED

    if age > thresholds.warning_block_age or count_empty(sample) > thresholds.max_empty_blocks:
        return Severity.YELLOW

    return Severity.GREEN
