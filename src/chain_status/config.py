"""Configuration loading for chain-status."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from chain_status.discord import COLOR_GREEN, COLOR_RED, COLOR_YELLOW
from chain_status.monitor.classifier import Severity, Thresholds

DEFAULT_EXPLORER_URL = "https://api.routescan.io/v2/network/testnet/evm/3636"
DEFAULT_FAUCET_ADDRESS = "0x193B74C87eFFbB5f0C78002608c8C8A60e467668"


class ConfigError(Exception):
    """Raised when the configuration is invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Configuration validation failed: " + "; ".join(errors))


@dataclass(frozen=True)
class SeverityTable:
    """Per-severity values; every severity must have an entry."""

    red: Any
    yellow: Any
    green: Any

    def __getitem__(self, severity: Severity) -> Any:
        return getattr(self, severity.value)

    def as_dict(self) -> dict[Severity, Any]:
        return {s: self[s] for s in Severity}


@dataclass
class GuildConfig:
    """Guild-specific channels and label overrides."""

    guild_id: str
    status_channel_id: str | None = None
    notification_channel_ids: list[str] = field(default_factory=list)
    # Empty string means "use the global label"
    status_names: dict[str, str] = field(default_factory=dict)


@dataclass
class FaucetConfig:
    """Faucet balance monitoring."""

    channel_id: str | None = None
    address: str = DEFAULT_FAUCET_ADDRESS
    threshold: int = 100_000_000_000_000
    fetch_interval: float = 300.0
    full_name: str = "・faucet status꞉💧・"
    dry_name: str = "・faucet status꞉❌・"

    @property
    def enabled(self) -> bool:
        return bool(self.channel_id)


@dataclass
class BrandingConfig:
    name: str = "Botanix Labs"
    icon_url: str = "https://a-us.storyblok.com/f/1014909/512x512/026e26392f/dark_512-1.png"


def _split_ids(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


def _env_millis(name: str, default: float) -> float:
    """Read a millisecond env var, returning seconds."""
    raw = os.environ.get(name)
    return float(raw) / 1000 if raw else default


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


@dataclass
class Config:
    """Application configuration."""

    discord_token: str | None = None
    explorer_base_url: str = DEFAULT_EXPLORER_URL
    status_channel_ids: list[str] = field(default_factory=list)
    notification_channel_ids: list[str] = field(default_factory=list)
    labels: SeverityTable = field(
        default_factory=lambda: SeverityTable(
            red="⊢⛓ Testnet status: ❌",
            yellow="⊢⛓ Testnet status:️ 🟨",
            green="⊢⛓ Testnet status: ✅",
        )
    )
    # Poll intervals in seconds; more frequent sampling when unhealthy
    fetch_intervals: SeverityTable = field(
        default_factory=lambda: SeverityTable(red=60.0, yellow=120.0, green=300.0)
    )
    messages: SeverityTable = field(
        default_factory=lambda: SeverityTable(
            red="Testnet status: **outage**  ❌️",
            yellow="Testnet status: **unstable**  ⚠️",
            green="Testnet status: **operational**  ✅",
        )
    )
    colors: SeverityTable = field(
        default_factory=lambda: SeverityTable(red=COLOR_RED, yellow=COLOR_YELLOW, green=COLOR_GREEN)
    )
    notification_timeout: float = 900.0
    thresholds: Thresholds = field(default_factory=Thresholds)
    command_limit: int = 100
    block_explorer_url: str | None = "https://testnet.botanixscan.io/"
    guilds: list[GuildConfig] = field(default_factory=list)
    faucet: FaucetConfig = field(default_factory=FaucetConfig)
    branding: BrandingConfig = field(default_factory=BrandingConfig)
    channel_update_delay: float = 1.0
    channel_validation_hours: int = 24
    metrics_port: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        defaults = cls()

        labels = SeverityTable(
            red=os.environ.get("STATUS_RED_NAME") or defaults.labels.red,
            yellow=os.environ.get("STATUS_YELLOW_NAME") or defaults.labels.yellow,
            green=os.environ.get("STATUS_GREEN_NAME") or defaults.labels.green,
        )
        # FETCH_INTERVAL_* are milliseconds, NOTIFICATION_TIMEOUT is seconds
        fetch_intervals = SeverityTable(
            red=_env_millis("FETCH_INTERVAL_RED", defaults.fetch_intervals.red),
            yellow=_env_millis("FETCH_INTERVAL_YELLOW", defaults.fetch_intervals.yellow),
            green=_env_millis("FETCH_INTERVAL_GREEN", defaults.fetch_intervals.green),
        )
        messages = SeverityTable(
            red=os.environ.get("NOTIFICATION_MESSAGE_RED") or defaults.messages.red,
            yellow=os.environ.get("NOTIFICATION_MESSAGE_YELLOW") or defaults.messages.yellow,
            green=os.environ.get("NOTIFICATION_MESSAGE_GREEN") or defaults.messages.green,
        )

        faucet = FaucetConfig(
            channel_id=os.environ.get("FAUCET_STAT") or None,
            address=os.environ.get("FAUCET_ADDRESS", DEFAULT_FAUCET_ADDRESS),
            threshold=int(os.environ.get("FAUCET_THRESHOLD") or defaults.faucet.threshold),
            fetch_interval=_env_float("FAUCET_FETCH_INTERVAL", defaults.faucet.fetch_interval),
            full_name=os.environ.get("FAUCET_FULL_NAME") or defaults.faucet.full_name,
            dry_name=os.environ.get("FAUCET_DRY_NAME") or defaults.faucet.dry_name,
        )

        metrics_port = os.environ.get("METRICS_PORT")

        return cls(
            discord_token=os.environ.get("TOKEN") or None,
            explorer_base_url=os.environ.get("EXPLORER_BASE_URL", DEFAULT_EXPLORER_URL),
            status_channel_ids=_split_ids(os.environ.get("STATUS_CHANNEL_ID")),
            notification_channel_ids=_split_ids(os.environ.get("NOTIFICATION_CHANNEL_ID")),
            labels=labels,
            fetch_intervals=fetch_intervals,
            messages=messages,
            notification_timeout=_env_float("NOTIFICATION_TIMEOUT", defaults.notification_timeout),
            block_explorer_url=os.environ.get("CUSTOM_MESSAGE_LINE", defaults.block_explorer_url),
            guilds=cls._guilds_from_env(),
            faucet=faucet,
            channel_update_delay=_env_float("CHANNEL_UPDATE_DELAY", defaults.channel_update_delay),
            metrics_port=int(metrics_port) if metrics_port else None,
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    @staticmethod
    def _guilds_from_env() -> list[GuildConfig]:
        """Read GUILD1, GUILD2, ... until the first gap."""
        guilds = []
        index = 1
        while True:
            guild_id = os.environ.get(f"GUILD{index}", "").strip()
            if not guild_id:
                break

            prefix = f"G{index}_"
            guild = GuildConfig(
                guild_id=guild_id,
                status_channel_id=os.environ.get(f"{prefix}STATUS_CHANNEL_ID") or None,
                notification_channel_ids=_split_ids(
                    os.environ.get(f"{prefix}NOTIFICATION_CHANNEL_ID")
                ),
                status_names={
                    s.value: os.environ.get(f"{prefix}STATUS_{s.name}_NAME", "") for s in Severity
                },
            )
            # Guilds with no channels are ignored
            if guild.status_channel_id or guild.notification_channel_ids:
                guilds.append(guild)
            index += 1
        return guilds

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from YAML file, with env var overrides.

        Environment variables win for the Discord token and channel lists;
        thresholds and the faucet section come from the file when present.
        """
        config = cls.from_env()

        if not path.exists():
            return config

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not config.discord_token:
            config.discord_token = data.get("token")

        # A section left empty in YAML loads as None
        explorer = data.get("explorer") or {}
        config.explorer_base_url = explorer.get("base_url", config.explorer_base_url)
        config.command_limit = explorer.get("command_limit", config.command_limit)

        channels = data.get("channels") or {}
        if not config.status_channel_ids:
            config.status_channel_ids = [str(c) for c in channels.get("status") or []]
        if not config.notification_channel_ids:
            config.notification_channel_ids = [
                str(c) for c in channels.get("notification") or []
            ]

        th = data.get("thresholds") or {}
        base = config.thresholds
        config.thresholds = Thresholds(
            critical_block_age=th.get("critical_block_age", base.critical_block_age),
            warning_block_age=th.get("warning_block_age", base.warning_block_age),
            max_empty_blocks=th.get("max_empty_blocks", base.max_empty_blocks),
            min_sample_size=th.get("min_sample_size", base.min_sample_size),
        )

        fi = data.get("fetch_intervals") or {}
        base_fi = config.fetch_intervals
        config.fetch_intervals = SeverityTable(
            red=float(fi.get("red", base_fi.red)),
            yellow=float(fi.get("yellow", base_fi.yellow)),
            green=float(fi.get("green", base_fi.green)),
        )

        notif = data.get("notifications") or {}
        config.notification_timeout = float(notif.get("timeout", config.notification_timeout))

        for entry in data.get("guilds") or []:
            config.guilds.append(
                GuildConfig(
                    guild_id=str(entry["id"]),
                    status_channel_id=(
                        str(entry["status_channel_id"])
                        if entry.get("status_channel_id")
                        else None
                    ),
                    notification_channel_ids=[
                        str(c) for c in entry.get("notification_channel_ids") or []
                    ],
                    status_names=entry.get("status_names") or {},
                )
            )

        if data.get("faucet"):
            fc = data["faucet"]
            config.faucet = FaucetConfig(
                channel_id=config.faucet.channel_id or fc.get("channel_id"),
                address=fc.get("address", config.faucet.address),
                threshold=int(fc.get("threshold", config.faucet.threshold)),
                fetch_interval=float(fc.get("fetch_interval", config.faucet.fetch_interval)),
                full_name=fc.get("full_name", config.faucet.full_name),
                dry_name=fc.get("dry_name", config.faucet.dry_name),
            )

        return config

    def validate(self) -> None:
        """Check the configuration, raising ConfigError with every problem found."""
        errors = []

        if not self.discord_token:
            errors.append("Discord TOKEN is required but not provided")

        for severity, interval in self.fetch_intervals.as_dict().items():
            if not interval or interval <= 0:
                errors.append(f"Invalid fetch interval for {severity.value}: {interval}")

        if self.notification_timeout < 0:
            errors.append(f"Invalid notification timeout: {self.notification_timeout}")
        elif self.fetch_intervals.red and 0 < self.notification_timeout <= self.fetch_intervals.red:
            # The debounce window has to span several RED polls
            errors.append(
                f"RED fetch interval ({self.fetch_intervals.red:g}s) must be shorter than "
                f"the notification timeout ({self.notification_timeout:g}s)"
            )

        if self.thresholds.min_sample_size < 1:
            errors.append(f"Invalid minimum sample size: {self.thresholds.min_sample_size}")

        if self.faucet.enabled and self.faucet.fetch_interval <= 0:
            errors.append(f"Invalid faucet fetch interval: {self.faucet.fetch_interval}")

        if errors:
            raise ConfigError(errors)

    def status_channels(self) -> list[str]:
        """All status channels, global first, deduplicated."""
        channels = list(self.status_channel_ids)
        channels.extend(g.status_channel_id for g in self.guilds if g.status_channel_id)
        return _dedupe(channels)

    def notification_channels(self) -> list[str]:
        """All notification channels, global first, deduplicated."""
        channels = list(self.notification_channel_ids)
        for guild in self.guilds:
            channels.extend(guild.notification_channel_ids)
        return _dedupe(channels)

    def label_for(self, severity: Severity, channel_id: str | None = None) -> str:
        """Label for a severity, honoring the owning guild's override."""
        if channel_id is not None:
            for guild in self.guilds:
                if guild.status_channel_id == channel_id:
                    override = guild.status_names.get(severity.value)
                    if override:
                        return override
        return self.labels[severity]

    def summary(self) -> dict[str, Any]:
        """Short, secret-free description for startup logs."""
        return {
            "guilds": len(self.guilds),
            "status_channels": len(self.status_channels()),
            "notification_channels": len(self.notification_channels()),
            "faucet_enabled": self.faucet.enabled,
            "notification_timeout": self.notification_timeout,
            "fetch_intervals": {s.value: i for s, i in self.fetch_intervals.as_dict().items()},
        }
