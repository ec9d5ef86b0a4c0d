"""Basic tests for chain-status configuration and metrics."""

import json
from pathlib import Path

import pytest

from chain_status import __version__
from chain_status.config import Config, ConfigError, SeverityTable
from chain_status.metrics.server import metrics_app, register_health_check
from chain_status.monitor import Severity

ENV_VARS = [
    "TOKEN",
    "STATUS_CHANNEL_ID",
    "NOTIFICATION_CHANNEL_ID",
    "FETCH_INTERVAL_RED",
    "FETCH_INTERVAL_YELLOW",
    "FETCH_INTERVAL_GREEN",
    "NOTIFICATION_TIMEOUT",
    "STATUS_RED_NAME",
    "GUILD1",
    "GUILD2",
    "FAUCET_STAT",
    "METRICS_PORT",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_version() -> None:
    """Test that version is defined."""
    assert __version__ == "0.1.0"


def test_config_from_env(clean_env: pytest.MonkeyPatch) -> None:
    """Test loading config from environment variables."""
    clean_env.setenv("TOKEN", "bot-token")
    clean_env.setenv("STATUS_CHANNEL_ID", "111, 222,")
    clean_env.setenv("NOTIFICATION_CHANNEL_ID", "333")
    clean_env.setenv("FETCH_INTERVAL_RED", "30000")
    clean_env.setenv("NOTIFICATION_TIMEOUT", "600")
    clean_env.setenv("STATUS_RED_NAME", "down!")
    clean_env.setenv("METRICS_PORT", "9100")

    config = Config.from_env()

    assert config.discord_token == "bot-token"
    assert config.status_channel_ids == ["111", "222"]
    assert config.notification_channel_ids == ["333"]
    assert config.fetch_intervals.red == 30.0
    assert config.fetch_intervals.green == 300.0
    assert config.notification_timeout == 600.0
    assert config.labels[Severity.RED] == "down!"
    assert config.metrics_port == 9100
    config.validate()


def test_guilds_from_env(clean_env: pytest.MonkeyPatch) -> None:
    """Guild-specific channels and label overrides are read until the first gap."""
    clean_env.setenv("STATUS_CHANNEL_ID", "111")
    clean_env.setenv("GUILD1", "g1")
    clean_env.setenv("G1_STATUS_CHANNEL_ID", "555")
    clean_env.setenv("G1_NOTIFICATION_CHANNEL_ID", "666,777")
    clean_env.setenv("G1_STATUS_YELLOW_NAME", "g1 yellow")
    clean_env.setenv("G3_STATUS_CHANNEL_ID", "999")

    config = Config.from_env()

    assert len(config.guilds) == 1
    assert config.status_channels() == ["111", "555"]
    assert config.notification_channels() == ["666", "777"]
    assert config.label_for(Severity.YELLOW, "555") == "g1 yellow"
    assert config.label_for(Severity.RED, "555") == config.labels.red
    assert config.label_for(Severity.YELLOW, "111") == config.labels.yellow


def test_channels_deduplicated() -> None:
    config = Config(status_channel_ids=["1", "2", "1"], notification_channel_ids=["3", "3"])
    assert config.status_channels() == ["1", "2"]
    assert config.notification_channels() == ["3"]


def test_validate_collects_all_errors() -> None:
    config = Config(
        discord_token=None,
        fetch_intervals=SeverityTable(red=0, yellow=-5, green=60),
        notification_timeout=-1,
    )

    with pytest.raises(ConfigError) as exc_info:
        config.validate()

    errors = exc_info.value.errors
    assert len(errors) == 4
    assert any("TOKEN" in e for e in errors)
    assert any("red" in e for e in errors)
    assert any("yellow" in e for e in errors)
    assert any("timeout" in e for e in errors)


def test_fetch_intervals_from_env_are_milliseconds(clean_env: pytest.MonkeyPatch) -> None:
    """Existing deployments set FETCH_INTERVAL_* in milliseconds."""
    clean_env.setenv("FETCH_INTERVAL_RED", "60000")
    clean_env.setenv("FETCH_INTERVAL_YELLOW", "120000")
    clean_env.setenv("FETCH_INTERVAL_GREEN", "300000")
    clean_env.setenv("NOTIFICATION_TIMEOUT", "900")

    config = Config.from_env()

    assert config.fetch_intervals.as_dict() == {
        Severity.RED: 60.0,
        Severity.YELLOW: 120.0,
        Severity.GREEN: 300.0,
    }
    assert config.notification_timeout == 900.0


def test_validate_rejects_red_interval_not_below_timeout() -> None:
    config = Config(
        discord_token="token",
        fetch_intervals=SeverityTable(red=900, yellow=1200, green=1800),
        notification_timeout=900,
    )

    with pytest.raises(ConfigError) as exc_info:
        config.validate()

    assert len(exc_info.value.errors) == 1
    assert "RED fetch interval" in exc_info.value.errors[0]


def test_config_from_file(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """YAML values fill in what the environment leaves unset."""
    clean_env.setenv("NOTIFICATION_CHANNEL_ID", "from-env")
    path = tmp_path / "config.yaml"
    path.write_text(
        """
token: file-token
channels:
  status: [10, 11]
  notification: [12]
thresholds:
  critical_block_age: 300
  max_empty_blocks: 5
fetch_intervals:
  red: 15
notifications:
  timeout: 120
guilds:
  - id: g9
    status_channel_id: "13"
    status_names:
      red: "g9 red"
faucet:
  channel_id: "14"
  threshold: 42
"""
    )

    config = Config.from_file(path)

    assert config.discord_token == "file-token"
    assert config.status_channel_ids == ["10", "11"]
    assert config.notification_channel_ids == ["from-env"]
    assert config.thresholds.critical_block_age == 300
    assert config.thresholds.warning_block_age == 60
    assert config.thresholds.max_empty_blocks == 5
    assert config.fetch_intervals.red == 15.0
    assert config.notification_timeout == 120.0
    assert config.label_for(Severity.RED, "13") == "g9 red"
    assert config.faucet.enabled
    assert config.faucet.threshold == 42


def test_config_from_missing_file(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = Config.from_file(tmp_path / "missing.yaml")
    assert config.thresholds.min_sample_size == 11


def test_config_from_file_with_empty_sections(
    clean_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Sections present but left empty keep their defaults."""
    path = tmp_path / "config.yaml"
    path.write_text("explorer:\nchannels:\nthresholds:\nguilds:\nfaucet:\nnotifications:\n")

    config = Config.from_file(path)

    assert config.status_channel_ids == []
    assert config.guilds == []
    assert config.command_limit == 100
    assert config.thresholds.min_sample_size == 11
    assert config.notification_timeout == 900.0
    assert not config.faucet.enabled


def _call(path: str) -> tuple[str, bytes]:
    captured = {}

    def start_response(status: str, headers: list[tuple[str, str]]) -> None:
        captured["status"] = status

    body = b"".join(metrics_app({"PATH_INFO": path}, start_response))
    return captured["status"], body


def test_metrics_endpoint() -> None:
    status, body = _call("/metrics")
    assert status == "200 OK"
    assert b"chain_status_severity" in body


def test_health_endpoint() -> None:
    try:
        register_health_check(lambda: (False, {"severity": "red"}))
        status, body = _call("/health")
        assert status.startswith("503")
        assert json.loads(body) == {"status": "degraded", "severity": "red"}

        register_health_check(lambda: (True, {"severity": "green"}))
        status, body = _call("/health")
        assert status == "200 OK"
        assert json.loads(body) == {"status": "ok", "severity": "green"}
    finally:
        register_health_check(None)

    status, body = _call("/health")
    assert body == b"ok"
