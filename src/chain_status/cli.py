"""CLI for chain-status.

Usage:
    chain-status run
    chain-status check
    chain-status report --limit 100
    chain-status test-alert
    chain-status validate-channels
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import click

from chain_status.config import Config, ConfigError
from chain_status.discord import DiscordGateway
from chain_status.explorer import BlockSourceError, ExplorerClient
from chain_status.logging import configure_logging
from chain_status.monitor import InsufficientData, classify
from chain_status.monitor.daemon import MonitorDaemon, run_monitor
from chain_status.monitor.report import build_report


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=Path.home() / ".chain-status" / "config.yaml",
    help="Config file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Chain liveness monitor for Discord."""
    ctx.ensure_object(dict)
    config = Config.from_file(config_path)
    configure_logging("chain-status", "DEBUG" if verbose else config.log_level)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


def get_gateway(config: Config) -> DiscordGateway:
    """Build the Discord client or exit with an error."""
    if not config.discord_token:
        click.echo("Error: TOKEN environment variable not set")
        raise SystemExit(1)
    return DiscordGateway(config.discord_token)


@main.command("run")
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the monitor daemon.

    Polls the block explorer, renames status channels and sends debounced
    alerts. Requires the TOKEN environment variable.
    """
    config: Config = ctx.obj["config"]
    gateway = get_gateway(config)
    source = ExplorerClient(config.explorer_base_url)

    click.echo("Starting chain status monitor...")
    click.echo(f"  Explorer: {config.explorer_base_url}")
    click.echo(f"  Status channels: {len(config.status_channels())}")
    click.echo(f"  Notification channels: {len(config.notification_channels())}")
    click.echo(f"  Notification timeout: {config.notification_timeout:g}s")
    click.echo("")

    try:
        run_monitor(config, source, gateway)
    except ConfigError as e:
        for error in e.errors:
            click.echo(f"  - {error}")
        raise SystemExit(1)
    finally:
        source.close()
        gateway.close()


@main.command("check")
@click.pass_context
def check(ctx: click.Context) -> None:
    """Classify the chain once without publishing anything."""
    config: Config = ctx.obj["config"]
    source = ExplorerClient(config.explorer_base_url)

    try:
        blocks = source.fetch_recent(config.thresholds.min_sample_size)
        severity = classify(blocks, config.thresholds, datetime.now(timezone.utc))
    except (BlockSourceError, InsufficientData) as e:
        click.echo(f"Cannot classify: {e}")
        raise SystemExit(2)
    finally:
        source.close()

    click.echo(f"Status: {severity.value}")
    click.echo(f"Label: {config.labels[severity]}")
    click.echo(f"Next check in: {config.fetch_intervals[severity]:g}s")


@main.command("report")
@click.option("--limit", "-n", type=int, help="Blocks to analyze (default: command_limit)")
@click.option("--post", "channel_id", help="Also post the report to this channel")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def report(ctx: click.Context, limit: int | None, channel_id: str | None, as_json: bool) -> None:
    """Show a network status report."""
    config: Config = ctx.obj["config"]
    source = ExplorerClient(config.explorer_base_url)
    now = datetime.now(timezone.utc)

    try:
        blocks = source.fetch_recent(limit or config.command_limit)
        status_report = build_report(blocks, config.thresholds, now)
    except (BlockSourceError, InsufficientData) as e:
        click.echo(f"Error: {e}")
        raise SystemExit(1)
    finally:
        source.close()

    if as_json:
        data = dict(vars(status_report), severity=status_report.severity.value)
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(status_report.to_text(config))

    if channel_id:
        gateway = get_gateway(config)
        try:
            if not gateway.send_alert(channel_id, status_report.to_embed(config, now)):
                click.echo("Failed to post report")
                raise SystemExit(1)
        finally:
            gateway.close()
        click.echo("Report posted!")


@main.command("test-alert")
@click.pass_context
def test_alert(ctx: click.Context) -> None:
    """Send a test alert to every notification channel."""
    config: Config = ctx.obj["config"]
    gateway = get_gateway(config)
    source = ExplorerClient(config.explorer_base_url)
    daemon = MonitorDaemon(config, source, gateway)

    try:
        if daemon.send_test_alert():
            click.echo("Test alert sent successfully!")
        else:
            click.echo("Failed to send test alert")
            raise SystemExit(1)
    finally:
        source.close()
        gateway.close()


@main.command("validate-channels")
@click.pass_context
def validate_channels(ctx: click.Context) -> None:
    """Check that every configured channel is reachable."""
    config: Config = ctx.obj["config"]
    gateway = get_gateway(config)
    source = ExplorerClient(config.explorer_base_url)
    daemon = MonitorDaemon(config, source, gateway)

    try:
        results = daemon.validate_channels()
    finally:
        source.close()
        gateway.close()

    if not results:
        click.echo("No channels configured.")
        return

    for channel_id, ok in results.items():
        click.echo(f"[{'ok' if ok else 'FAIL'}] {channel_id}")
    if not all(results.values()):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
