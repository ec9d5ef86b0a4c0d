"""Monitor daemon: polls the explorer and publishes status to Discord."""

import signal
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

import schedule
import structlog

from chain_status import __version__
from chain_status.config import Config
from chain_status.discord import COLOR_GREEN, build_embed
from chain_status.explorer import BlockSourceError
from chain_status.metrics import (
    ALERTS,
    EMPTY_BLOCKS,
    LATEST_BLOCK_AGE,
    POLL_CYCLES,
    SERVICE_INFO,
    SEVERITY,
    start_metrics_server,
)
from chain_status.metrics.server import register_health_check

from .classifier import Block, InsufficientData, Severity, block_age, classify, count_empty
from .debouncer import NotificationDebouncer
from .faucet import FaucetMonitor
from .hysteresis import HysteresisTracker
from .labels import publish_label
from .scheduler import IntervalScheduler
from .state import MonitorState

log = structlog.get_logger()


class BlockSource(Protocol):
    def fetch_recent(self, limit: int) -> Sequence[Block]: ...

    def fetch_gas_balance(self, address: str) -> int: ...


class PublisherGateway(Protocol):
    def get_channel(self, channel_id: str) -> dict[str, Any] | None: ...

    def get_label(self, channel_id: str) -> str | None: ...

    def set_label(self, channel_id: str, name: str) -> bool: ...

    def send_alert(self, channel_id: str, embed: dict[str, Any]) -> bool: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_alert_embed(severity: Severity, config: Config, now: datetime) -> dict[str, Any]:
    """Render the alert embed announcing a settled severity."""
    description = None
    if config.block_explorer_url:
        description = f"Block explorer: {config.block_explorer_url}"

    return build_embed(
        title=config.messages[severity],
        color=config.colors[severity],
        description=description,
        footer_text=config.branding.name,
        footer_icon=config.branding.icon_url,
        timestamp=now,
    )


class MonitorDaemon:
    """Chain monitor wiring the classifier, tracker, debouncer and scheduler."""

    def __init__(
        self,
        config: Config,
        source: BlockSource,
        gateway: PublisherGateway,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the daemon.

        Args:
            config: Loaded configuration
            source: Block explorer client
            gateway: Discord client
            clock: Monotonic seconds, drives poll and debounce timing
            now: Wall-clock time, used for block age
            sleep: Pause between consecutive channel updates
        """
        self.config = config
        self.source = source
        self.gateway = gateway
        self.clock = clock
        self.now = now
        self._sleep = sleep

        self.state = MonitorState()
        self.tracker = HysteresisTracker(self.state)
        self.debouncer = NotificationDebouncer(self.state, config.notification_timeout)

        self._stop_event = threading.Event()
        self.scheduler = IntervalScheduler(
            config.fetch_intervals.as_dict(), clock=clock, stop_event=self._stop_event
        )

        self.faucet: FaucetMonitor | None = None
        if config.faucet.enabled:
            self.faucet = FaucetMonitor(config.faucet, source, gateway)

        self.last_success: float | None = None
        self._threads: list[threading.Thread] = []

    def _pause_between_updates(self) -> None:
        if self.config.channel_update_delay > 0:
            self._sleep(self.config.channel_update_delay)

    def publish_labels(self, severity: Severity) -> None:
        """Bring every status channel's name in line with the severity.

        A failing channel is logged and skipped; it never aborts the cycle.
        """
        for channel_id in self.config.status_channels():
            name = self.config.label_for(severity, channel_id)
            try:
                renamed = publish_label(self.gateway, channel_id, name)
            except Exception:
                log.exception("Error publishing status label", channel_id=channel_id)
                continue
            if renamed:
                self._pause_between_updates()

    def send_notification(self, severity: Severity) -> int:
        """Send the alert for a severity to every notification channel.

        Failures are logged and counted only; bookkeeping is not rolled back.

        Returns:
            Number of channels that accepted the message
        """
        log.info("Preparing notification", status=severity.value)
        embed = build_alert_embed(severity, self.config, self.now())

        delivered = 0
        for channel_id in self.config.notification_channels():
            ok = self.gateway.send_alert(channel_id, embed)
            ALERTS.labels(severity=severity.value, status="success" if ok else "failure").inc()
            if ok:
                delivered += 1
            self._pause_between_updates()
        return delivered

    def run_cycle(self) -> Severity | None:
        """One full pass: fetch, classify, republish labels, maybe arm an alert.

        Returns:
            The classified severity, or None when the sample was unusable
        """
        limit = self.config.thresholds.min_sample_size
        try:
            blocks = self.source.fetch_recent(limit)
        except BlockSourceError as e:
            log.error("Error fetching blocks", error=str(e))
            POLL_CYCLES.labels(result="error").inc()
            return None
        except InsufficientData as e:
            log.error("Malformed block data", error=str(e))
            POLL_CYCLES.labels(result="insufficient").inc()
            return None

        now = self.now()
        try:
            severity = classify(blocks, self.config.thresholds, now)
        except InsufficientData as e:
            log.warning("Insufficient blocks fetched", error=str(e))
            POLL_CYCLES.labels(result="insufficient").inc()
            return None

        age = block_age(blocks, now)
        empty = count_empty(blocks)
        LATEST_BLOCK_AGE.set(age)
        EMPTY_BLOCKS.set(empty)
        SEVERITY.set(severity.rank)
        POLL_CYCLES.labels(result="classified").inc()

        state = self.state
        tick = self.clock()
        log.info(
            "Status check",
            new_status=severity.value,
            current_status=state.current_severity.value if state.current_severity else None,
            previous_status=state.previous_severity.value if state.previous_severity else None,
            pending=state.pending_severity.value if state.pending_severity else None,
            last_sent=(
                state.last_published_severity.value if state.last_published_severity else None
            ),
            block_age=round(age, 2),
            empty_blocks=empty,
            since_last_change=(
                round(tick - state.last_transition_time, 1)
                if state.last_transition_time is not None
                else None
            ),
        )

        self.publish_labels(severity)
        self.debouncer.prime(severity)

        observation = self.tracker.observe(severity, tick)
        if observation.transition is not None:
            self.debouncer.on_transition(observation.transition.to, tick)

        self.last_success = tick
        return severity

    def fire_due_alerts(self) -> Severity | None:
        """Send the pending alert if its debounce window has elapsed."""
        severity = self.debouncer.fire_due(self.clock())
        if severity is None:
            return None

        self.send_notification(severity)
        log.info("Last sent notification updated", status=severity.value)
        return severity

    def validate_channels(self) -> dict[str, bool]:
        """Check that every configured channel can be fetched."""
        log.info("Starting channel validation")
        results = {}
        channels = self.config.status_channels() + self.config.notification_channels()
        if self.config.faucet.channel_id:
            channels.append(self.config.faucet.channel_id)

        for channel_id in dict.fromkeys(channels):
            channel = self.gateway.get_channel(channel_id)
            results[channel_id] = channel is not None
            if channel is not None:
                log.info("Channel validated", channel_id=channel_id, name=channel.get("name"))
            else:
                log.error("Invalid channel", channel_id=channel_id)

        log.info("Channel validation completed", valid=sum(results.values()), total=len(results))
        return results

    def health(self) -> tuple[bool, dict[str, Any]]:
        """Healthy while classifications keep succeeding."""
        state = self.state
        details = {
            "severity": state.current_severity.value if state.current_severity else None,
            "last_sent": (
                state.last_published_severity.value if state.last_published_severity else None
            ),
        }
        if self.last_success is None:
            return False, details

        # Three slowest intervals without a classification counts as stale
        stale_after = 3 * max(self.config.fetch_intervals.as_dict().values())
        return self.clock() - self.last_success <= stale_after, details

    def send_test_alert(self) -> bool:
        """Send a test alert to verify the notification channels."""
        embed = build_embed(
            title="Test Alert",
            description="Chain status monitor is configured correctly.",
            color=COLOR_GREEN,
            fields=[
                {
                    "name": "Status channels",
                    "value": ", ".join(self.config.status_channels()) or "-",
                    "inline": False,
                },
            ],
            footer_text=self.config.branding.name,
            footer_icon=self.config.branding.icon_url,
            timestamp=self.now(),
        )
        channels = self.config.notification_channels()
        results = [self.gateway.send_alert(channel_id, embed) for channel_id in channels]
        return bool(results) and all(results)

    def _build_side_jobs(self) -> schedule.Scheduler:
        jobs = schedule.Scheduler()
        jobs.every(self.config.channel_validation_hours).hours.do(self.validate_channels)
        if self.faucet is not None:
            jobs.every(int(self.config.faucet.fetch_interval)).seconds.do(self.faucet.check)
        return jobs

    def _side_job_loop(self, jobs: schedule.Scheduler) -> None:
        """Run channel validation and faucet checks; never touches MonitorState."""
        while not self._stop_event.is_set():
            try:
                jobs.run_pending()
            except Exception:
                log.exception("Error in scheduled job")
            self._stop_event.wait(1)

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def handle(signum: int, frame: object) -> None:
            log.info("Received shutdown signal", signal=signal.Signals(signum).name)
            self.stop()

        signal.signal(signal.SIGTERM, handle)
        signal.signal(signal.SIGINT, handle)

    def run(self) -> None:
        """Start the monitor and block until stop() is called."""
        log.info("Starting chain status monitor", **self.config.summary())
        SERVICE_INFO.info({"version": __version__, "explorer": self.config.explorer_base_url})

        if self.config.metrics_port:
            register_health_check(self.health)
            start_metrics_server(port=self.config.metrics_port)

        self._install_signal_handlers()
        self.validate_channels()
        if self.faucet is not None:
            self.faucet.check()

        side_thread = threading.Thread(
            target=self._side_job_loop, args=(self._build_side_jobs(),), daemon=True
        )
        side_thread.start()
        self._threads.append(side_thread)

        self.run_loop()
        log.info("Chain status monitor stopped")

    def run_loop(self) -> None:
        """Drive poll cycles and pending alert deadlines until stopped."""
        self.scheduler.run(
            self.run_cycle,
            next_deadline=lambda: self.debouncer.deadline,
            on_deadline=self.fire_due_alerts,
        )

    def stop(self) -> None:
        """Stop the monitor loop."""
        log.info("Stopping chain status monitor")
        self._stop_event.set()


def run_monitor(config: Config, source: BlockSource, gateway: PublisherGateway) -> None:
    """Validate the configuration and run a monitor until stopped.

    Raises:
        ConfigError: If the configuration is invalid
    """
    config.validate()
    daemon = MonitorDaemon(config, source, gateway)
    daemon.run()
