"""Probe execution engine: runs one check forever, scores it, and alerts.

Each cycle of a Probe:
  1. runs the check in the background, racing it against the probe timeout
  2. folds the outcome into badness / alerting and appends it to history
  3. if alerting, not silenced and not rate-limited, fires off an alert
  4. sleeps out whatever is left of the interval

Sync checks run on a single worker thread owned by the probe, so a check
that hangs past its timeout ties up only its own probe.

A Probe is the only writer of its ProbeState. Readers such as the status API
get unsynchronized snapshots, which is fine for display.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from prober.config import Settings
from prober.config import settings as default_settings

from .history import History
from .outcome import Outcome, Record
from .selection import ProbeSelection

logger = logging.getLogger(__name__)


# ── Capabilities ─────────────────────────────────────────────────────────────


class Checker(Protocol):
    """Probes some target once. ``check`` may be a plain or an async method."""

    def check(self) -> Outcome | Awaitable[Outcome]: ...


class Notifier(Protocol):
    """Delivers an alert. Returns whether delivery succeeded."""

    async def alert(
        self, name: str, description: str, badness: int, records: list[Record],
    ) -> bool: ...


class Clock:
    """Wall clock in UTC plus an awaitable sleep."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


# ── State ────────────────────────────────────────────────────────────────────


@dataclass
class ProbeState:
    """Mutable scoring state of one probe."""

    name: str
    description: str = ""
    interval: float = 61.0  # seconds between cycles
    timeout: float | None = None  # defaults to the interval
    badness: int = 0
    min_badness: int = 0
    badness_increment: int = 10
    badness_decrement: int = 1
    alerting: bool = False  # recomputed every cycle from badness
    disabled: bool = False
    silenced_until: datetime | None = None
    last_alert_sent_at: datetime | None = None
    history: History = field(default_factory=History)

    def __post_init__(self) -> None:
        if self.timeout is None:
            self.timeout = self.interval

    def is_silenced(self, now: datetime | None = None) -> bool:
        if self.silenced_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now < self.silenced_until

    def to_dict(
        self, now: datetime | None = None, include_history: bool = False,
    ) -> dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        latest = self.history.latest
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "badness": self.badness,
            "alerting": self.alerting,
            "disabled": self.disabled,
            "silenced": self.is_silenced(now),
            "silenced_until": self.silenced_until.isoformat() if self.silenced_until else None,
            "last_alert_sent_at": (
                self.last_alert_sent_at.isoformat() if self.last_alert_sent_at else None
            ),
            "interval": self.interval,
            "timeout": self.timeout,
            "records": len(self.history),
            "last_result": latest.to_dict() if latest else None,
        }
        if include_history:
            data["history"] = self.history.to_list()
        return data


# ── Engine ───────────────────────────────────────────────────────────────────


class Probe:
    """Stateful representation of repeated runs of one check.

    Lifecycle:
        probe = Probe(checker, notifier, "web", "Checks the web frontend")
        task = asyncio.create_task(probe.run())  # runs until disabled
    """

    def __init__(
        self,
        checker: Checker,
        notifier: Notifier,
        name: str,
        description: str = "",
        *,
        config: Settings | None = None,
        interval: float | None = None,
        timeout: float | None = None,
        failure_penalty: int | None = None,
        success_reward: int | None = None,
        min_badness: int | None = None,
        report: Callable[[Outcome], Any] | None = None,
        on_record: Callable[[Record], Any] | None = None,
        enabled: Callable[[str], bool] | None = None,
        clock: Clock | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.config = config if config is not None else default_settings
        cfg = self.config
        interval = interval if interval is not None else cfg.default_interval
        floor = min_badness if min_badness is not None else cfg.min_badness

        self.checker = checker
        self.notifier = notifier
        self.state = ProbeState(
            name=name,
            description=description,
            interval=interval,
            timeout=timeout if timeout is not None else interval,
            badness=floor,
            min_badness=floor,
            badness_increment=(
                failure_penalty if failure_penalty is not None else cfg.badness_increment
            ),
            badness_decrement=(
                success_reward if success_reward is not None else cfg.badness_decrement
            ),
            history=History(cfg.history_capacity),
        )
        self.report = report  # sees every raw outcome before scoring
        self.on_record = on_record  # sees the same Record that lands in history
        self.enabled = enabled or ProbeSelection.from_settings(cfg)
        self.clock = clock or Clock()
        # One worker: a hung check queues this probe's later checks, which are
        # cancelled on timeout, and never delays other probes.
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"probe-{name}",
        )
        self._alert_tasks: set[asyncio.Task[None]] = set()

    @property
    def name(self) -> str:
        return self.state.name

    # -- run loop --------------------------------------------------------------

    async def run(self) -> None:
        """Run cycles until the probe is administratively disabled."""
        logger.info("[%s] Starting..", self.name)
        while True:
            if not self.enabled(self.name):
                self.state.disabled = True
                logger.info("[%s] is disabled, will now exit", self.name)
                return
            await self.run_one_cycle()

    async def run_one_cycle(self) -> float:
        """Run the check once and score it. Returns the computed wait in seconds."""
        start = self.clock.now()
        try:
            outcome = await asyncio.wait_for(self._invoke_check(), timeout=self.state.timeout)
        except asyncio.TimeoutError:
            # The check may still finish later; its result is dropped.
            logger.error("[%s] Timed out", self.name)
            self.handle_outcome(Outcome.failed(
                f"{self.name} timed out (with probe interval {self.state.interval:.1f} sec)"
            ))
            return 0.0

        self.handle_outcome(outcome)
        wait = self.state.interval - (self.clock.now() - start).total_seconds()
        logger.debug("[%s] needs to sleep %.2fs more", self.name, wait)
        if wait > 0:
            await self.clock.sleep(wait)
        return wait

    async def check_once(self) -> Outcome:
        """Run the check once without timeout or scoring. Never raises."""
        return await self._invoke_check()

    async def _invoke_check(self) -> Outcome:
        logger.debug("[%s] Probing..", self.name)
        try:
            if inspect.iscoroutinefunction(self.checker.check):
                return await self.checker.check()
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(self._executor, self.checker.check)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            logger.warning("[%s] Check raised %s: %s", self.name, type(exc).__name__, exc)
            return Outcome.failed(f"{type(exc).__name__}: {exc}")

    # -- scoring -------------------------------------------------------------

    def handle_outcome(self, outcome: Outcome) -> None:
        """Fold one outcome into the probe state and alert if warranted.

        Must be called on the probe's running event loop: an alert is
        delivered by a task created with ``asyncio.create_task``.
        """
        if self.report is not None:
            try:
                self.report(outcome)
            except Exception:
                logger.exception("[%s] Report callback error", self.name)

        st = self.state
        if outcome.passed:
            if st.badness > st.min_badness:
                st.badness = max(st.badness - st.badness_decrement, st.min_badness)
            logger.debug("[%s] Pass, badness is now %d", self.name, st.badness)
        else:
            st.badness += st.badness_increment
            logger.warning(
                "[%s] Failed while probing, badness is now %d: %s",
                self.name, st.badness, outcome.error,
            )

        now = self.clock.now()
        record = Record(timestamp=now, outcome=outcome)
        st.history.append(record)
        if self.on_record is not None:
            try:
                self.on_record(record)
            except Exception:
                logger.exception("[%s] Record callback error", self.name)

        if st.badness < self.config.alert_threshold:
            st.alerting = False
            return

        st.alerting = True
        if self.config.alerts_disabled:
            logger.info("[%s] would now be alerting, but alerts are suppressed", self.name)
            return
        if st.is_silenced(now):
            logger.info(
                "[%s] would now be alerting, but is silenced until %s",
                self.name, st.silenced_until.isoformat(),
            )
            return
        if st.last_alert_sent_at is not None:
            since = (now - st.last_alert_sent_at).total_seconds()
            if since < self.config.max_alert_frequency:
                logger.info(
                    "[%s] will not alert, since last alert was sent %.0fs back",
                    self.name, since,
                )
                return

        logger.info("[%s] is alerting", self.name)
        self._dispatch_alert()

    # -- alerting ------------------------------------------------------------

    def _dispatch_alert(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                f"[{self.name}] handle_outcome must run on an event loop to deliver alerts"
            ) from None

        # Fire-and-forget so slow delivery never delays the next cycle. A
        # delivery that outlives later cycles can overlap with another one,
        # so alerts are at-least-once and may be duplicated.
        task = asyncio.create_task(self._send_alert(), name=f"alert-{self.name}")
        self._alert_tasks.add(task)
        task.add_done_callback(self._alert_tasks.discard)

    async def _send_alert(self) -> None:
        st = self.state
        try:
            delivered = await self.notifier.alert(
                st.name, st.description, st.badness, st.history.records(),
            )
        except Exception:
            logger.exception("[%s] failed to alert", self.name)
            return

        if not delivered:
            # Badness is left alone so the next qualifying cycle retries.
            logger.error("[%s] alert was not delivered, badness stays at %d", self.name, st.badness)
            return

        st.last_alert_sent_at = self.clock.now()
        st.badness = st.min_badness
        logger.info("[%s] sent alert, resetting badness to %d", self.name, st.badness)

    async def drain_alerts(self) -> None:
        """Wait for in-flight alert deliveries to finish."""
        if self._alert_tasks:
            await asyncio.gather(*list(self._alert_tasks), return_exceptions=True)

    def close(self) -> None:
        """Release the check thread. A check still running is left to finish."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    # -- silencing -------------------------------------------------------------

    def silence(self, seconds: float) -> datetime:
        """Suppress alert delivery for ``seconds``. Scoring continues as normal."""
        until = self.clock.now() + timedelta(seconds=seconds)
        self.state.silenced_until = until
        logger.info("[%s] silenced until %s", self.name, until.isoformat())
        return until

    def unsilence(self) -> None:
        self.state.silenced_until = None
        logger.info("[%s] unsilenced", self.name)
