"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from prober.config import Settings
from prober.health.engine import Clock, Probe
from prober.health.outcome import Outcome, Record

T0 = datetime(1998, 11, 19, 15, 14, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Pretends it is always ``current``; sleeping only records the duration."""

    def __init__(self, current: datetime = T0) -> None:
        self.current = current
        self.slept: list[float] = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class StubChecker:
    """Returns a fixed outcome on every check."""

    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome
        self.calls = 0

    def check(self) -> Outcome:
        self.calls += 1
        return self.outcome


class RecordingNotifier:
    """Records alert calls and reports a fixed delivery result."""

    def __init__(self, delivered: bool = True) -> None:
        self.delivered = delivered
        self.calls: list[tuple[str, str, int, list[Record]]] = []

    async def alert(
        self, name: str, description: str, badness: int, records: list[Record],
    ) -> bool:
        self.calls.append((name, description, badness, records))
        return self.delivered


@pytest.fixture
def config() -> Settings:
    """Settings with defaults only, ignoring any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_probe(
    config: Settings, clock: FakeClock, notifier: RecordingNotifier,
) -> Callable[..., Probe]:
    """Build a probe on the fake clock, always enabled, with a 1 minute interval."""

    def _make(
        outcome: Outcome | None = None,
        name: str = "TestProber",
        description: str = "A test prober.",
        **kwargs: Any,
    ) -> Probe:
        checker = kwargs.pop("checker", None) or StubChecker(outcome or Outcome.ok())
        kwargs.setdefault("config", config)
        kwargs.setdefault("interval", 60)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("enabled", lambda _name: True)
        return Probe(checker, kwargs.pop("notifier", notifier), name, description, **kwargs)

    return _make
