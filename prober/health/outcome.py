"""Check outcomes and the timestamped records kept for each probe run."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ResultCode(str, Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class Outcome:
    """Result of a single check: pass/fail plus optional diagnostics."""

    passed: bool
    error: str | None = None
    info: str | None = None  # optional extra information
    info_url: str | None = None  # optional URL to further information

    @classmethod
    def ok(cls, info: str | None = None, info_url: str | None = None) -> Outcome:
        return cls(passed=True, info=info, info_url=info_url)

    @classmethod
    def failed(
        cls,
        error: str | BaseException,
        info: str | None = None,
        info_url: str | None = None,
    ) -> Outcome:
        """A failed outcome. Without extra info, the error text is echoed as info."""
        err = str(error)
        if info is None:
            info = f'The probe failed with "{err}"'
        return cls(passed=False, error=err, info=info, info_url=info_url)

    @property
    def code(self) -> ResultCode:
        return ResultCode.PASS if self.passed else ResultCode.FAIL

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error,
            "info": self.info,
            "info_url": self.info_url,
        }


@dataclass(frozen=True)
class Record:
    """A single probe run, stamped when its outcome was processed."""

    timestamp: datetime
    outcome: Outcome

    @property
    def time_millis(self) -> str:
        # e.g. "Nov 19 15:14:00.000"
        return self.timestamp.strftime("%b %d %H:%M:%S.") + f"{self.timestamp.microsecond // 1000:03d}"

    def ago(self, now: datetime | None = None) -> str:
        """Describe how long ago the record occurred."""
        now = now or datetime.now(timezone.utc)
        return describe_duration((now - self.timestamp).total_seconds())

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "time_millis": self.time_millis,
            "result": self.outcome.to_dict(),
        }


_UNITS = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def describe_duration(seconds: float) -> str:
    """Human-readable rendering of a duration, e.g. '3 hours' or 'less than a second'."""
    if seconds < 1:
        return "less than a second"
    for unit, size in _UNITS:
        if seconds >= size:
            n = int(seconds // size)
            return f"{n} {unit}" + ("" if n == 1 else "s")
    return "less than a second"
