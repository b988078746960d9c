"""Bounded, chronologically ordered outcome history for one probe."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any

from .outcome import Record

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 200

# Failures older than this are not "recent"
RECENT_WINDOW = timedelta(hours=1)


class History:
    """Append-only record buffer that drops its oldest entries past capacity."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: list[Record] = []

    def append(self, record: Record) -> None:
        self._records.append(record)
        over = len(self._records) - self.capacity
        if over > 0:
            logger.debug("History over capacity %d, dropping %d oldest", self.capacity, over)
            self._records = self._records[over:]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    @property
    def latest(self) -> Record | None:
        return self._records[-1] if self._records else None

    def records(self) -> list[Record]:
        """A copy of the records, oldest first."""
        return list(self._records)

    def recent_failures(
        self, now: datetime, window: timedelta = RECENT_WINDOW,
    ) -> list[Record]:
        """Failed records no older than ``window``, newest first."""
        cutoff = now - window
        failures = [
            r for r in self._records
            if not r.outcome.passed and r.timestamp >= cutoff
        ]
        failures.sort(key=lambda r: r.timestamp, reverse=True)
        return failures

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._records]
