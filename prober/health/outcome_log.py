"""Append-only YAML log of probe outcomes.

Best effort: write failures are logged and never stop a probe.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from .outcome import Record

logger = logging.getLogger(__name__)


class OutcomeLog:
    """Writes one YAML document per record to a single append-only file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        logger.info("Using YAML outcome log %s", self.path)

    def write(self, name: str, record: Record) -> None:
        doc: dict[str, Any] = {"probe": name, **record.to_dict()}
        text = yaml.safe_dump(doc, explicit_start=True, sort_keys=False)
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error("Failed to write record for %s to %s: %s", name, self.path, e)

    def recorder(self, name: str) -> Callable[[Record], None]:
        """An ``on_record`` callback that logs every record of probe ``name``."""

        def _record(record: Record) -> None:
            self.write(name, record)

        return _record

    def read(self) -> list[dict[str, Any]]:
        """Parse every document in the log (used for inspection and tests)."""
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as f:
            return [doc for doc in yaml.safe_load_all(f) if doc]
