"""Probe registry: loads probes.yaml and builds Probe objects.

Example file:

    probes:
      - name: web
        type: http
        description: Public web frontend
        url: https://example.com/health
        interval_seconds: 30
      - name: db-port
        type: tcp
        hostname: db.internal
        port: 5432
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from prober.checks import build_checker
from prober.config import Settings, settings
from prober.health.engine import Notifier, Probe
from prober.health.outcome import Outcome, Record

logger = logging.getLogger(__name__)


@dataclass
class ProbeDef:
    """Definition of a single probe from the registry."""

    name: str
    type: str  # http | tcp | dns
    description: str = ""
    url: str = ""
    hostname: str = ""
    port: int = 443
    method: str = "GET"
    expected_status: int = 200
    timeout_ms: int = 10_000  # per-request timeout inside the check
    interval_seconds: float | None = None  # falls back to settings.default_interval
    timeout_seconds: float | None = None  # falls back to the interval
    failure_penalty: int | None = None
    success_reward: int | None = None


_FIELDS = {f.name for f in fields(ProbeDef)}


def _parse_probe(entry: dict[str, Any]) -> ProbeDef:
    if not isinstance(entry, dict):
        raise ValueError(f"Probe entries must be mappings, got {entry!r}")
    unknown = set(entry) - _FIELDS
    if unknown:
        logger.warning("Ignoring unknown keys for probe %s: %s", entry.get("name"), sorted(unknown))
    if not entry.get("name") or not entry.get("type"):
        raise ValueError("Probe entries need 'name' and 'type'")
    return ProbeDef(**{k: v for k, v in entry.items() if k in _FIELDS})


class ProbeRegistry:
    """Loads and caches probe definitions from a YAML file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path(settings.registry_path)
        self._defs: list[ProbeDef] = []
        self._loaded = False

    def load(self, force: bool = False) -> list[ProbeDef]:
        """Parse the registry file and return the probe definitions."""
        if self._loaded and not force:
            return self._defs

        self._defs = []
        if not self._path.exists():
            logger.warning("Registry file not found: %s", self._path)
            self._loaded = True
            return self._defs

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse %s: %s", self._path, e)
            self._loaded = True
            return self._defs

        seen: set[str] = set()
        for entry in raw.get("probes", []) or []:
            try:
                defn = _parse_probe(entry)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed probe entry: %s", e)
                continue
            if defn.name in seen:
                logger.warning("Skipping duplicate probe %s", defn.name)
                continue
            seen.add(defn.name)
            self._defs.append(defn)

        self._loaded = True
        logger.info("Loaded %d probes from registry", len(self._defs))
        return self._defs

    @property
    def definitions(self) -> list[ProbeDef]:
        return self.load()

    def get(self, name: str) -> ProbeDef | None:
        return next((d for d in self.definitions if d.name == name), None)

    def to_dict(self) -> list[dict[str, Any]]:
        return [asdict(d) for d in self.definitions]

    def build_probes(
        self,
        notifier: Notifier,
        config: Settings | None = None,
        report_factory: Callable[[str], Callable[[Outcome], Any]] | None = None,
        record_factory: Callable[[str], Callable[[Record], Any]] | None = None,
    ) -> list[Probe]:
        """Create a Probe per definition. Entries with an unknown type are skipped."""
        probes = []
        for defn in self.definitions:
            try:
                checker = build_checker(defn)
            except ValueError as e:
                logger.warning("Skipping probe %s: %s", defn.name, e)
                continue
            probes.append(Probe(
                checker,
                notifier,
                defn.name,
                defn.description,
                config=config,
                interval=defn.interval_seconds,
                timeout=defn.timeout_seconds,
                failure_penalty=defn.failure_penalty,
                success_reward=defn.success_reward,
                report=report_factory(defn.name) if report_factory else None,
                on_record=record_factory(defn.name) if record_factory else None,
            ))
        return probes
