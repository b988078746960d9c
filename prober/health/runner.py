"""Probe runner: one asyncio task per probe.

Probes never share a loop: each one paces itself with its own interval and
exits on its own once it is disabled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from .engine import Probe
from .triage import triage

logger = logging.getLogger(__name__)


class ProbeRunner:
    """Starts, tracks and stops the run loops of a set of probes."""

    def __init__(self, probes: Iterable[Probe] = ()) -> None:
        self.probes: list[Probe] = list(probes)
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def add(self, probe: Probe) -> None:
        if self.get(probe.name) is not None:
            raise ValueError(f"Probe '{probe.name}' is already registered")
        self.probes.append(probe)
        if self._running:
            self._start_probe(probe)

    def get(self, name: str) -> Probe | None:
        return next((p for p in self.probes if p.name == name), None)

    async def start(self) -> None:
        """Start a run loop for every probe."""
        if self._running:
            return
        self._running = True

        if not self.probes:
            logger.info("No probes configured, runner idle")
            return

        for probe in self.probes:
            self._start_probe(probe)
        logger.info("Probe runner started: %d probes", len(self.probes))

    def _start_probe(self, probe: Probe) -> None:
        task = asyncio.create_task(probe.run(), name=f"probe-{probe.name}")
        task.add_done_callback(self._on_done)
        self._tasks.append(task)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Probe task %s crashed", task.get_name(), exc_info=exc)

    async def wait(self) -> None:
        """Block until every probe loop has exited."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel all run loops and let pending alerts finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        for probe in self.probes:
            await probe.drain_alerts()
            probe.close()
        logger.info("Probe runner stopped")

    def status(self) -> list[dict[str, Any]]:
        """Snapshot of every probe, worst first."""
        clocks = {p.name: p.clock for p in self.probes}
        return [
            s.to_dict(clocks[s.name].now())
            for s in triage(p.state for p in self.probes)
        ]
