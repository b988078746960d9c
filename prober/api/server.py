"""FastAPI server exposing live probe state."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from prober.api.routes import probe_router
from prober.config import Settings, settings
from prober.health.outcome_log import OutcomeLog
from prober.health.runner import ProbeRunner
from prober.notifications import get_notifier
from prober.registry import ProbeRegistry

logger = logging.getLogger(__name__)


def build_runner(config: Settings | None = None) -> ProbeRunner:
    """Load the registry and wire every probe to the notifier and outcome log."""
    config = config or settings
    registry = ProbeRegistry(Path(config.registry_path))
    record_factory = None
    if config.outcome_log_enabled:
        log = OutcomeLog(Path(config.outcome_log_dir) / config.outcome_log_name)
        record_factory = log.recorder
    probes = registry.build_probes(
        get_notifier(config), config, record_factory=record_factory,
    )
    return ProbeRunner(probes)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every probe on startup, stop them on shutdown."""
    runner = build_runner()
    app.state.runner = runner
    try:
        await runner.start()
    except Exception:
        logger.exception("Probe runner failed to start")

    yield

    await runner.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Prober",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(probe_router, prefix="/api")

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    return app


app = create_app()
