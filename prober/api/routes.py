"""API routes for probe status and silencing.

Endpoints:
  GET    /api/probes                   all probes, worst first
  GET    /api/probes/{name}            one probe with its full history
  GET    /api/probes/{name}/failures   failures in the last hour, newest first
  POST   /api/probes/{name}/silence    suppress alerts for N seconds
  DELETE /api/probes/{name}/silence    lift a silence
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from prober.health.engine import Probe
from prober.health.runner import ProbeRunner

logger = logging.getLogger(__name__)

probe_router = APIRouter()


class SilenceRequest(BaseModel):
    seconds: float = Field(gt=0, description="How long to suppress alert delivery")


def _runner(request: Request) -> ProbeRunner:
    return request.app.state.runner


def _probe(request: Request, name: str) -> Probe:
    probe = _runner(request).get(name)
    if probe is None:
        raise HTTPException(status_code=404, detail=f"Unknown probe: {name}")
    return probe


@probe_router.get("/probes")
def list_probes(request: Request) -> dict[str, Any]:
    """All probes in triage order."""
    runner = _runner(request)
    probes = runner.status()
    return {
        "running": runner.running,
        "alerting": sum(1 for p in probes if p["alerting"]),
        "probes": probes,
    }


@probe_router.get("/probes/{name}")
def get_probe(name: str, request: Request) -> dict[str, Any]:
    probe = _probe(request, name)
    return probe.state.to_dict(probe.clock.now(), include_history=True)


@probe_router.get("/probes/{name}/failures")
def recent_failures(name: str, request: Request) -> dict[str, Any]:
    probe = _probe(request, name)
    now = probe.clock.now()
    failures = probe.state.history.recent_failures(now)
    return {
        "name": name,
        "failures": [{**r.to_dict(), "ago": r.ago(now)} for r in failures],
    }


@probe_router.post("/probes/{name}/silence")
def silence_probe(name: str, body: SilenceRequest, request: Request) -> dict[str, Any]:
    probe = _probe(request, name)
    until = probe.silence(body.seconds)
    return {"name": name, "silenced_until": until.isoformat()}


@probe_router.delete("/probes/{name}/silence")
def unsilence_probe(name: str, request: Request) -> dict[str, Any]:
    probe = _probe(request, name)
    probe.unsilence()
    return {"name": name, "silenced_until": None}
