"""Entry point for the prober."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prober.api.server import build_runner
from prober.config import settings
from prober.health.engine import Probe
from prober.health.outcome import Outcome

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def run_server() -> None:
    """Start the FastAPI server; probes run inside its lifespan."""
    console.print(Panel("Starting Prober API Server", style="bold green"))
    uvicorn.run(
        "prober.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


async def _run_headless() -> None:
    runner = build_runner()
    await runner.start()
    try:
        await runner.wait()
    finally:
        await runner.stop()


def run_headless() -> None:
    """Run every probe without the API until they have all been disabled."""
    console.print(Panel("Running probes", style="bold blue"))
    try:
        asyncio.run(_run_headless())
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")


async def _check_all(probes: list[Probe]) -> list[Outcome]:
    return await asyncio.gather(*(p.check_once() for p in probes))


def run_checks_once() -> None:
    """Run each probe's check once and print the outcomes."""
    runner = build_runner()
    table = Table(title="Probe checks")
    table.add_column("Probe")
    table.add_column("Result")
    table.add_column("Detail")

    failed = False
    with console.status("[bold green]Probing..."):
        outcomes = asyncio.run(_check_all(runner.probes))
    for probe, outcome in zip(runner.probes, outcomes):
        probe.close()
        failed = failed or not outcome.passed
        style = "green" if outcome.passed else "red"
        table.add_row(
            probe.name,
            f"[{style}]{outcome.code.value}[/{style}]",
            outcome.error or outcome.info or "",
        )

    console.print(table)
    if failed:
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Black-box prober")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run all probes and serve their status over HTTP")
    sub.add_parser("run", help="Run all probes without the API")
    sub.add_parser("check", help="Run every check once and print the results")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "run":
        run_headless()
    elif args.command == "check":
        run_checks_once()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
