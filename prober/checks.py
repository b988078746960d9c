"""Concrete checkers: HTTP(S), TCP connect, DNS resolve.

Each checker's ``check()`` returns an Outcome and never raises. Latency is
reported in the outcome info.
"""

from __future__ import annotations

import socket
import time
from typing import Any

import httpx

from prober.health.outcome import Outcome


def _elapsed_ms(t0: float) -> float:
    return round((time.perf_counter() - t0) * 1000, 1)


class HttpCheck:
    """HTTP(S) check: passes when the response has the expected status."""

    def __init__(
        self,
        url: str,
        method: str = "GET",
        expected_status: int = 200,
        timeout_ms: int = 10_000,
    ) -> None:
        self.url = url
        self.method = method
        self.expected_status = expected_status
        self.timeout_ms = timeout_ms

    def check(self) -> Outcome:
        t0 = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout_ms / 1000, follow_redirects=True) as client:
                resp = client.request(self.method, self.url)
        except httpx.ConnectTimeout:
            return Outcome.failed(f"Connection to {self.url} timed out ({self.timeout_ms}ms)")
        except httpx.ConnectError as e:
            return Outcome.failed(f"Connection error: {e}", info_url=self.url)
        except Exception as e:
            return Outcome.failed(f"{type(e).__name__}: {e}", info_url=self.url)

        latency = _elapsed_ms(t0)
        if resp.status_code != self.expected_status:
            return Outcome.failed(
                f"Expected {self.expected_status}, got {resp.status_code}",
                info=f"{self.method} {self.url} answered {resp.status_code} in {latency}ms",
                info_url=self.url,
            )
        return Outcome.ok(info=f"{resp.status_code} OK in {latency}ms", info_url=self.url)


class TcpCheck:
    """Raw TCP port connectivity check."""

    def __init__(self, hostname: str, port: int = 443, timeout_ms: int = 5_000) -> None:
        self.hostname = hostname
        self.port = port
        self.timeout_ms = timeout_ms

    def check(self) -> Outcome:
        t0 = time.perf_counter()
        try:
            sock = socket.create_connection((self.hostname, self.port), timeout=self.timeout_ms / 1000)
            sock.close()
        except Exception as e:
            return Outcome.failed(f"TCP connect to {self.hostname}:{self.port} failed: {type(e).__name__}: {e}")
        return Outcome.ok(info=f"Port {self.port} open ({_elapsed_ms(t0)}ms)")


class DnsCheck:
    """DNS resolution check."""

    def __init__(self, hostname: str) -> None:
        self.hostname = hostname

    def check(self) -> Outcome:
        t0 = time.perf_counter()
        try:
            addrs = socket.getaddrinfo(self.hostname, None)
        except socket.gaierror as e:
            return Outcome.failed(f"DNS resolution of {self.hostname} failed: {e}")
        except Exception as e:
            return Outcome.failed(f"DNS error: {type(e).__name__}: {e}")

        ips = sorted({a[4][0] for a in addrs})
        return Outcome.ok(info=f"Resolved to {', '.join(ips[:3])} ({_elapsed_ms(t0)}ms)")


# Dispatcher
CHECKERS = {
    "http": lambda d: HttpCheck(d.url, d.method, d.expected_status, d.timeout_ms),
    "tcp": lambda d: TcpCheck(d.hostname, d.port, d.timeout_ms),
    "dns": lambda d: DnsCheck(d.hostname),
}


def build_checker(defn: Any) -> HttpCheck | TcpCheck | DnsCheck:
    """Build the checker for a probe definition by its ``type``."""
    factory = CHECKERS.get(defn.type)
    if factory is None:
        raise ValueError(f"Unknown check type: {defn.type}")
    return factory(defn)
