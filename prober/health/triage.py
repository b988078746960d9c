"""Triage ordering: ranks probes so the ones needing attention come first.

Tie-breaks, each consulted only when the previous ones are equal:
  1. enabled before disabled
  2. alerting before not alerting
  3. higher badness first
  4. last alert sent longer ago (or never) first
  5. more history records first
  6. name, then description, ascending

Silencing plays no part: a silenced probe ranks by its real scores.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from functools import cmp_to_key

from .engine import ProbeState

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _last_alert(state: ProbeState) -> datetime:
    return state.last_alert_sent_at or _NEVER


def is_worse(a: ProbeState, b: ProbeState) -> bool:
    """Whether ``a`` should be listed before ``b``."""
    if a.disabled != b.disabled:
        return b.disabled
    if a.alerting != b.alerting:
        return a.alerting
    if a.badness != b.badness:
        return a.badness > b.badness
    last_a, last_b = _last_alert(a), _last_alert(b)
    if last_a != last_b:
        return last_a < last_b
    if len(a.history) != len(b.history):
        return len(a.history) > len(b.history)
    if a.name != b.name:
        return a.name < b.name
    return a.description < b.description


def compare_probes(a: ProbeState, b: ProbeState) -> int:
    if is_worse(a, b):
        return -1
    if is_worse(b, a):
        return 1
    return 0


def triage(states: Iterable[ProbeState]) -> list[ProbeState]:
    """Return the states sorted worst first."""
    return sorted(states, key=cmp_to_key(compare_probes))
