"""Probe subsystem: outcomes, history, execution engine, triage, runner."""

from .engine import Checker, Clock, Notifier, Probe, ProbeState
from .history import History
from .outcome import Outcome, Record, ResultCode
from .runner import ProbeRunner
from .selection import ProbeSelection
from .triage import compare_probes, is_worse, triage
