"""
Time-window computation for the two AeroAPI queries.

Both windows are derived from one ``now`` and clamped into the absolute range
``[now - lower_bound, now + upper_bound]`` that AeroAPI accepts for the
airport arrivals endpoints.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict

from .config import WindowPolicy
from .models import EndpointKind, TimeWindow

DEFAULT_POLICY = WindowPolicy()


def _clamp(value: datetime, lo: datetime, hi: datetime) -> datetime:
    return min(hi, max(lo, value))


def clamp_window(
    now: datetime,
    raw_start: datetime,
    raw_end: datetime,
    lower_bound: timedelta,
    upper_bound: timedelta,
    repair_step: timedelta = DEFAULT_POLICY.repair_step,
) -> TimeWindow:
    """
    Clamp ``raw_start``/``raw_end`` independently into
    ``[now - lower_bound, now + upper_bound]``.

    A collapsed or inverted result is repaired to ``[end, end + repair_step)``
    instead of rejecting the request: the caller always gets a non-empty
    window to query.
    """
    lo = now - lower_bound
    hi = now + upper_bound
    start = _clamp(raw_start, lo, hi)
    end = _clamp(raw_end, lo, hi)
    if start >= end:
        start, end = end, end + repair_step
    return TimeWindow(start=start, end=end)


def arrived_window(now: datetime, policy: WindowPolicy = DEFAULT_POLICY) -> TimeWindow:
    # End is pinned to now: an arrivals query never asks about the future.
    return clamp_window(
        now,
        now - policy.lookback,
        now,
        policy.lower_bound,
        policy.upper_bound,
        policy.repair_step,
    )


def scheduled_window(now: datetime, policy: WindowPolicy = DEFAULT_POLICY) -> TimeWindow:
    return clamp_window(
        now,
        now,
        now + policy.lookahead,
        policy.lower_bound,
        policy.upper_bound,
        policy.repair_step,
    )


def compute_windows(
    now: datetime, policy: WindowPolicy = DEFAULT_POLICY
) -> Dict[EndpointKind, TimeWindow]:
    return {
        EndpointKind.ARRIVALS: arrived_window(now, policy),
        EndpointKind.SCHEDULED_ARRIVALS: scheduled_window(now, policy),
    }
