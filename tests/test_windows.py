import random
from datetime import datetime, timedelta, timezone

import pytest

from flightstat_proxy.config import WindowPolicy
from flightstat_proxy.models import EndpointKind, TimeWindow
from flightstat_proxy.utils import format_aeroapi_timestamp
from flightstat_proxy.windows import (
    arrived_window,
    clamp_window,
    compute_windows,
    scheduled_window,
)

LOWER = timedelta(days=10)
UPPER = timedelta(days=2)


def _random_now(rng: random.Random) -> datetime:
    base = datetime(2020, 1, 1, tzinfo=timezone.utc)
    return base + timedelta(seconds=rng.randint(0, 10 * 365 * 86400), microseconds=rng.randint(0, 999999))


def test_default_windows_split_at_now(now):
    windows = compute_windows(now)

    arrived = windows[EndpointKind.ARRIVALS]
    scheduled = windows[EndpointKind.SCHEDULED_ARRIVALS]
    assert arrived.start == now - timedelta(hours=12)
    assert arrived.end == now
    assert scheduled.start == now
    assert scheduled.end == now + timedelta(hours=12)


def test_clamp_pulls_bounds_into_absolute_range(now):
    window = clamp_window(now, now - timedelta(days=30), now + timedelta(days=30), LOWER, UPPER)

    assert window.start == now - LOWER
    assert window.end == now + UPPER


def test_collapsed_window_is_repaired_to_one_minute(now):
    # Both ends clamp onto the upper bound.
    window = clamp_window(now, now + timedelta(days=5), now + timedelta(days=6), LOWER, UPPER)

    assert window.start == now + UPPER
    assert window.end == now + UPPER + timedelta(minutes=1)


def test_inverted_window_is_repaired(now):
    window = clamp_window(now, now + timedelta(hours=2), now - timedelta(hours=2), LOWER, UPPER)

    assert window.start == now - timedelta(hours=2)
    assert window.end == now - timedelta(hours=2) + timedelta(minutes=1)


def test_lookback_longer_than_lower_bound_is_clamped(now):
    policy = WindowPolicy(lookback=timedelta(days=20))

    window = arrived_window(now, policy)

    assert window.start == now - policy.lower_bound
    assert window.end == now


def test_lookahead_longer_than_upper_bound_is_clamped(now):
    policy = WindowPolicy(lookahead=timedelta(days=5))

    window = scheduled_window(now, policy)

    assert window.start == now
    assert window.end == now + policy.upper_bound


def test_policy_rejects_non_positive_widths():
    with pytest.raises(ValueError):
        WindowPolicy(lookback=timedelta(0))
    with pytest.raises(ValueError):
        WindowPolicy(upper_bound=timedelta(hours=-1))


def test_time_window_rejects_empty_interval(now):
    with pytest.raises(ValueError):
        TimeWindow(start=now, end=now)


@pytest.mark.parametrize("seed", range(5))
def test_clamp_always_yields_ordered_window_inside_bounds(seed):
    rng = random.Random(seed)
    for _ in range(200):
        now = _random_now(rng)
        raw_start = now + timedelta(hours=rng.uniform(-400, 400))
        # Bias some draws onto collapse/inversion cases
        if rng.random() < 0.3:
            raw_end = raw_start
        else:
            raw_end = now + timedelta(hours=rng.uniform(-400, 400))

        window = clamp_window(now, raw_start, raw_end, LOWER, UPPER)

        assert window.start < window.end
        assert now - LOWER <= window.start <= now + UPPER


@pytest.mark.parametrize("seed", range(5))
def test_arrived_ends_by_now_and_scheduled_starts_at_now(seed):
    rng = random.Random(seed)
    for _ in range(200):
        now = _random_now(rng)
        policy = WindowPolicy(
            lookback=timedelta(minutes=rng.randint(1, 60 * 24 * 30)),
            lookahead=timedelta(minutes=rng.randint(1, 60 * 24 * 30)),
            lower_bound=timedelta(hours=rng.randint(1, 24 * 15)),
            upper_bound=timedelta(hours=rng.randint(1, 24 * 5)),
        )

        arrived = arrived_window(now, policy)
        scheduled = scheduled_window(now, policy)

        assert arrived.start < arrived.end <= now
        assert now <= scheduled.start < scheduled.end


def test_timestamp_format_drops_fractional_seconds():
    dt = datetime(2025, 1, 1, 12, 0, 0, 987654, tzinfo=timezone.utc)

    assert format_aeroapi_timestamp(dt) == "2025-01-01T12:00:00Z"


def test_timestamp_format_converts_to_utc():
    dt = datetime(2025, 1, 1, 14, 30, 5, tzinfo=timezone(timedelta(hours=2)))

    assert format_aeroapi_timestamp(dt) == "2025-01-01T12:30:05Z"
