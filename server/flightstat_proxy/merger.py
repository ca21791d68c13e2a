from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from .errors import SOURCE
from .models import ACTIVE_STATUSES, BatchMeta, EndpointKind, Flight, FlightBatch


def merge_flights(
    arrived: Sequence[Flight],
    scheduled: Sequence[Flight],
    *,
    airport: str,
    timestamp: datetime,
    active_only: bool = False,
    user: str = "unknown",
    degraded: Iterable[EndpointKind] = (),
    source: str = SOURCE,
    limit: Optional[int] = None,
) -> FlightBatch:
    """
    Arrived half first, then scheduled, each in upstream order.

    A scheduled flight whose id already appeared in the arrived half is
    dropped; the landed copy wins. ``meta.arrived``/``meta.scheduled`` are the
    pre-merge lengths, ``meta.total`` is what is actually returned.
    """
    seen: Set[str] = {f.id for f in arrived}
    merged: List[Flight] = list(arrived)
    for flight in scheduled:
        if flight.id in seen:
            continue
        seen.add(flight.id)
        merged.append(flight)

    if active_only:
        merged = [f for f in merged if f.status in ACTIVE_STATUSES]
    if limit is not None:
        merged = merged[:limit]

    meta = BatchMeta(
        total=len(merged),
        arrived=len(arrived),
        scheduled=len(scheduled),
        airport=airport,
        source=source,
        user=user,
        timestamp=timestamp,
        degraded=list(degraded),
    )
    return FlightBatch(flights=merged, meta=meta)
