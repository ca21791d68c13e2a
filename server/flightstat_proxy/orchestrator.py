from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .config import ProxySettings
from .errors import ClientInputError, UpstreamError, UpstreamFailure, WindowOutcome
from .merger import merge_flights
from .models import EndpointKind, FlightBatch, TimeWindow, WindowResult
from .normalizer import FlightNormalizer
from .utils import AIRPORT_PATTERN, format_aeroapi_timestamp
from .windows import compute_windows

logger = logging.getLogger("flightstat.orchestrator")

_KINDS = (EndpointKind.ARRIVALS, EndpointKind.SCHEDULED_ARRIVALS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlightRequestOrchestrator:
    """
    validate -> windows -> fetch (both windows concurrently) -> normalize -> merge

    ``fetcher`` is anything with ``async fetch(airport, window, kind)``
    returning a WindowResult or raising UpstreamError (AeroAPIClient in
    production).
    """

    def __init__(
        self,
        fetcher,
        settings: ProxySettings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self._clock = clock

    def _validate(self, airport: Optional[str]) -> str:
        code = (airport or "").strip().upper()
        if not code:
            raise ClientInputError("Missing airport")
        if not AIRPORT_PATTERN.match(code):
            raise ClientInputError("Invalid airport", detail=f"'{code}' is not an ICAO/IATA code")
        if not self._settings.api_key:
            raise ClientInputError("Missing AEROAPI_KEY", status_code=500)
        return code

    async def _gather(
        self, airport: str, windows: Dict[EndpointKind, TimeWindow], kinds: Sequence[EndpointKind]
    ) -> List[WindowResult]:
        outcomes = await asyncio.gather(
            *(self._fetcher.fetch(airport, windows[k], k) for k in kinds),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, UpstreamError):
                raise outcome

        checked: List[WindowOutcome] = list(outcomes)
        if any(isinstance(o, UpstreamError) for o in checked):
            failure = UpstreamFailure(checked)
            logger.error(
                f"AeroAPI failure for {airport}: status={failure.status_code} "
                f"errors={failure.entries}"
            )
            raise failure
        return list(outcomes)

    async def flights(
        self,
        airport: Optional[str],
        *,
        user: str = "unknown",
        active_only: Optional[bool] = None,
    ) -> FlightBatch:
        code = self._validate(airport)
        now = self._clock()
        windows = compute_windows(now, self._settings.window_policy)
        for kind, window in windows.items():
            logger.info(
                f"{kind.value} window for {code}: "
                f"{format_aeroapi_timestamp(window.start)} to {format_aeroapi_timestamp(window.end)}"
            )

        arrived_result, scheduled_result = await self._gather(code, windows, _KINDS)

        normalizer = FlightNormalizer(now, code)
        normalizer.reserve(arrived_result.records)
        normalizer.reserve(scheduled_result.records)
        arrived = normalizer.normalize_all(arrived_result.records, EndpointKind.ARRIVALS)
        scheduled = normalizer.normalize_all(
            scheduled_result.records, EndpointKind.SCHEDULED_ARRIVALS
        )
        degraded = [r.kind for r in (arrived_result, scheduled_result) if r.malformed]

        batch = merge_flights(
            arrived,
            scheduled,
            airport=code,
            timestamp=now,
            active_only=self._settings.active_only if active_only is None else active_only,
            user=user,
            degraded=degraded,
        )
        logger.info(
            f"Flights for {code}: {batch.meta.arrived} arrived + "
            f"{batch.meta.scheduled} scheduled -> {batch.meta.total} returned"
        )
        return batch

    async def single_window(
        self, airport: Optional[str], kind: EndpointKind, *, user: str = "unknown"
    ) -> FlightBatch:
        """One window only, no active-only narrowing, capped at legacy_flight_limit."""
        code = self._validate(airport)
        now = self._clock()
        windows = compute_windows(now, self._settings.window_policy)

        (result,) = await self._gather(code, windows, (kind,))

        flights = FlightNormalizer(now, code).normalize_all(result.records, kind)
        arrived, scheduled = (flights, []) if kind is EndpointKind.ARRIVALS else ([], flights)
        return merge_flights(
            arrived,
            scheduled,
            airport=code,
            timestamp=now,
            user=user,
            degraded=[kind] if result.malformed else [],
            source=f"AeroAPI ({kind.value})",
            limit=self._settings.legacy_flight_limit,
        )
