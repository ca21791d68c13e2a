from __future__ import annotations

import itertools
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import AirportRef, EndpointKind, Flight, FlightStatus
from .utils import airport_fields, clamp_percent, parse_instant, text_or


def derive_status(
    now: datetime,
    scheduled_in: Optional[datetime],
    estimated_in: Optional[datetime],
    actual_in: Optional[datetime],
) -> FlightStatus:
    """
    Status from timestamps only, first match wins:
      actual_in                   -> LANDED
      estimated_in (future/past)  -> EN ROUTE / DELAYED
      scheduled_in (future/past)  -> SCHEDULED / DELAYED
      nothing                     -> UNKNOWN

    The provider's free-text ``status`` is ignored.
    """
    if actual_in is not None:
        return FlightStatus.LANDED
    if estimated_in is not None:
        return FlightStatus.EN_ROUTE if estimated_in > now else FlightStatus.DELAYED
    if scheduled_in is not None:
        return FlightStatus.SCHEDULED if scheduled_in > now else FlightStatus.DELAYED
    return FlightStatus.UNKNOWN


def _airport_ref(obj: Any, default_code: str) -> AirportRef:
    fields = airport_fields(obj)
    return AirportRef(
        code=fields["code"] or default_code,
        name=fields["name"] or "Unknown Airport",
        city=fields["city"] or "Unknown",
    )


class FlightNormalizer:
    """
    Maps raw AeroAPI records onto ``Flight``.

    One instance per request: it carries that request's ``now`` and the
    queried airport, and numbers placeholder ids so they never collide
    within a batch, provider ids registered via ``reserve`` included.
    Both AeroAPI keys (``fa_flight_id``, ``code_iata``) and this service's
    own output keys (``id``, ``code``) are accepted, so a serialized
    Flight normalizes back to the same Flight.
    """

    def __init__(self, now: datetime, airport: str) -> None:
        self.now = now
        self.airport = airport
        self._counter = itertools.count(1)
        self._taken: Set[str] = set()

    @staticmethod
    def _provider_id(raw: Dict[str, Any]) -> str:
        return text_or(raw.get("fa_flight_id"), "") or text_or(raw.get("id"), "")

    def reserve(self, records: Iterable[Dict[str, Any]]) -> None:
        """Register provider ids up front so no placeholder reuses one."""
        for raw in records:
            if isinstance(raw, dict):
                fid = self._provider_id(raw)
                if fid:
                    self._taken.add(fid)

    def _flight_id(self, raw: Dict[str, Any], kind: EndpointKind) -> str:
        fid = self._provider_id(raw)
        if fid:
            self._taken.add(fid)
            return fid
        placeholder = f"flight-{kind.value}-{next(self._counter)}"
        while placeholder in self._taken:
            placeholder = f"flight-{kind.value}-{next(self._counter)}"
        self._taken.add(placeholder)
        return placeholder

    def normalize(self, raw: Dict[str, Any], kind: EndpointKind) -> Flight:
        if not isinstance(raw, dict):
            raw = {}

        scheduled_in = parse_instant(raw.get("scheduled_in"))
        estimated_in = parse_instant(raw.get("estimated_in"))
        actual_in = parse_instant(raw.get("actual_in"))
        status = derive_status(self.now, scheduled_in, estimated_in, actual_in)

        progress = clamp_percent(raw.get("progress_percent"))
        if progress is None:
            progress = 100 if status is FlightStatus.LANDED else 0

        ident = text_or(raw.get("ident"), "N/A")
        callsign = text_or(raw.get("atc_ident"), "") or text_or(raw.get("callsign"), ident)

        return Flight(
            id=self._flight_id(raw, kind),
            ident=ident,
            callsign=callsign,
            operator=text_or(raw.get("operator"), "Unknown"),
            operator_iata=text_or(raw.get("operator_iata"), "XX"),
            aircraft_type=text_or(raw.get("aircraft_type"), "N/A"),
            registration=text_or(raw.get("registration"), "N/A"),
            origin=_airport_ref(raw.get("origin"), "XXX"),
            destination=_airport_ref(raw.get("destination"), self.airport),
            scheduled_in=scheduled_in,
            estimated_in=estimated_in,
            actual_in=actual_in,
            status=status,
            progress_percent=progress,
            source=kind,
        )

    def normalize_all(
        self, records: Iterable[Dict[str, Any]], kind: EndpointKind
    ) -> List[Flight]:
        records = list(records)
        self.reserve(records)
        return [self.normalize(raw, kind) for raw in records]
