from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from .utils import format_aeroapi_timestamp, format_instant


class EndpointKind(str, Enum):
    ARRIVALS = "arrivals"
    SCHEDULED_ARRIVALS = "scheduled_arrivals"


class FlightStatus(str, Enum):
    LANDED = "LANDED"
    EN_ROUTE = "EN ROUTE"
    DELAYED = "DELAYED"
    SCHEDULED = "SCHEDULED"
    UNKNOWN = "UNKNOWN"


ACTIVE_STATUSES = frozenset(
    {FlightStatus.EN_ROUTE, FlightStatus.SCHEDULED, FlightStatus.DELAYED}
)


class TimeWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start >= self.end:
            raise ValueError(f"window start {self.start} must precede end {self.end}")
        return self


class WindowResult(BaseModel):
    """Decoded records for one upstream window."""

    kind: EndpointKind
    window: TimeWindow
    records: List[Dict[str, Any]] = Field(default_factory=list)
    malformed: bool = False


class AirportRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = "XXX"
    name: str = "Unknown Airport"
    city: str = "Unknown"


class Flight(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    ident: str = "N/A"
    callsign: str = "N/A"
    operator: str = "Unknown"
    operator_iata: str = "XX"
    aircraft_type: str = "N/A"
    registration: str = "N/A"
    origin: AirportRef = Field(default_factory=AirportRef)
    destination: AirportRef = Field(default_factory=AirportRef)
    scheduled_in: Optional[datetime] = None
    estimated_in: Optional[datetime] = None
    actual_in: Optional[datetime] = None
    status: FlightStatus = FlightStatus.UNKNOWN
    progress_percent: int = Field(default=0, ge=0, le=100)
    source: EndpointKind
    is_monitored: bool = Field(default=False, alias="isMonitored")
    is_new_or_updated: bool = Field(default=False, alias="isNewOrUpdated")

    @field_serializer("scheduled_in", "estimated_in", "actual_in")
    def _serialize_instant(self, value: Optional[datetime]) -> Optional[str]:
        return format_instant(value) if value else None


class BatchMeta(BaseModel):
    total: int
    arrived: int
    scheduled: int
    airport: str
    source: str
    user: str = "unknown"
    timestamp: datetime
    degraded: List[EndpointKind] = Field(default_factory=list)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_aeroapi_timestamp(value)


class FlightBatch(BaseModel):
    success: bool = True
    flights: List[Flight]
    meta: BatchMeta

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
