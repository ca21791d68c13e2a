"""
flightstat_proxy package

Public API:
    - FlightRequestOrchestrator
    - AeroAPIClient
    - FlightNormalizer / derive_status
    - merge_flights
    - compute_windows / clamp_window
    - ProxySettings / WindowPolicy / settings_from_env
"""

from __future__ import annotations

from .aeroapi_client import AeroAPIClient
from .config import ProxySettings, WindowPolicy, settings_from_env
from .errors import ClientInputError, ProxyError, UpstreamError, UpstreamFailure
from .merger import merge_flights
from .models import EndpointKind, Flight, FlightBatch, FlightStatus, TimeWindow
from .normalizer import FlightNormalizer, derive_status
from .orchestrator import FlightRequestOrchestrator
from .windows import clamp_window, compute_windows

__all__ = [
    "AeroAPIClient",
    "ClientInputError",
    "EndpointKind",
    "Flight",
    "FlightBatch",
    "FlightNormalizer",
    "FlightRequestOrchestrator",
    "FlightStatus",
    "ProxyError",
    "ProxySettings",
    "TimeWindow",
    "UpstreamError",
    "UpstreamFailure",
    "WindowPolicy",
    "clamp_window",
    "compute_windows",
    "derive_status",
    "merge_flights",
    "settings_from_env",
]
