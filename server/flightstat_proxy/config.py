from __future__ import annotations

import os
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

# Base URLs
AEROAPI_BASE_URL = "https://aeroapi.flightaware.com/aeroapi"  # v4 path

# Outbound request knobs
AEROAPI_MAX_PAGES = 3
AEROAPI_TIMEOUT = 12.0
AEROAPI_CONNECT_TIMEOUT = 3.0
USER_AGENT = "FlightStat-Bot-2025/1.0"

LEGACY_FLIGHT_LIMIT = 50

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "https://localhost:3000",
]


class WindowPolicy(BaseModel):
    """
    Width of the arrived/scheduled windows and the absolute clamp range,
    all relative to the request's ``now``.

    Every value must be positive; that keeps the arrived window ending at
    ``now`` and the scheduled window starting at ``now``.
    """

    model_config = ConfigDict(frozen=True)

    lookback: timedelta = Field(default=timedelta(hours=12), gt=timedelta(0))
    lookahead: timedelta = Field(default=timedelta(hours=12), gt=timedelta(0))
    lower_bound: timedelta = Field(default=timedelta(days=10), gt=timedelta(0))
    upper_bound: timedelta = Field(default=timedelta(days=2), gt=timedelta(0))
    repair_step: timedelta = Field(default=timedelta(minutes=1), gt=timedelta(0))


class ProxySettings(BaseModel):
    """Startup configuration threaded into the fetcher and orchestrator."""

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    aeroapi_base_url: str = AEROAPI_BASE_URL
    max_pages: int = Field(default=AEROAPI_MAX_PAGES, ge=1)
    timeout: float = Field(default=AEROAPI_TIMEOUT, gt=0)
    connect_timeout: float = Field(default=AEROAPI_CONNECT_TIMEOUT, gt=0)
    user_agent: str = USER_AGENT
    window_policy: WindowPolicy = Field(default_factory=WindowPolicy)
    active_only: bool = True
    legacy_flight_limit: int = Field(default=LEGACY_FLIGHT_LIMIT, ge=1)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def cors_origins_from_env() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


def cors_origin_regex_from_env() -> Optional[str]:
    return os.getenv("CORS_ORIGIN_REGEX") or None


def settings_from_env() -> ProxySettings:
    """
    Build ProxySettings from the process environment.

    A missing AEROAPI_KEY is a fatal configuration error for the whole
    service, so it raises instead of returning a half-configured object.
    """
    api_key = (os.getenv("AEROAPI_KEY") or "").strip()
    if not api_key:
        raise RuntimeError("AEROAPI_KEY missing")

    policy = WindowPolicy(
        lookback=timedelta(hours=_env_float("WINDOW_LOOKBACK_HOURS", 12)),
        lookahead=timedelta(hours=_env_float("WINDOW_LOOKAHEAD_HOURS", 12)),
        lower_bound=timedelta(days=_env_float("WINDOW_LOWER_BOUND_DAYS", 10)),
        upper_bound=timedelta(days=_env_float("WINDOW_UPPER_BOUND_DAYS", 2)),
        repair_step=timedelta(minutes=_env_float("WINDOW_REPAIR_MINUTES", 1)),
    )

    return ProxySettings(
        api_key=api_key,
        aeroapi_base_url=os.getenv("AEROAPI_BASE_URL", AEROAPI_BASE_URL).rstrip("/"),
        max_pages=int(os.getenv("AEROAPI_MAX_PAGES", str(AEROAPI_MAX_PAGES))),
        timeout=_env_float("AEROAPI_TIMEOUT", AEROAPI_TIMEOUT),
        connect_timeout=_env_float("AEROAPI_CONNECT_TIMEOUT", AEROAPI_CONNECT_TIMEOUT),
        window_policy=policy,
        active_only=_env_bool("FLIGHTS_ACTIVE_ONLY", True),
        legacy_flight_limit=int(os.getenv("LEGACY_FLIGHT_LIMIT", str(LEGACY_FLIGHT_LIMIT))),
    )
