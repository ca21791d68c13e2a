from __future__ import annotations

import re as _re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Pattern

# Regex helpers

AIRPORT_PATTERN: Pattern[str] = _re.compile(r"^[A-Z0-9]{3,4}$")
_FRACTION_PATTERN: Pattern[str] = _re.compile(r"\.(\d+)")


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_aeroapi_timestamp(dt: datetime) -> str:
    """
    Whole-second UTC ISO string. AeroAPI rejects fractional seconds:
      2025-01-01T12:00:00.123456+00:00 -> 2025-01-01T12:00:00Z
    """
    return _as_utc(dt).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_instant(dt: datetime) -> str:
    """UTC ISO string for responses; sub-second precision kept only when present."""
    utc = _as_utc(dt)
    if utc.microsecond:
        return utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def _pad_fraction(match: "_re.Match[str]") -> str:
    return "." + (match.group(1) + "000000")[:6]


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Accepts ISO-8601 strings ("Z" or offset, naive = UTC), epoch seconds, or
    datetimes. Anything unparseable is treated as absent. Sub-second
    precision is preserved so status comparisons against now stay exact.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return dt
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION_PATTERN.sub(_pad_fraction, text, count=1)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
        return _as_utc(dt)
    return None


def text_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def airport_code(obj: Any) -> Optional[str]:
    """
    Common keys seen in AeroAPI airport descriptors:
      - {"code_iata": "CGN"} / {"code_icao": "EDDK"} / {"code": "CGN"}
      - Might be a plain string "CGN"
    """
    if isinstance(obj, str):
        return obj.strip().upper() or None
    if isinstance(obj, dict):
        for key in ("code_iata", "code_icao", "code"):
            code = text_or(obj.get(key), "")
            if code:
                return code.upper()
    return None


def airport_fields(obj: Any) -> Dict[str, Optional[str]]:
    if not isinstance(obj, dict):
        return {"code": airport_code(obj), "name": None, "city": None}
    return {
        "code": airport_code(obj),
        "name": text_or(obj.get("name"), "") or None,
        "city": text_or(obj.get("city"), "") or None,
    }


def clamp_percent(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return None
    if pct != pct:  # NaN
        return None
    return int(round(min(100.0, max(0.0, pct))))
