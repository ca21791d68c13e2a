from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .config import ProxySettings
from .errors import UpstreamError
from .models import EndpointKind, TimeWindow, WindowResult
from .utils import format_aeroapi_timestamp

logger = logging.getLogger("flightstat.aeroapi")

# Envelope keys tried in order; the window's own key always goes first.
_ENVELOPE_KEYS: Tuple[str, ...] = ("arrivals", "scheduled_arrivals", "flights")


def _envelope_keys(kind: EndpointKind) -> List[str]:
    return [kind.value] + [k for k in _ENVELOPE_KEYS if k != kind.value]


def extract_records(text: str, kind: EndpointKind) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Pull the flight list out of an AeroAPI 2xx body.

    Returns ``(records, malformed)``. The first key holding a list wins; a key
    holding anything else is skipped and flags the body as malformed. A body
    that is not a JSON object degrades to an empty list with
    ``malformed=True``. No list key at all is a plain empty result.
    """
    try:
        body = json.loads(text) if text.strip() else None
    except ValueError:
        return [], True
    if not isinstance(body, dict):
        return [], True

    malformed = False
    for key in _envelope_keys(kind):
        if key not in body or body[key] is None:
            continue
        items = body[key]
        if not isinstance(items, list):
            malformed = True
            continue
        records = [item for item in items if isinstance(item, dict)]
        return records, malformed or len(records) != len(items)
    return [], malformed


def _decode_error_body(text: str) -> Dict[str, Any]:
    """AeroAPI errors are usually {title, reason, detail, status}; keep raw text otherwise."""
    try:
        body = json.loads(text)
    except ValueError:
        return {"detail": text}
    if isinstance(body, dict):
        return body
    return {"detail": body}


class AeroAPIClient:
    """
    FlightAware AeroAPI v4 client (read-only) for airport arrival windows.

    Endpoints used:
      - GET /airports/{airport}/flights/arrivals?start={iso}&end={iso}&max_pages=N
      - GET /airports/{airport}/flights/scheduled_arrivals?start={iso}&end={iso}&max_pages=N

    One session is shared by every request; aiohttp sessions are safe for
    concurrent use from a single event loop.
    """

    def __init__(self, settings: ProxySettings) -> None:
        self._settings = settings
        self._headers = {
            "x-apikey": settings.api_key,
            "Accept": "application/json; charset=UTF-8",
            "User-Agent": settings.user_agent,
        }
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "AeroAPIClient":
        connector = aiohttp.TCPConnector(
            limit=20,
            limit_per_host=10,
            ttl_dns_cache=300,
            keepalive_timeout=30,
        )
        timeout = aiohttp.ClientTimeout(
            total=self._settings.timeout, connect=self._settings.connect_timeout
        )
        self._session = aiohttp.ClientSession(
            headers=self._headers, connector=connector, timeout=timeout
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _query_params(self, window: TimeWindow) -> Dict[str, str]:
        return {
            "start": format_aeroapi_timestamp(window.start),
            "end": format_aeroapi_timestamp(window.end),
            "max_pages": str(self._settings.max_pages),
        }

    async def fetch(
        self, airport: str, window: TimeWindow, kind: EndpointKind
    ) -> WindowResult:
        """
        Single GET for one window, no retries.

        Raises UpstreamError for a non-2xx status (body preserved) or a
        transport failure/timeout (status 502).
        """
        if not self._session:
            raise UpstreamError(kind, 503, {"detail": "AeroAPI session not started"})

        path = f"/airports/{airport}/flights/{kind.value}"
        url = f"{self._settings.aeroapi_base_url}{path}"
        params = self._query_params(window)

        t0 = time.perf_counter()
        try:
            async with self._session.get(url, params=params) as r:
                status = r.status
                raw = await r.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            cause = str(e) or e.__class__.__name__
            logger.error(f"AeroAPI transport error on {path} params={params}: {cause}")
            raise UpstreamError(
                kind, 502, {"error": "Upstream fetch failed", "detail": cause}
            ) from e

        elapsed = time.perf_counter() - t0
        text = raw.decode("utf-8", errors="replace")
        logger.info(f"AeroAPI GET {path} params={params} status={status} took={elapsed:.2f}s")

        if not 200 <= status < 300:
            body = _decode_error_body(text)
            logger.error(f"AeroAPI {status} on {path} params={params} err={text[:200]}")
            raise UpstreamError(kind, status, body)

        records, malformed = extract_records(text, kind)
        if malformed:
            logger.warning(
                f"AeroAPI {kind.value} body for {airport} was malformed; "
                f"kept {len(records)} records"
            )
        return WindowResult(kind=kind, window=window, records=records, malformed=malformed)
