from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGIN_REGEX, CORS_ORIGINS, PORT, VERSION, get_settings, has_api_key
from logging_utils import configure_logging, log_event, new_request_id
from flightstat_proxy import AeroAPIClient, EndpointKind, FlightRequestOrchestrator, ProxyError
from flightstat_proxy.utils import format_aeroapi_timestamp

# ------------------------------------------------------------------------------
# APP + LOGGING SETUP
# ------------------------------------------------------------------------------

configure_logging()
logger = logging.getLogger("flightstat.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    async with AeroAPIClient(settings) as client:
        app.state.orchestrator = FlightRequestOrchestrator(client, settings)
        log_event(
            logger,
            "service_started",
            version=VERSION,
            port=PORT,
            cors_origins=CORS_ORIGINS,
            has_api_key=bool(settings.api_key),
        )
        yield
    log_event(logger, "service_stopped")


app = FastAPI(title="FlightStat Backend", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-apikey"],
)


def _now_iso() -> str:
    return format_aeroapi_timestamp(datetime.now(timezone.utc))


# ------------------------------------------------------------------------------
# REQUEST LOGGING MIDDLEWARE (Loki-ready)
# ------------------------------------------------------------------------------

@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    rid = new_request_id()
    start = time.time()

    log_event(
        logger,
        "http_request_started",
        method=request.method,
        path=request.url.path,
        origin=request.headers.get("origin"),
        client_ip=request.client.host if request.client else None,
        request_id=rid,
    )

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = int((time.time() - start) * 1000)
        log_event(
            logger,
            "http_request_finished",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            request_id=rid,
        )


# ------------------------------------------------------------------------------
# ERROR ENVELOPES
# ------------------------------------------------------------------------------

@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    log_event(
        logger,
        "request_failed",
        level=logging.WARNING,
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.error,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "detail": str(exc)},
    )


def get_orchestrator(request: Request) -> FlightRequestOrchestrator:
    return request.app.state.orchestrator


# ------------------------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------------------------

@app.get("/")
async def root() -> Dict[str, Any]:
    return {
        "message": "FlightStat Bot Backend",
        "version": VERSION,
        "endpoints": {
            "health": "/health",
            "flights": "/api/flights?airport=ICAO&user=username",
            "debug": "/api/flights?airport=ICAO&user=username&debug=true",
            "arrivals": "/arrivals/{airport}",
            "scheduled_arrivals": "/scheduled_arrivals/{airport}",
        },
    }


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "version": VERSION,
        "timestamp": _now_iso(),
        "environment": {"hasApiKey": has_api_key(), "port": PORT},
        "endpoints": {
            "arrivals": "Past flights (landed)",
            "scheduled_arrivals": "Future flights (en route)",
        },
    }


@app.get("/api/flights")
async def flights(
    request: Request,
    airport: Optional[str] = Query(None, description="ICAO airport code, e.g. EDDK"),
    user: str = Query("unknown"),
    debug: bool = Query(False),
    active_only: Optional[bool] = Query(None, description="Keep only EN ROUTE/SCHEDULED/DELAYED"),
    orchestrator: FlightRequestOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    code = (airport or "").strip().upper()
    log_event(logger, "flights_request", airport=code, user=user, debug=debug)

    if debug:
        return {
            "debug": True,
            "airport": code,
            "user": user,
            "hasKey": has_api_key(),
            "query": dict(request.query_params),
            "airportLength": len(code),
        }

    batch = await orchestrator.flights(code, user=user, active_only=active_only)
    return batch.to_payload()


@app.get("/arrivals/{airport}")
async def arrivals(
    airport: str,
    user: str = Query("unknown"),
    orchestrator: FlightRequestOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    batch = await orchestrator.single_window(airport, EndpointKind.ARRIVALS, user=user)
    return batch.to_payload()


@app.get("/scheduled_arrivals/{airport}")
async def scheduled_arrivals(
    airport: str,
    user: str = Query("unknown"),
    orchestrator: FlightRequestOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    batch = await orchestrator.single_window(
        airport, EndpointKind.SCHEDULED_ARRIVALS, user=user
    )
    return batch.to_payload()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT, log_level="info", access_log=True)
