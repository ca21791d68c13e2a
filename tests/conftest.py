import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Union

import pytest

# Keep test runs on stdout logging only
os.environ["LOG_FILE"] = ""

from flightstat_proxy.config import ProxySettings
from flightstat_proxy.errors import UpstreamError
from flightstat_proxy.models import EndpointKind, WindowResult

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeFetcher:
    """Stands in for AeroAPIClient; records every call."""

    def __init__(
        self,
        responses: Optional[Dict[EndpointKind, Union[List[Dict[str, Any]], UpstreamError]]] = None,
        malformed: Optional[Set[EndpointKind]] = None,
    ) -> None:
        self.responses = responses or {}
        self.malformed = malformed or set()
        self.calls: List[tuple] = []

    async def fetch(self, airport, window, kind):
        self.calls.append((airport, window, kind))
        outcome = self.responses.get(kind, [])
        if isinstance(outcome, Exception):
            raise outcome
        return WindowResult(
            kind=kind,
            window=window,
            records=list(outcome),
            malformed=kind in self.malformed,
        )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    return ProxySettings(api_key="test-key", active_only=False)


def make_record(fa_flight_id: str, **fields: Any) -> Dict[str, Any]:
    record = {
        "fa_flight_id": fa_flight_id,
        "ident": fa_flight_id.split("-")[0],
        "operator": "DLH",
        "origin": {"code_iata": "MUC", "code_icao": "EDDM", "name": "Munich", "city": "Munich"},
    }
    record.update(fields)
    return record
