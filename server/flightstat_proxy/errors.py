from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from .models import EndpointKind, WindowResult

SOURCE = "AeroAPI (arrivals+scheduled_arrivals)"


class ProxyError(Exception):
    """Base for every failure rendered as a structured error envelope."""

    status_code: int = 500

    def __init__(
        self,
        error: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[Any] = None,
    ) -> None:
        super().__init__(error)
        self.error = error
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "source": SOURCE,
        }
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class ClientInputError(ProxyError):
    status_code = 400


class UpstreamError(Exception):
    """One window's upstream call failed (non-2xx status or transport error)."""

    def __init__(self, kind: EndpointKind, status: int, body: Dict[str, Any]) -> None:
        super().__init__(f"AeroAPI {kind.value} returned {status}")
        self.kind = kind
        self.status = status
        self.body = body

    def as_entry(self) -> Dict[str, Any]:
        return {**self.body, "endpoint": self.kind.value, "status": self.status, "ok": False}


WindowOutcome = Union[WindowResult, UpstreamError]


def _ok_entry(result: WindowResult) -> Dict[str, Any]:
    return {
        "endpoint": result.kind.value,
        "status": 200,
        "ok": True,
        "count": len(result.records),
    }


class UpstreamFailure(ProxyError):
    """
    At least one window failed. Reports the worse (numerically larger) status
    and keeps every window's outcome, tagged by endpoint, in request order.
    """

    def __init__(self, outcomes: Sequence[WindowOutcome]) -> None:
        self.outcomes = list(outcomes)
        self.entries: List[Dict[str, Any]] = [
            o.as_entry() if isinstance(o, UpstreamError) else _ok_entry(o)
            for o in self.outcomes
        ]
        status = max(entry["status"] for entry in self.entries)
        super().__init__("FlightAware API error", status_code=status)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = self.entries
        return payload
