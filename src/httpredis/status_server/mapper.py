"""Map a resolution outcome (verdict or failure) to an HTTP status and optional JSON body."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from fastapi.responses import JSONResponse, Response

from httpredis.probe.errors import ProbeError, ProbeErrorKind
from httpredis.probe.resolver import ReplicationVerdict

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_REQUEST_TIMEOUT = 408
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503

_VERDICT_STATUS: Dict[ReplicationVerdict, int] = {
    ReplicationVerdict.HEALTHY: HTTP_OK,
    ReplicationVerdict.UNHEALTHY: HTTP_SERVICE_UNAVAILABLE,
    ReplicationVerdict.AUTH_REJECTED: HTTP_SERVICE_UNAVAILABLE,
}

_ERROR_STATUS: Dict[ProbeErrorKind, int] = {
    ProbeErrorKind.CONNECT_TIMEOUT: HTTP_REQUEST_TIMEOUT,
    ProbeErrorKind.DEADLINE_EXCEEDED: HTTP_REQUEST_TIMEOUT,
    ProbeErrorKind.CONNECT_FAILED: HTTP_SERVICE_UNAVAILABLE,
    ProbeErrorKind.TLS_FAILED: HTTP_SERVICE_UNAVAILABLE,
    ProbeErrorKind.PROTOCOL_ERROR: HTTP_SERVICE_UNAVAILABLE,
    ProbeErrorKind.PARSE_ERROR: HTTP_SERVICE_UNAVAILABLE,
}

Outcome = Union[ReplicationVerdict, BaseException]


@dataclass(frozen=True)
class ProbeResponse:
    """Status code plus body; body None means an empty response."""

    status_code: int
    body: Optional[Dict[str, Any]] = None
    label: str = ""


def _error_body(code: int, message: str) -> Dict[str, Any]:
    return {"code": code, "message": message}


def map_outcome(outcome: Outcome) -> ProbeResponse:
    """Pure mapping: verdicts get an empty body, failures a {code, message} body.

    Anything that is neither a verdict nor a ProbeError is an internal fault: 500
    with a generic message (the caller logs the detail).
    """
    if isinstance(outcome, ReplicationVerdict):
        return ProbeResponse(_VERDICT_STATUS[outcome], None, outcome.value)
    if isinstance(outcome, ProbeError):
        code = _ERROR_STATUS[outcome.kind]
        if code == HTTP_REQUEST_TIMEOUT:
            message = f"Failed to connect, connection timed out: {outcome}"
        else:
            message = f"service unavailable: {outcome}"
        return ProbeResponse(code, _error_body(code, message), outcome.kind.value)
    return ProbeResponse(
        HTTP_INTERNAL_SERVER_ERROR,
        _error_body(HTTP_INTERNAL_SERVER_ERROR, "Internal Server Error"),
        "internal_error",
    )


def to_response(probe_response: ProbeResponse) -> Response:
    """Render ProbeResponse as a Starlette response."""
    if probe_response.body is None:
        return Response(status_code=probe_response.status_code)
    return JSONResponse(status_code=probe_response.status_code, content=probe_response.body)
