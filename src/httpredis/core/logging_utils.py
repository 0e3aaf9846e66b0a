"""Structured logging for probe state transitions and per-request outcomes."""

import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)


def new_trace_id() -> str:
    return str(uuid.uuid4())[:8]


def _ensure_trace_id(extra: dict) -> str:
    trace_id = extra.get("trace_id")
    if not trace_id:
        trace_id = new_trace_id()
        extra["trace_id"] = trace_id
    return trace_id


def log_probe_transition(
    from_state: str,
    to_state: str,
    event: str,
    trace_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log resolver state transition: trace_id, from_state, to_state, event."""
    extra = dict(extra or {})
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    extra["from_state"] = from_state
    extra["to_state"] = to_state
    extra["event"] = event
    msg = "probe_transition " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
    logger.debug(msg)


def log_probe_outcome(
    trace_id: Optional[str] = None,
    outcome: Optional[str] = None,
    status_code: Optional[int] = None,
    latency_ms: Optional[float] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log one request's result. Non-200 outcomes go out at WARNING."""
    extra = dict(extra or {})
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    if outcome:
        extra["outcome"] = outcome
    if status_code is not None:
        extra["status_code"] = status_code
    if latency_ms is not None:
        extra["latency_ms"] = f"{latency_ms:.1f}"
    msg = "probe_outcome " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
    if status_code is not None and status_code != 200:
        logger.warning(msg)
    else:
        logger.info(msg)
