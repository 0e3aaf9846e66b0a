"""Replication probe: ProbeError taxonomy and the status resolver (httpredis.probe.resolver)."""

from httpredis.probe.errors import (
    ConnectFailed,
    ConnectTimeout,
    DeadlineExceeded,
    ParseError,
    ProbeError,
    ProbeErrorKind,
    ProtocolError,
    TlsFailed,
)

__all__ = [
    "ProbeError",
    "ProbeErrorKind",
    "ConnectTimeout",
    "ConnectFailed",
    "TlsFailed",
    "ProtocolError",
    "ParseError",
    "DeadlineExceeded",
]
