"""ProbeError: closed set of failures one resolution can end with.

Every subclass carries a ProbeErrorKind so the HTTP mapper can match exhaustively.
"""

import enum


class ProbeErrorKind(str, enum.Enum):
    CONNECT_TIMEOUT = "connect_timeout"
    CONNECT_FAILED = "connect_failed"
    TLS_FAILED = "tls_failed"
    PROTOCOL_ERROR = "protocol_error"
    PARSE_ERROR = "parse_error"
    DEADLINE_EXCEEDED = "deadline_exceeded"


class ProbeError(Exception):
    """Base for probe failures. Use a subclass; kind identifies the variant."""

    kind: ProbeErrorKind

    def __init__(self, cause: str):
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return self.cause


class ConnectTimeout(ProbeError):
    """TCP connect did not finish within connect_timeout."""

    kind = ProbeErrorKind.CONNECT_TIMEOUT


class ConnectFailed(ProbeError):
    """Socket-level failure: refused, unreachable, DNS."""

    kind = ProbeErrorKind.CONNECT_FAILED


class TlsFailed(ProbeError):
    """TLS handshake failed (certificate, protocol mismatch, peer hung up)."""

    kind = ProbeErrorKind.TLS_FAILED


class ProtocolError(ProbeError):
    """Malformed or unexpected reply, including end of stream mid-block."""

    kind = ProbeErrorKind.PROTOCOL_ERROR


class ParseError(ProbeError):
    """uptime_in_seconds value is not a non-negative integer."""

    kind = ProbeErrorKind.PARSE_ERROR


class DeadlineExceeded(ProbeError):
    """Whole resolution ran past probe.deadline."""

    kind = ProbeErrorKind.DEADLINE_EXCEEDED
