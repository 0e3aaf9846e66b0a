"""Replication status resolver: one TLS round trip per call deciding whether the node is a stable master.

States: CONNECTED -> (AUTHENTICATING) -> QUERYING_ROLE -> (QUERYING_UPTIME) -> terminal.

Transitions:
- CONNECTED -> AUTHENTICATING: password configured; send AUTH <password>
- CONNECTED -> QUERYING_ROLE: no password
- AUTHENTICATING -> QUERYING_ROLE: reply is exactly +OK
- AUTHENTICATING -> AUTH_REJECTED: any other reply, or end of stream
- QUERYING_ROLE -> QUERYING_UPTIME: "role:master" seen before the blank line
- QUERYING_ROLE -> UNHEALTHY: blank line reached without "role:master"
- QUERYING_UPTIME -> HEALTHY: uptime_in_seconds > threshold
- QUERYING_UPTIME -> UNHEALTHY: uptime_in_seconds <= threshold, or block ended without the field
- any non-terminal -> ERRORED: I/O failure, error reply, truncated block, bad uptime value

An old master that restarts reports role:master for a moment before it is turned
into a replica; the uptime gate keeps the balancer from routing writes to it.
"""

import asyncio
import enum
import logging
import ssl
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional, Tuple

from httpredis.config.settings import TargetConfig
from httpredis.connector.line_codec import LineCodec
from httpredis.connector.transport import open_tls_stream
from httpredis.core.logging_utils import log_probe_transition, new_trace_id
from httpredis.probe.errors import (
    ConnectFailed,
    DeadlineExceeded,
    ParseError,
    ProbeError,
    ProtocolError,
    TlsFailed,
)

logger = logging.getLogger(__name__)

ROLE_MASTER_LINE = "role:master"
UPTIME_PREFIX = "uptime_in_seconds:"
AUTH_OK = "+OK"

StreamOpener = Callable[
    [str, ssl.SSLContext, float],
    Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]],
]


class ReplicationVerdict(str, enum.Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    AUTH_REJECTED = "auth_rejected"


class ResolverState(str, enum.Enum):
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    QUERYING_ROLE = "querying_role"
    QUERYING_UPTIME = "querying_uptime"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    AUTH_REJECTED = "auth_rejected"
    ERRORED = "errored"


# Valid transitions: from_state -> set of allowed to_states
_TRANSITIONS: dict[ResolverState, set[ResolverState]] = {
    ResolverState.CONNECTED: {
        ResolverState.AUTHENTICATING,
        ResolverState.QUERYING_ROLE,
        ResolverState.ERRORED,
    },
    ResolverState.AUTHENTICATING: {
        ResolverState.QUERYING_ROLE,
        ResolverState.AUTH_REJECTED,
        ResolverState.ERRORED,
    },
    ResolverState.QUERYING_ROLE: {
        ResolverState.QUERYING_UPTIME,
        ResolverState.UNHEALTHY,
        ResolverState.ERRORED,
    },
    ResolverState.QUERYING_UPTIME: {
        ResolverState.HEALTHY,
        ResolverState.UNHEALTHY,
        ResolverState.ERRORED,
    },
    ResolverState.HEALTHY: set(),
    ResolverState.UNHEALTHY: set(),
    ResolverState.AUTH_REJECTED: set(),
    ResolverState.ERRORED: set(),
}

_VERDICTS: dict[ResolverState, ReplicationVerdict] = {
    ResolverState.HEALTHY: ReplicationVerdict.HEALTHY,
    ResolverState.UNHEALTHY: ReplicationVerdict.UNHEALTHY,
    ResolverState.AUTH_REJECTED: ReplicationVerdict.AUTH_REJECTED,
}


class ProbeFSM:
    """State of a single resolution pass. Never shared between requests."""

    def __init__(self, trace_id: Optional[str] = None):
        self._current = ResolverState.CONNECTED
        self.trace_id = trace_id or new_trace_id()

    @property
    def current(self) -> ResolverState:
        return self._current

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self._current]

    @property
    def verdict(self) -> Optional[ReplicationVerdict]:
        """Verdict for HEALTHY/UNHEALTHY/AUTH_REJECTED; None otherwise."""
        return _VERDICTS.get(self._current)

    def can_transition_to(self, to_state: ResolverState) -> bool:
        return to_state in _TRANSITIONS.get(self._current, set())

    def transition(self, to_state: ResolverState, event: str) -> bool:
        """Transition to new state if valid. Returns True on success, False otherwise."""
        if not self.can_transition_to(to_state):
            logger.warning(
                "Invalid probe transition: %s -> %s (allowed: %s)",
                self._current.value,
                to_state.value,
                [s.value for s in _TRANSITIONS.get(self._current, set())],
            )
            return False
        from_state = self._current
        self._current = to_state
        log_probe_transition(from_state.value, to_state.value, event, trace_id=self.trace_id)
        return True


class ReplicationStatusResolver:
    """Runs AUTH (optional), "info replication" and "info server" on a fresh connection per call."""

    def __init__(
        self,
        target: TargetConfig,
        ssl_context: ssl.SSLContext,
        open_stream: Optional[StreamOpener] = None,
    ):
        self.target = target
        self.ssl_context = ssl_context
        self._open_stream = open_stream or open_tls_stream

    async def resolve(self, trace_id: Optional[str] = None) -> ReplicationVerdict:
        """One resolution pass. Returns a verdict or raises ProbeError. No retries.

        When target.deadline is set the whole pass (connect, handshake, exchange) is
        cancelled once it runs out.
        """
        if not self.target.deadline:
            return await self._resolve(trace_id)
        try:
            return await asyncio.wait_for(self._resolve(trace_id), timeout=self.target.deadline)
        except asyncio.TimeoutError:
            raise DeadlineExceeded(
                f"{self.target.host} did not answer within {self.target.deadline:g}s"
            ) from None

    async def _resolve(self, trace_id: Optional[str]) -> ReplicationVerdict:
        reader, writer = await self._open_stream(
            self.target.host, self.ssl_context, self.target.connect_timeout
        )
        codec = LineCodec(reader, writer)
        fsm = ProbeFSM(trace_id)
        # graceful TLS close only after a verdict; cancellation or failure aborts
        abort = True
        try:
            verdict = await self._run(fsm, codec)
            abort = False
            return verdict
        except ProbeError as e:
            fsm.transition(ResolverState.ERRORED, e.kind.value)
            raise
        except ssl.SSLError as e:
            fsm.transition(ResolverState.ERRORED, "tls_io_error")
            raise TlsFailed(f"{self.target.host}: {e}") from e
        except OSError as e:
            fsm.transition(ResolverState.ERRORED, "io_error")
            raise ConnectFailed(f"{self.target.host}: connection lost: {e}") from e
        except ValueError as e:
            # StreamReader.readline: line longer than the buffer limit
            fsm.transition(ResolverState.ERRORED, "oversized_line")
            raise ProtocolError(f"{self.target.host}: {e}") from e
        finally:
            await codec.close(abort=abort)

    async def _run(self, fsm: ProbeFSM, codec: LineCodec) -> ReplicationVerdict:
        if self.target.password:
            fsm.transition(ResolverState.AUTHENTICATING, "password_configured")
            if not await self._authenticate(codec):
                fsm.transition(ResolverState.AUTH_REJECTED, "auth_not_ok")
                return ReplicationVerdict.AUTH_REJECTED
            fsm.transition(ResolverState.QUERYING_ROLE, "auth_ok")
        else:
            fsm.transition(ResolverState.QUERYING_ROLE, "no_password")

        if not await self._query_role(codec):
            fsm.transition(ResolverState.UNHEALTHY, "not_master")
            return ReplicationVerdict.UNHEALTHY
        fsm.transition(ResolverState.QUERYING_UPTIME, "role_master")

        uptime = await self._query_uptime(codec)
        if uptime is None:
            logger.warning(
                "info server from %s ended without %s; reporting unhealthy",
                self.target.host,
                UPTIME_PREFIX.rstrip(":"),
            )
            fsm.transition(ResolverState.UNHEALTHY, "uptime_missing")
            return ReplicationVerdict.UNHEALTHY
        if uptime > self.target.uptime_threshold:
            fsm.transition(ResolverState.HEALTHY, "uptime_stable")
            return ReplicationVerdict.HEALTHY
        fsm.transition(ResolverState.UNHEALTHY, "uptime_below_threshold")
        return ReplicationVerdict.UNHEALTHY

    async def _authenticate(self, codec: LineCodec) -> bool:
        await codec.send_line(f"AUTH {self.target.password}")
        reply = await codec.read_line()
        if reply != AUTH_OK:
            logger.info("AUTH rejected by %s: %r", self.target.host, reply)
            return False
        return True

    async def _query_role(self, codec: LineCodec) -> bool:
        """Read the whole replication block; True when an exact role:master line is in it."""
        await codec.send_line("info replication")
        is_master = False
        async with aclosing(self._block_lines(codec, "info replication")) as lines:
            async for line in lines:
                if line == ROLE_MASTER_LINE:
                    is_master = True
        return is_master

    async def _query_uptime(self, codec: LineCodec) -> Optional[int]:
        """uptime_in_seconds from "info server", or None if the block ends without it."""
        await codec.send_line("info server")
        async with aclosing(self._block_lines(codec, "info server")) as lines:
            async for line in lines:
                if line.startswith(UPTIME_PREFIX):
                    value = line[len(UPTIME_PREFIX):].strip()
                    if not (value.isascii() and value.isdigit()):
                        raise ParseError(f"uptime_in_seconds is not a non-negative integer: {value!r}")
                    return int(value)
        return None

    async def _block_lines(self, codec: LineCodec, command: str) -> AsyncIterator[str]:
        """Lines of one info reply, up to (not including) the blank sentinel."""
        async with aclosing(codec.lines()) as lines:
            async for line in lines:
                if line == "":
                    return
                if line.startswith("-"):
                    raise ProtocolError(f"{command}: {line[1:]}")
                yield line
        raise ProtocolError(f"stream closed before end of {command} reply")
