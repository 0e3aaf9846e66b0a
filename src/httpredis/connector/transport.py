"""Open one encrypted stream to the Redis node: bounded TCP connect, then TLS handshake."""

import asyncio
import logging
import ssl
from typing import Tuple

from httpredis.probe.errors import ConnectFailed, ConnectTimeout, TlsFailed

logger = logging.getLogger(__name__)

DEFAULT_REDIS_PORT = 6379
DEFAULT_CONNECT_TIMEOUT = 3.0


def normalize_host(host: str) -> str:
    """Append the default Redis port when host carries none.

    "db1" -> "db1:6379", "db1:7000" unchanged, "[::1]:7000" unchanged,
    "::1" -> "[::1]:6379".
    """
    host = host.strip()
    if host.startswith("["):
        if "]:" in host:
            return host
        return f"{host}:{DEFAULT_REDIS_PORT}"
    parts = host.split(":")
    if len(parts) == 2:
        return host
    if len(parts) > 2:
        return f"[{host}]:{DEFAULT_REDIS_PORT}"
    return f"{host}:{DEFAULT_REDIS_PORT}"


def split_host_port(host: str) -> Tuple[str, int]:
    """Split a normalized "host:port" (or "[v6]:port") into (hostname, port)."""
    name, _, port = normalize_host(host).rpartition(":")
    if name.startswith("[") and name.endswith("]"):
        name = name[1:-1]
    try:
        return name, int(port)
    except ValueError:
        raise ConnectFailed(f"invalid port in host {host!r}") from None


async def open_tls_stream(
    host: str,
    ssl_context: ssl.SSLContext,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Connect to host ("host:port") and upgrade to TLS. Single attempt, no retry.

    Only the TCP connect is bounded by connect_timeout; the handshake is bounded by
    the caller's overall deadline, if any.

    Raises:
        ConnectTimeout: TCP connect exceeded connect_timeout.
        ConnectFailed: refused, unreachable, DNS failure.
        TlsFailed: handshake failed.
    """
    hostname, port = split_host_port(host)
    logger.debug("Connecting to %s:%s timeout=%.1fs", hostname, port, connect_timeout)
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=connect_timeout,
        )
    except asyncio.TimeoutError:
        raise ConnectTimeout(f"{host} did not accept within {connect_timeout:g}s") from None
    except OSError as e:
        raise ConnectFailed(f"{host}: {e}") from e

    try:
        await writer.start_tls(ssl_context, server_hostname=hostname)
    except (ssl.SSLError, OSError, EOFError) as e:
        writer.close()
        raise TlsFailed(f"{host}: {e or type(e).__name__}") from e
    logger.debug("TLS established with %s:%s", hostname, port)
    return reader, writer
