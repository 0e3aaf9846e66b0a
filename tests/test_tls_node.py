"""Resolver against a real TLS listener on localhost: answering node and wedged node."""

import asyncio
import contextlib
import dataclasses
import ssl
import time

import pytest

from httpredis.config.settings import build_ssl_context
from httpredis.probe.errors import DeadlineExceeded
from httpredis.probe.resolver import ReplicationStatusResolver, ReplicationVerdict
from redis_fakes import master_replication, server_info


@contextlib.asynccontextmanager
async def tls_listener(handler, pem_pair: dict):
    server_ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    server_ctx.load_cert_chain(pem_pair["cert_file"], pem_pair["key_file"])
    server = await asyncio.start_server(handler, "127.0.0.1", 0, ssl=server_ctx)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(server.wait_closed(), timeout=5)


@pytest.mark.asyncio
async def test_healthy_master_over_tls(target, pem_pair):
    replies = {
        b"info replication": master_replication(),
        b"info server": server_info("42"),
    }

    async def node(reader, writer):
        while True:
            line = await reader.readline()
            if not line:
                break
            writer.write(replies[line.strip()].encode())
            await writer.drain()
        writer.close()

    async with tls_listener(node, pem_pair) as port:
        # the generated pair doubles as client identity
        t = dataclasses.replace(target, host=f"127.0.0.1:{port}", **pem_pair, deadline=5.0)
        verdict = await ReplicationStatusResolver(t, build_ssl_context(t)).resolve()
    assert verdict == ReplicationVerdict.HEALTHY


@pytest.mark.asyncio
async def test_deadline_bounds_peer_that_stops_reading(target, ssl_context, pem_pair):
    release = asyncio.Event()

    async def wedged(reader, writer):
        # handshake is complete here; never read, never answer, never close
        await release.wait()
        writer.close()

    async with tls_listener(wedged, pem_pair) as port:
        t = dataclasses.replace(target, host=f"127.0.0.1:{port}", deadline=0.5)
        started = time.monotonic()
        try:
            with pytest.raises(DeadlineExceeded):
                await ReplicationStatusResolver(t, ssl_context).resolve()
            assert time.monotonic() - started < 2.0
        finally:
            release.set()
