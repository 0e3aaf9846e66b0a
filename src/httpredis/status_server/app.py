"""FastAPI app: any GET/HEAD path runs one replication probe and answers with its status code.

200 = stable master, 503 = do not route here, 408 = target did not answer in time.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import Response

from httpredis import __version__
from httpredis.config.settings import TargetConfig, build_ssl_context
from httpredis.core.logging_utils import log_probe_outcome, new_trace_id
from httpredis.core.metrics import ProbeMetrics
from httpredis.probe.errors import ProbeError
from httpredis.probe.resolver import ReplicationStatusResolver
from httpredis.status_server.mapper import map_outcome, to_response

logger = logging.getLogger(__name__)


def create_app(
    target: TargetConfig,
    resolver: Optional[ReplicationStatusResolver] = None,
    metrics: Optional[ProbeMetrics] = None,
) -> FastAPI:
    """Build the probe app. resolver defaults to one built from target (TLS context loaded once here)."""
    if resolver is None:
        resolver = ReplicationStatusResolver(target, build_ssl_context(target))
    metrics = metrics or ProbeMetrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Listening on *:%s (bind %s, target %s)", target.port, target.listen_host, target.host
        )
        yield
        metrics.log_snapshot()

    app = FastAPI(
        title="httpredis",
        description="Redis master health over HTTP",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def probe(path: str) -> Response:
        """Resolve once; every outcome becomes exactly one HTTP response."""
        trace_id = new_trace_id()
        started = time.monotonic()
        try:
            outcome = await resolver.resolve(trace_id=trace_id)
        except ProbeError as e:
            outcome = e
        except Exception as e:
            logger.exception("unhandled probe failure trace_id=%s", trace_id)
            outcome = e
        mapped = map_outcome(outcome)
        latency_ms = (time.monotonic() - started) * 1000.0
        metrics.record(mapped.label, latency_ms)
        log_probe_outcome(
            trace_id=trace_id,
            outcome=mapped.label,
            status_code=mapped.status_code,
            latency_ms=latency_ms,
            extra={"path": "/" + path} if path else None,
        )
        return to_response(mapped)

    return app


def run_server(target: TargetConfig) -> None:
    """Serve on target.port; bind "::" when v46 is set, else 0.0.0.0."""
    import uvicorn

    app = create_app(target)
    uvicorn.run(app, host=target.listen_host, port=target.port, log_level="info", access_log=False)
