"""HTTP surface: catch-all route, status codes, bodies, counters."""

import pytest
from fastapi.testclient import TestClient

from httpredis.config.settings import ConfigError
from httpredis.core.metrics import ProbeMetrics
from httpredis.probe.errors import ConnectTimeout, ParseError
from httpredis.probe.resolver import ReplicationStatusResolver, ReplicationVerdict
from httpredis.status_server.app import create_app
from redis_fakes import FakeRedisNode, master_replication, server_info


class StubResolver:
    """Returns the given verdict or raises the given exception; counts calls."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0
        self.trace_ids = []

    async def resolve(self, trace_id=None):
        self.calls += 1
        self.trace_ids.append(trace_id)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def _client(target, outcome, metrics=None):
    return TestClient(create_app(target, resolver=StubResolver(outcome), metrics=metrics))


def test_healthy_is_200_empty(target):
    with _client(target, ReplicationVerdict.HEALTHY) as client:
        r = client.get("/")
    assert r.status_code == 200
    assert r.content == b""


@pytest.mark.parametrize("verdict", [ReplicationVerdict.UNHEALTHY, ReplicationVerdict.AUTH_REJECTED])
def test_unroutable_verdicts_are_503(target, verdict):
    with _client(target, verdict) as client:
        r = client.get("/health")
    assert r.status_code == 503
    assert r.content == b""


def test_connect_timeout_is_408_json(target):
    with _client(target, ConnectTimeout("redis.test:6380 did not accept within 3s")) as client:
        r = client.get("/")
    assert r.status_code == 408
    assert r.json() == {
        "code": 408,
        "message": "Failed to connect, connection timed out: redis.test:6380 did not accept within 3s",
    }


def test_parse_error_is_503_json(target):
    with _client(target, ParseError("uptime_in_seconds is not a non-negative integer: 'abc'")) as client:
        r = client.get("/")
    assert r.status_code == 503
    assert r.json()["message"].startswith("service unavailable: uptime_in_seconds")


def test_unexpected_fault_is_500(target):
    with _client(target, KeyError("boom")) as client:
        r = client.get("/")
    assert r.status_code == 500
    assert r.json() == {"code": 500, "message": "Internal Server Error"}


def test_any_path_and_head(target):
    resolver = StubResolver(ReplicationVerdict.HEALTHY)
    with TestClient(create_app(target, resolver=resolver)) as client:
        assert client.get("/a/b/c").status_code == 200
        assert client.head("/").status_code == 200
        assert client.post("/").status_code == 405
    assert resolver.calls == 2
    assert len(set(resolver.trace_ids)) == 2


def test_metrics_count_outcomes(target):
    metrics = ProbeMetrics()
    with _client(target, ReplicationVerdict.UNHEALTHY, metrics=metrics) as client:
        client.get("/")
        client.get("/")
    assert metrics.total == 2
    assert metrics.count("unhealthy") == 2
    assert metrics.last_outcome == "unhealthy"
    assert metrics.avg_latency_ms is not None


def test_end_to_end_with_simulated_node(target, ssl_context):
    node = FakeRedisNode(master_replication() + server_info("42"))
    resolver = ReplicationStatusResolver(target, ssl_context, open_stream=node.open)
    with TestClient(create_app(target, resolver=resolver)) as client:
        assert client.get("/").status_code == 200
        assert client.get("/").status_code == 200
    assert node.opens == 2


def test_default_resolver_loads_tls_material(target):
    # placeholder files are not PEM: startup fails before serving
    with pytest.raises(ConfigError):
        create_app(target)
