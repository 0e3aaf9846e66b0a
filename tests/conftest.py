"""Pytest fixtures for httpredis tests."""

import shutil
import ssl
import subprocess
import sys
from pathlib import Path

import pytest

# Ensure src/ is on the path so tests run from a plain checkout
_src = Path(__file__).resolve().parent.parent / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from httpredis.config.settings import CONFIG_ENV, PASSWORD_ENV, TargetConfig  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    """Host environment must not leak config or password into tests."""
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(PASSWORD_ENV, raising=False)


@pytest.fixture
def tls_files(tmp_path: Path) -> dict:
    """Placeholder cert/key files: they exist, their content is not valid PEM."""
    crt = tmp_path / "redis.crt"
    key = tmp_path / "redis.key"
    ca = tmp_path / "ca.crt"
    for p in (crt, key, ca):
        p.write_text("not a certificate\n", encoding="utf-8")
    return {"cert_file": str(crt), "key_file": str(key), "ca_cert_file": str(ca)}


@pytest.fixture
def target(tls_files: dict) -> TargetConfig:
    """TargetConfig without password and without overall deadline."""
    return TargetConfig(
        host="redis.test:6380",
        cert_file=tls_files["cert_file"],
        key_file=tls_files["key_file"],
        connect_timeout=3.0,
        deadline=None,
        uptime_threshold=10,
    )


@pytest.fixture
def ssl_context() -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


@pytest.fixture
def pem_pair(tmp_path: Path) -> dict:
    """Self-signed cert + key generated with the openssl CLI; skips when it is not installed."""
    openssl = shutil.which("openssl")
    if openssl is None:
        pytest.skip("openssl CLI not available")
    crt = tmp_path / "node.crt"
    key = tmp_path / "node.key"
    subprocess.run(
        [
            openssl, "req", "-x509", "-newkey", "rsa:2048", "-nodes",
            "-keyout", str(key), "-out", str(crt), "-days", "2", "-subj", "/CN=localhost",
        ],
        check=True,
        capture_output=True,
        timeout=60,
    )
    return {"cert_file": str(crt), "key_file": str(key)}
