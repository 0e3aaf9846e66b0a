"""Process-lifetime configuration: TargetConfig and the TLS client context.

Defaults: loaded from httpredis/config/defaults.yaml (single source of truth, no code-level defaults).
Layering: defaults -> YAML config file -> HTTPREDIS_PASS -> CLI overrides (later wins).
"""

import logging
import os
import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from httpredis.connector.transport import normalize_host

logger = logging.getLogger(__name__)

# Lazy-loaded packaged defaults
_DEFAULT_CONFIG: Optional[Dict[str, Any]] = None

CONFIG_ENV = "HTTPREDIS_CONFIG"
PASSWORD_ENV = "HTTPREDIS_PASS"


class ConfigError(Exception):
    """Startup-fatal configuration problem (bad path, bad port, unreadable TLS material)."""


@dataclass(frozen=True)
class TargetConfig:
    """Immutable settings shared read-only by every probe."""

    host: str
    cert_file: str
    key_file: str
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    ca_cert_file: Optional[str] = None
    v46: bool = False
    port: int = 36379
    connect_timeout: float = 3.0
    deadline: Optional[float] = None
    uptime_threshold: int = 10

    @property
    def listen_host(self) -> str:
        return "::" if self.v46 else "0.0.0.0"


def _load_default_config() -> Dict[str, Any]:
    """Load defaults.yaml shipped next to this module."""
    global _DEFAULT_CONFIG
    if _DEFAULT_CONFIG is None:
        path = Path(__file__).resolve().parent / "defaults.yaml"
        with open(path, encoding="utf-8") as f:
            _DEFAULT_CONFIG = yaml.safe_load(f) or {}
    return _DEFAULT_CONFIG


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base. Override values take precedence."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def read_config(config_path: Optional[str] = None) -> tuple[dict, Optional[str]]:
    """Load optional YAML config (path or HTTPREDIS_CONFIG). Returns (config, resolved_path)."""
    config_path = config_path or os.environ.get(CONFIG_ENV)
    if not config_path:
        return {}, None
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"config file not found: {config_path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot load config {config_path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"config {config_path} must be a mapping")
    return config, str(path.resolve())


def merged_config(
    config: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Defaults, then file config, then HTTPREDIS_PASS, then CLI overrides."""
    merged = _deep_merge(_load_default_config(), config or {})
    env_pass = os.environ.get(PASSWORD_ENV)
    if env_pass:
        merged = _deep_merge(merged, {"redis": {"pass": env_pass}})
    return _deep_merge(merged, overrides or {})


def _check_file(path: Optional[str], name: str, required: bool) -> Optional[str]:
    if path is None or path == "":
        if required:
            raise ConfigError(f"missing required setting: {name}")
        return None
    if not os.path.isfile(path):
        raise ConfigError(
            f"cannot read the file: {path}, verify file exist and is not a directory."
        )
    return str(path)


def _parse_port(value: Any) -> int:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigError("Not a valid number!") from None
    if not 0 < port < 65536:
        raise ConfigError(f"http port out of range: {port}")
    return port


def _positive(value: Any, name: str, allow_none: bool = False) -> Optional[float]:
    if value is None or (allow_none and value == 0):
        if allow_none:
            return None
        raise ConfigError(f"missing required setting: {name}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def load_target_config(
    config: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> TargetConfig:
    """Validate the merged config and build the TargetConfig. Raises ConfigError."""
    merged = merged_config(config, overrides)
    redis_cfg = merged.get("redis") or {}
    tls_cfg = merged.get("tls") or {}
    http_cfg = merged.get("http") or {}
    probe_cfg = merged.get("probe") or {}

    host = redis_cfg.get("host")
    if not host:
        raise ConfigError("missing redis host:port")

    threshold = probe_cfg.get("uptime_threshold")
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise ConfigError(f"probe.uptime_threshold must be a non-negative integer, got {threshold!r}")

    return TargetConfig(
        host=normalize_host(str(host)),
        user=redis_cfg.get("user") or None,
        password=redis_cfg.get("pass") or None,
        cert_file=_check_file(tls_cfg.get("cert_file"), "tls.cert_file", required=True),
        key_file=_check_file(tls_cfg.get("key_file"), "tls.key_file", required=True),
        ca_cert_file=_check_file(tls_cfg.get("ca_cert_file"), "tls.ca_cert_file", required=False),
        v46=bool(http_cfg.get("v46")),
        port=_parse_port(http_cfg.get("port")),
        connect_timeout=_positive(probe_cfg.get("connect_timeout"), "probe.connect_timeout"),
        deadline=_positive(probe_cfg.get("deadline"), "probe.deadline", allow_none=True),
        uptime_threshold=threshold,
    )


def build_ssl_context(target: TargetConfig) -> ssl.SSLContext:
    """Client TLS context: cert+key identity, optional CA root, peer verification disabled.

    Deployments use self-signed server certificates, so neither the chain nor the
    hostname is checked; the client identity is still presented.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    try:
        if target.ca_cert_file:
            ctx.load_verify_locations(cafile=target.ca_cert_file)
        ctx.load_cert_chain(certfile=target.cert_file, keyfile=target.key_file)
    except (ssl.SSLError, OSError) as e:
        raise ConfigError(f"cannot load TLS material: {e}") from e
    logger.debug(
        "TLS context ready cert=%s key=%s ca=%s",
        target.cert_file,
        target.key_file,
        target.ca_cert_file,
    )
    return ctx
