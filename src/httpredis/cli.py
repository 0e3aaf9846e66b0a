"""Command line entry point: parse flags, load TargetConfig, start the HTTP probe server."""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

from httpredis import __version__
from httpredis.config.settings import ConfigError, load_target_config, read_config

PKG_LOGGER = "httpredis"

_LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[1;31m",
    logging.CRITICAL: "\033[1;31m",
}
_RESET = "\033[0m"


class LevelTagFormatter(logging.Formatter):
    """Prints the level as a [TAG]; colored only when writing to a terminal."""

    def __init__(self, fmt: str, datefmt: Optional[str] = None, color: bool = False):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        tag = f"[{record.levelname}]"
        if self.color:
            tag = f"{_LEVEL_COLORS.get(record.levelno, '')}{tag}{_RESET}"
        # copy so other handlers see the untouched levelname
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = tag
        return super().format(record)


def setup_logging(debug: bool = False, stream: Optional[TextIO] = None) -> None:
    """Single handler on the root logger at INFO.

    --debug lowers only the httpredis loggers, so resolver state transitions show
    without uvicorn and asyncio internals.
    """
    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        LevelTagFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            color=stream.isatty(),
        )
    )
    logging.root.handlers.clear()
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.INFO)
    logging.getLogger(PKG_LOGGER).setLevel(logging.DEBUG if debug else logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpredis",
        description="HTTP 200 when the Redis node is a stable master, 503 otherwise.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="YAML config file (default: $HTTPREDIS_CONFIG)")
    parser.add_argument("--host", dest="redis_host", help="redis host:port")
    parser.add_argument("-u", "--user", help="redis user")
    parser.add_argument("-p", "--pass", dest="password", help="redis password")
    parser.add_argument("--tls-ca-cert-file", dest="ca", help="/path/to/ca.crt")
    parser.add_argument("--tls-cert-file", dest="crt", help="/path/to/redis.crt")
    parser.add_argument("--tls-key-file", dest="key", help="/path/to/redis.key")
    parser.add_argument("--http-port", dest="http_port", help="listening HTTP port")
    parser.add_argument(
        "--46", dest="v46", action="store_true", default=None, help="listen in both IPv4 and IPv6"
    )
    parser.add_argument("--debug", action="store_true", help="log every probe state transition")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Only flags actually given override the config file."""
    pairs = (
        ("redis", "host", args.redis_host),
        ("redis", "user", args.user),
        ("redis", "pass", args.password),
        ("tls", "ca_cert_file", args.ca),
        ("tls", "cert_file", args.crt),
        ("tls", "key_file", args.key),
        ("http", "port", args.http_port),
        ("http", "v46", args.v46),
    )
    out: Dict[str, Any] = {}
    for section, key, value in pairs:
        if value is not None:
            out.setdefault(section, {})[key] = value
    return out


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)
    try:
        config, config_path = read_config(args.config)
        target = load_target_config(config, overrides_from_args(args))
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1
    if config_path:
        logging.getLogger(__name__).info("Config loaded from %s", config_path)

    from httpredis.status_server.app import run_server

    try:
        run_server(target)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
