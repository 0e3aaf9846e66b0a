"""Configuration: packaged defaults, YAML file, CLI overrides -> TargetConfig."""

from httpredis.config.settings import (
    ConfigError,
    TargetConfig,
    build_ssl_context,
    load_target_config,
    read_config,
)

__all__ = ["ConfigError", "TargetConfig", "build_ssl_context", "load_target_config", "read_config"]
