"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, first_env_value
from .errors import ConfigurationError, MissingConfigurationError
from .espo import (
    DEFAULT_ESPO_URL,
    ApiKeyCredentials,
    EspoConfig,
    EspoCredentials,
    EspoOverrides,
    PasswordCredentials,
    get_espo_config,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .sync import SyncConfig, get_sync_config, parse_name_list

__all__ = [
    "DEFAULT_ESPO_URL",
    "ApiKeyCredentials",
    "ConfigurationError",
    "EspoConfig",
    "EspoCredentials",
    "EspoOverrides",
    "MissingConfigurationError",
    "PasswordCredentials",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "first_env_value",
    "get_espo_config",
    "get_sync_config",
    "parse_name_list",
]
