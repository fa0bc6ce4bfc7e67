"""EspoCRM connection settings assembled from presets and overrides."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_float, env_int, first_env_value
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_ESPO_URL: Final[str] = "http://localhost:8080"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0

# Preset aliases map onto the ESPO_<PREFIX>_* variable group.
PRESET_PREFIXES: Final[dict[str, str]] = {
    "dev": "DEV",
    "development": "DEV",
    "prod": "PROD",
    "production": "PROD",
}


@dataclass(frozen=True, slots=True)
class ApiKeyCredentials:
    api_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class PasswordCredentials:
    username: str
    password: str = field(repr=False)


type EspoCredentials = ApiKeyCredentials | PasswordCredentials


@dataclass(frozen=True, slots=True)
class EspoConfig:
    """Everything needed to talk to one EspoCRM deployment."""

    base_url: str
    credentials: EspoCredentials
    resilience: ResilienceConfig
    preset: str | None = None


@dataclass(frozen=True, slots=True)
class EspoOverrides:
    """Values given explicitly on the command line; they beat any environment variable."""

    url: str | None = None
    api_key: str | None = None
    username: str | None = None
    password: str | None = None


def _preset_var(prefix: str | None, suffix: str) -> str | None:
    return f"ESPO_{prefix}_{suffix}" if prefix else None


def _resolve(override: str | None, prefix: str | None, suffix: str) -> str | None:
    if override is not None and override.strip():
        return override.strip()
    return first_env_value(_preset_var(prefix, suffix), f"ESPO_{suffix}")


def preset_prefix(preset: str | None) -> str | None:
    if preset is None:
        return None
    try:
        return PRESET_PREFIXES[preset.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(PRESET_PREFIXES))
        raise ConfigurationError(
            f"Unknown environment preset {preset!r} (expected one of: {known})"
        ) from None


def get_resilience_config(base_url: str) -> ResilienceConfig:
    per_second = env_float("ESPO_MAX_REQUESTS_PER_SECOND", None)
    ratelimit: RateLimit | None = None
    if per_second is not None:
        if per_second <= 0:
            raise ConfigurationError("ESPO_MAX_REQUESTS_PER_SECOND must be positive")
        # aiolimiter wants whole calls per window; widen the window for fractional rates.
        if per_second >= 1:
            ratelimit = RateLimit(max_calls=int(per_second), per_seconds=1.0)
        else:
            ratelimit = RateLimit(max_calls=1, per_seconds=1.0 / per_second)

    return ResilienceConfig(
        name="espo",
        base_url=base_url,
        timeout_seconds=env_float("ESPO_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS) or DEFAULT_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=env_int("ESPO_HTTP_RETRIES", 0)),
        ratelimit=ratelimit,
        default_headers={"Accept": "application/json", "Content-Type": "application/json"},
    )


def get_espo_config(
    preset: str | None = None,
    *,
    overrides: EspoOverrides | None = None,
) -> EspoConfig:
    """Assemble an :class:`EspoConfig` for ``preset``.

    Each value is taken from the first source that provides it: the explicit
    override, the preset variable (``ESPO_DEV_URL``), the generic variable
    (``ESPO_URL``). The URL falls back to a local instance. An API key wins over
    username/password when both are configured.
    """

    prefix = preset_prefix(preset)
    given = overrides or EspoOverrides()

    base_url = (_resolve(given.url, prefix, "URL") or DEFAULT_ESPO_URL).rstrip("/")
    api_key = _resolve(given.api_key, prefix, "API_KEY")
    username = _resolve(given.username, prefix, "USER")
    password = _resolve(given.password, prefix, "PASSWORD")

    credentials: EspoCredentials
    if api_key is not None:
        credentials = ApiKeyCredentials(api_key=api_key)
    elif username is not None and password is not None:
        credentials = PasswordCredentials(username=username, password=password)
    else:
        scope = f"ESPO_{prefix}_*" if prefix else "ESPO_*"
        raise MissingConfigurationError(
            f"Missing credentials for {preset or 'default'} environment: "
            f"set {scope} API_KEY, or USER and PASSWORD"
        )

    return EspoConfig(
        base_url=base_url,
        credentials=credentials,
        resilience=get_resilience_config(base_url),
        preset=preset,
    )
