"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def _clean(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


def first_env_value(*names: str | None) -> str | None:
    """Return the first non-blank value among ``names``, skipping ``None`` entries."""

    for name in names:
        if name is None:
            continue
        value = _clean(os.getenv(name))
        if value is not None:
            return value
    return None


def env_float(name: str, default: float | None) -> float | None:
    raw = _clean(os.getenv(name))
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def env_int(name: str, default: int) -> int:
    raw = _clean(os.getenv(name))
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return value
