"""Public interface for the EspoCRM adapter."""

from __future__ import annotations

from .auth import (
    API_KEY_HEADER,
    ESPO_AUTHORIZATION_HEADER,
    LOGIN_PATH,
    encode_basic_credential,
    exchange_session_token,
    is_ready,
)
from .client import EspoClient, open_espo_client, open_login_client
from .schema import AppUserResponse

__all__ = [
    "API_KEY_HEADER",
    "ESPO_AUTHORIZATION_HEADER",
    "LOGIN_PATH",
    "AppUserResponse",
    "EspoClient",
    "encode_basic_credential",
    "exchange_session_token",
    "is_ready",
    "open_espo_client",
    "open_login_client",
]
