"""Authentication against an EspoCRM instance.

Two schemes are supported:

- a static API key sent as ``X-Api-Key``;
- username/password, exchanged for a session token through
  ``GET /api/v1/App/user`` with an ``Espo-Authorization`` header carrying
  ``base64(username:password)``.

When the login endpoint answers without a token (or with 404) the base64
credential itself is used as the token. This assumes the instance accepts the
same string both as a login payload and on later requests, which holds for the
deployments this tool was written against but is not guaranteed in general.
"""

from __future__ import annotations

import base64
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError as PydanticValidationError

from esposync.domain.errors import EntitySyncError, SetupError

from .schema import AppUserResponse

if TYPE_CHECKING:
    from esposync.config.espo import ApiKeyCredentials, PasswordCredentials
    from esposync.domain.ports import RemoteApi

log = getLogger(__name__)

API_KEY_HEADER: Final[str] = "X-Api-Key"
ESPO_AUTHORIZATION_HEADER: Final[str] = "Espo-Authorization"
LOGIN_PATH: Final[str] = "/api/v1/App/user"


def encode_basic_credential(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


def exchange_session_token(api: RemoteApi, credentials: PasswordCredentials) -> str:
    """Log in with ``credentials`` and return the token for ``Espo-Authorization``.

    ``api`` must already send the headers returned by :func:`login_headers`.
    """

    credential = encode_basic_credential(credentials.username, credentials.password)
    log.info("Authenticating...")
    try:
        response = api.request("GET", LOGIN_PATH)
    except EntitySyncError as exc:
        raise SetupError(f"Authentication failed: {exc}") from exc

    if response is None:
        log.debug("Login endpoint not found, using the basic credential as token")
        return credential
    try:
        payload = AppUserResponse.model_validate(response)
    except PydanticValidationError as exc:
        raise SetupError(
            f"Authentication failed: unexpected login response ({exc.error_count()} errors)"
        ) from exc

    if payload.token is None:
        log.debug("Login response carried no token, using the basic credential as token")
        return credential

    user_name = payload.user.user_name if payload.user else None
    log.info(f"Authentication successful{f' as {user_name}' if user_name else ''}!")
    return payload.token


def api_key_headers(credentials: ApiKeyCredentials) -> dict[str, str]:
    return {API_KEY_HEADER: credentials.api_key}


def login_headers(credentials: PasswordCredentials) -> dict[str, str]:
    """Headers for the login request itself."""
    return {ESPO_AUTHORIZATION_HEADER: encode_basic_credential(credentials.username, credentials.password)}


def session_headers(token: str) -> dict[str, str]:
    return {ESPO_AUTHORIZATION_HEADER: token}


def is_ready(api: RemoteApi) -> bool:
    """Return whether the login endpoint answers with a 2xx body.

    ``api`` must send the raw credentials (:func:`api_key_headers` or
    :func:`login_headers`). Unreachable hosts and error statuses mean "not yet".
    """

    try:
        return api.request("GET", LOGIN_PATH) is not None
    except EntitySyncError as exc:
        log.debug(f"Not ready: {exc}")
        return False
