"""HTTP client for the EspoCRM REST API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx

from esposync.adapters.http_resilience import RequestOptions, ResilientClient
from esposync.config.espo import ApiKeyCredentials
from esposync.domain.errors import InvalidRequestError, RemoteError, TransportError

from .auth import api_key_headers, exchange_session_token, login_headers, session_headers

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from esposync.config.espo import EspoConfig, EspoCredentials
    from esposync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

ERROR_TEXT_LIMIT: Final[int] = 500


class EspoClient:
    """Blocking request primitive over :class:`ResilientClient`.

    One event loop and one connection pool serve every call made through the
    client until :meth:`close`; calls are strictly sequential.
    """

    def __init__(
        self,
        resilience: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._resilience = resilience
        self._transport = transport
        self._runner: asyncio.Runner | None = None
        self._client: ResilientClient | None = None

    @property
    def base_url(self) -> str | None:
        return self._resilience.base_url

    def __enter__(self) -> EspoClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        runner, client = self._runner, self._client
        self._runner = None
        self._client = None
        if runner is None:
            return
        try:
            if client is not None:
                runner.run(client.aclose())
        finally:
            runner.close()

    def request(
        self,
        method: str,
        path: str,
        body: Mapping[str, object] | None = None,
        params: Mapping[str, str | int] | None = None,
    ) -> object | None:
        """Send one request and map the response.

        Returns the parsed JSON body for 2xx (``None`` when empty, the raw text
        when it is not JSON) and ``None`` for 404. Raises :class:`RemoteError`
        for any other status and :class:`TransportError` when the request never
        got a response.
        """

        if self._runner is None:
            self._runner = asyncio.Runner()
        if self._client is None:
            self._client = ResilientClient(self._resilience, transport=self._transport)
        return self._runner.run(
            self._request_async(self._client, method, path, body=body, params=params)
        )

    async def _request_async(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        *,
        body: Mapping[str, object] | None,
        params: Mapping[str, str | int] | None,
    ) -> object | None:
        options: RequestOptions = {}
        if body is not None:
            options["json"] = dict(body)
        if params is not None:
            options["params"] = dict(params)

        log.debug(f"{method} {path}")
        try:
            response = await client.request(method, path, **options)
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {path} failed: {exc!r}") from exc
        except httpx.InvalidURL as exc:
            raise InvalidRequestError(f"{method} {path}: invalid URL: {exc}") from exc
        except (TypeError, ValueError) as exc:
            # httpx encodes the body with allow_nan=False
            raise InvalidRequestError(f"{method} {path}: body is not valid JSON: {exc}") from exc

        return _handle_response(method, path, response)


def _handle_response(method: str, path: str, response: httpx.Response) -> object | None:
    if response.is_success:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    status = response.status_code
    if status == httpx.codes.NOT_FOUND:
        return None

    text = response.text[:ERROR_TEXT_LIMIT]
    raise RemoteError(f"{method} {path} -> {status} {text}".rstrip(), status=status, text=text)


def _credential_headers(credentials: EspoCredentials) -> dict[str, str]:
    if isinstance(credentials, ApiKeyCredentials):
        return api_key_headers(credentials)
    return login_headers(credentials)


def open_login_client(
    config: EspoConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EspoClient:
    """Return a client sending the raw credentials, used for logging in and for polling readiness."""

    return EspoClient(
        config.resilience.with_headers(_credential_headers(config.credentials)),
        transport=transport,
    )


def open_espo_client(
    config: EspoConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EspoClient:
    """Authenticate against ``config`` and return a client carrying the session headers.

    Raises :class:`~esposync.domain.errors.SetupError` when a username/password
    login fails.
    """

    credentials = config.credentials
    if isinstance(credentials, ApiKeyCredentials):
        headers = api_key_headers(credentials)
    else:
        with open_login_client(config, transport=transport) as login_api:
            token = exchange_session_token(login_api, credentials)
        headers = session_headers(token)

    return EspoClient(config.resilience.with_headers(headers), transport=transport)
