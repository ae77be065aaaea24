"""Token sources and the authenticated transport.

A :class:`TokenSource` owns the current bearer token and knows how to get a
new one. Two modes exist:

* :class:`AppTokenSource` re-authenticates from the client credentials on
  every refresh (no user consent, no refresh token).
* :class:`RefreshTokenSource` exchanges a stored refresh token from a user
  consent grant.

:class:`AuthenticatedTransport` wraps the plain :class:`HttpClient` so every
request carries a valid token and a rejected token is refreshed once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pytronity._api.token import (
    build_app_token_request,
    build_refresh_token_request,
    parse_token_response,
)
from pytronity._transport import Transport
from pytronity.exceptions import TronityAuthenticationError, TronityTransportError
from pytronity.models.token import OAuthToken

_logger = logging.getLogger(__name__)

_UNAUTHORIZED = 401


class TokenSource:
    """Serve a valid token, refreshing at most once per expiry.

    Subclasses implement :meth:`_refresh`.
    """

    def __init__(self, token: OAuthToken | None = None) -> None:
        self._token = token
        self._rejected: OAuthToken | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> OAuthToken | None:
        """The token held right now, valid or not."""
        return self._token

    def _usable(self, token: OAuthToken) -> bool:
        return token is not self._rejected and token.valid

    async def token(self) -> OAuthToken:
        """Return a valid token, refreshing if needed."""
        token = self._token
        if token is not None and self._usable(token):
            return token

        async with self._lock:
            # Another task may have refreshed while we waited.
            token = self._token
            if token is not None and self._usable(token):
                return token

            _logger.debug("Refreshing token (%s)", type(self).__name__)
            try:
                fresh = await self._refresh(token)
            except TronityAuthenticationError:
                raise
            except TronityTransportError as exc:
                raise TronityAuthenticationError(
                    f"token refresh failed: {exc}",
                    status_code=exc.status_code,
                    url=exc.url,
                ) from exc
            self._token = fresh
            self._rejected = None
            return fresh

    def invalidate(self, stale: OAuthToken) -> None:
        """Mark *stale* as rejected if it is still the current token."""
        if self._token is stale:
            self._rejected = stale

    async def _refresh(self, token: OAuthToken | None) -> OAuthToken:
        raise NotImplementedError


class AppTokenSource(TokenSource):
    """App flow: log in with client credentials on every refresh."""

    def __init__(self, http: Transport, token_url: str, client_id: str, client_secret: str) -> None:
        super().__init__()
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret

    async def _refresh(self, token: OAuthToken | None) -> OAuthToken:
        payload = build_app_token_request(self._client_id, self._client_secret)
        response = await self._http.request("POST", self._token_url, json=payload)
        return parse_token_response(response, url=self._token_url)


class RefreshTokenSource(TokenSource):
    """User flow: exchange the stored refresh token."""

    def __init__(
        self,
        http: Transport,
        token_url: str,
        client_id: str,
        client_secret: str,
        token: OAuthToken,
    ) -> None:
        super().__init__(token)
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret

    async def _refresh(self, token: OAuthToken | None) -> OAuthToken:
        if token is None or not token.refresh_token:
            raise TronityAuthenticationError("no refresh token available", url=self._token_url)

        data = build_refresh_token_request(self._client_id, self._client_secret, token.refresh_token)
        response = await self._http.request("POST", self._token_url, data=data)
        fresh = parse_token_response(response, url=self._token_url)

        # Servers may omit the refresh token when it is not rotated.
        if not fresh.refresh_token:
            fresh = fresh.model_copy(update={"refresh_token": token.refresh_token})
        return fresh


def new_token_source(
    http: Transport,
    token_url: str,
    client_id: str,
    client_secret: str,
    token: OAuthToken | None,
) -> TokenSource:
    """Pick the user flow when a stored token exists, else the app flow."""
    if token is None:
        _logger.debug("No stored tokens, using app flow")
        return AppTokenSource(http, token_url, client_id, client_secret)
    _logger.debug("Using stored tokens (user flow)")
    return RefreshTokenSource(http, token_url, client_id, client_secret, token)


class AuthenticatedTransport:
    """Transport that injects the bearer token and retries once on 401."""

    def __init__(self, base: Transport, source: TokenSource) -> None:
        self._base = base
        self._source = source

    @property
    def source(self) -> TokenSource:
        return self._source

    async def _send(
        self,
        token: OAuthToken,
        method: str,
        url: str,
        json: Any,
        data: Mapping[str, str] | None,
        headers: Mapping[str, str] | None,
    ) -> Any:
        hdrs = dict(headers or {})
        hdrs["authorization"] = token.authorization
        return await self._base.request(method, url, json=json, data=data, headers=hdrs)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        token = await self._source.token()
        try:
            return await self._send(token, method, url, json, data, headers)
        except TronityTransportError as exc:
            if not exc.has_status(_UNAUTHORIZED):
                raise
            _logger.debug("%s %s rejected the token, refreshing", method, url)
            self._source.invalidate(token)

        token = await self._source.token()
        return await self._send(token, method, url, json, data, headers)
