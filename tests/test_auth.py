from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pytronity.auth import (
    AppTokenSource,
    AuthenticatedTransport,
    RefreshTokenSource,
    new_token_source,
)
from pytronity.exceptions import TronityAuthenticationError, TronityTransportError
from pytronity.models.token import OAuthToken

TOKEN_URL = "https://api.example.test/authentication"
API_URL = "https://api.example.test/tronity/vehicles"


@dataclass
class _Request:
    method: str
    url: str
    json: Any
    data: Mapping[str, str] | None
    headers: Mapping[str, str] | None


@dataclass
class FakeHttp:
    """Scriptable plain transport: token endpoint plus one API endpoint."""

    valid_tokens: set[str] = field(default_factory=lambda: {"tok-1"})
    issued: list[str] = field(default_factory=lambda: ["tok-1", "tok-2", "tok-3"])
    token_status: int = 200
    token_delay: float = 0.0
    api_delay: float = 0.0
    requests: list[_Request] = field(default_factory=list)

    def calls(self, url: str) -> list[_Request]:
        return [r for r in self.requests if r.url == url]

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        self.requests.append(_Request(method, url, json, data, headers))

        if url == TOKEN_URL:
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            if self.token_status != 200:
                raise TronityTransportError("token failed", status_code=self.token_status, url=url)
            access = self.issued.pop(0)
            self.valid_tokens = {access}
            return {"access_token": access, "expires_in": 3600, "token_type": "bearer"}

        if self.api_delay:
            await asyncio.sleep(self.api_delay)
        auth = (headers or {}).get("authorization", "")
        if auth.removeprefix("Bearer ") not in self.valid_tokens:
            raise TronityTransportError("unauthorized", status_code=401, url=url)
        return {"data": []}


# ------------------------------------------------------------------
# Token sources
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_app_flow_posts_client_credentials_as_json() -> None:
    http = FakeHttp()
    source = AppTokenSource(http, TOKEN_URL, "client-id", "client-secret")

    token = await source.token()

    assert token.access_token == "tok-1"
    assert token.refresh_token == ""
    (req,) = http.calls(TOKEN_URL)
    assert req.method == "POST"
    assert req.json == {"client_id": "client-id", "client_secret": "client-secret", "grant_type": "app"}
    assert req.data is None


@pytest.mark.asyncio
async def test_valid_token_is_reused() -> None:
    http = FakeHttp()
    source = AppTokenSource(http, TOKEN_URL, "client-id", "client-secret")

    first = await source.token()
    second = await source.token()

    assert first is second
    assert len(http.calls(TOKEN_URL)) == 1


@pytest.mark.asyncio
async def test_invalidated_token_is_replaced_and_stale_invalidation_ignored() -> None:
    http = FakeHttp()
    source = AppTokenSource(http, TOKEN_URL, "client-id", "client-secret")
    assert source.current is None

    first = await source.token()
    source.invalidate(first)
    second = await source.token()

    assert second.access_token == "tok-2"
    assert source.current is second
    # invalidating an already replaced token leaves the current one usable
    source.invalidate(first)
    assert await source.token() is second
    assert len(http.calls(TOKEN_URL)) == 2


@pytest.mark.asyncio
async def test_expired_token_is_refreshed() -> None:
    http = FakeHttp()
    stale = OAuthToken(
        access_token="old",
        refresh_token="refresh-1",
        expiry=datetime.now(tz=UTC) - timedelta(minutes=1),
    )
    source = RefreshTokenSource(http, TOKEN_URL, "client-id", "client-secret", stale)

    token = await source.token()

    assert token.access_token == "tok-1"
    (req,) = http.calls(TOKEN_URL)
    assert req.json is None
    assert req.data == {
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
        "client_id": "client-id",
        "client_secret": "client-secret",
    }
    # the server did not rotate the refresh token
    assert token.refresh_token == "refresh-1"


@pytest.mark.asyncio
async def test_stored_token_without_expiry_is_used_until_rejected() -> None:
    http = FakeHttp(valid_tokens={"stored"})
    stored = OAuthToken(access_token="stored", refresh_token="refresh-1")
    source = RefreshTokenSource(http, TOKEN_URL, "client-id", "client-secret", stored)

    assert await source.token() is stored
    assert http.calls(TOKEN_URL) == []


def test_new_token_source_picks_mode() -> None:
    http = FakeHttp()
    stored = OAuthToken(access_token="a", refresh_token="r")

    assert isinstance(new_token_source(http, TOKEN_URL, "i", "s", None), AppTokenSource)
    assert isinstance(new_token_source(http, TOKEN_URL, "i", "s", stored), RefreshTokenSource)


@pytest.mark.asyncio
async def test_refresh_failure_surfaces_as_authentication_error() -> None:
    http = FakeHttp(token_status=400)
    source = AppTokenSource(http, TOKEN_URL, "client-id", "client-secret")

    with pytest.raises(TronityAuthenticationError) as exc_info:
        await source.token()

    assert isinstance(exc_info.value, TronityTransportError)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_token_response_without_access_token_is_rejected() -> None:
    class _Empty:
        async def request(self, *_args: Any, **_kwargs: Any) -> Any:
            return {"error": "invalid_client"}

    source = AppTokenSource(_Empty(), TOKEN_URL, "client-id", "client-secret")

    with pytest.raises(TronityAuthenticationError, match="access_token"):
        await source.token()


# ------------------------------------------------------------------
# Authenticated transport
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_requests_carry_bearer_token() -> None:
    http = FakeHttp()
    transport = AuthenticatedTransport(http, AppTokenSource(http, TOKEN_URL, "client-id", "client-secret"))

    assert await transport.request("GET", API_URL) == {"data": []}

    (req,) = http.calls(API_URL)
    assert req.headers is not None
    assert req.headers["authorization"] == "Bearer tok-1"


@pytest.mark.asyncio
async def test_401_refreshes_and_retries_once() -> None:
    http = FakeHttp()
    source = AppTokenSource(http, TOKEN_URL, "client-id", "client-secret")
    transport = AuthenticatedTransport(http, source)
    await transport.request("GET", API_URL)

    # server revokes tok-1
    http.valid_tokens = set()

    assert await transport.request("GET", API_URL) == {"data": []}
    assert len(http.calls(TOKEN_URL)) == 2
    assert [r.headers["authorization"] for r in http.calls(API_URL) if r.headers] == [
        "Bearer tok-1",
        "Bearer tok-1",
        "Bearer tok-2",
    ]


@pytest.mark.asyncio
async def test_second_401_is_not_retried() -> None:
    class _AlwaysUnauthorized(FakeHttp):
        async def request(self, method: str, url: str, **kwargs: Any) -> Any:
            result = await super().request(method, url, **kwargs)
            if url != TOKEN_URL:
                raise TronityTransportError("unauthorized", status_code=401, url=url)
            return result

    http = _AlwaysUnauthorized()
    transport = AuthenticatedTransport(http, AppTokenSource(http, TOKEN_URL, "client-id", "client-secret"))

    with pytest.raises(TronityTransportError) as exc_info:
        await transport.request("GET", API_URL)

    assert exc_info.value.status_code == 401
    assert len(http.calls(API_URL)) == 2
    assert len(http.calls(TOKEN_URL)) == 2


@pytest.mark.asyncio
async def test_refresh_failure_after_401_propagates_without_retry() -> None:
    http = FakeHttp(valid_tokens={"stored"})
    stored = OAuthToken(access_token="stored", refresh_token="refresh-1")
    transport = AuthenticatedTransport(
        http,
        RefreshTokenSource(http, TOKEN_URL, "client-id", "client-secret", stored),
    )
    http.valid_tokens = set()
    http.token_status = 401

    with pytest.raises(TronityAuthenticationError):
        await transport.request("GET", API_URL)

    assert len(http.calls(API_URL)) == 1
    assert len(http.calls(TOKEN_URL)) == 1


@pytest.mark.asyncio
async def test_other_errors_are_not_retried() -> None:
    class _ServerError(FakeHttp):
        async def request(self, method: str, url: str, **kwargs: Any) -> Any:
            result = await super().request(method, url, **kwargs)
            if url != TOKEN_URL:
                raise TronityTransportError("boom", status_code=500, url=url)
            return result

    http = _ServerError()
    transport = AuthenticatedTransport(http, AppTokenSource(http, TOKEN_URL, "client-id", "client-secret"))

    with pytest.raises(TronityTransportError) as exc_info:
        await transport.request("GET", API_URL)

    assert exc_info.value.status_code == 500
    assert len(http.calls(API_URL)) == 1
    assert len(http.calls(TOKEN_URL)) == 1


@pytest.mark.asyncio
async def test_concurrent_401s_refresh_once() -> None:
    http = FakeHttp(valid_tokens={"stored"}, token_delay=0.01, api_delay=0.005)
    stored = OAuthToken(access_token="stored", refresh_token="refresh-1")
    transport = AuthenticatedTransport(
        http,
        RefreshTokenSource(http, TOKEN_URL, "client-id", "client-secret", stored),
    )
    http.valid_tokens = set()

    results = await asyncio.gather(*(transport.request("GET", API_URL) for _ in range(4)))

    assert results == [{"data": []}] * 4
    assert len(http.calls(TOKEN_URL)) == 1
