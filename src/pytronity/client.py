"""High-level async client for the Tronity platform API."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pytronity._api import charging as _charging_api
from pytronity._api import vehicles as _vehicles_api
from pytronity._cache import with_timeout
from pytronity._constants import TOKEN_PATH
from pytronity._transport import HttpClient
from pytronity.auth import AuthenticatedTransport, TokenSource, new_token_source
from pytronity.config import TronityConfig
from pytronity.exceptions import TronityError
from pytronity.models.bulk import Bulk
from pytronity.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


class TronityClient:
    """Async client for the Tronity API.

    The configuration is validated on construction, before any network
    access. Usage::

        async with TronityClient(config) as client:
            vehicles = await client.get_vehicles()
    """

    def __init__(
        self,
        config: TronityConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        config.validate()
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._http: HttpClient | None = None
        self._transport: AuthenticatedTransport | None = None

    @property
    def config(self) -> TronityConfig:
        return self._config

    @property
    def token_url(self) -> str:
        return f"{self._config.base_url}{TOKEN_PATH}"

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TronityClient:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the HTTP stack. Idempotent."""
        if self._transport is not None:
            return
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._http = HttpClient(
            self._http_session,
            timeout=self._config.request_timeout,
            secrets=self._config.secrets,
        )
        source = new_token_source(
            self._http,
            self.token_url,
            self._config.credentials.id,
            self._config.credentials.secret,
            self._config.tokens.token(),
        )
        self._transport = AuthenticatedTransport(self._http, source)
        _logger.debug("Client ready (base_url=%s, token source=%s)", self._config.base_url, type(source).__name__)

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._http = None
        self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> AuthenticatedTransport:
        if self._transport is None:
            raise TronityError("Client not initialized. Use 'async with TronityClient(...) as client:'")
        return self._transport

    @property
    def token_source(self) -> TokenSource:
        return self._require_transport().source

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_vehicles(self, *, timeout: float | None = None) -> list[Vehicle]:
        """Fetch all vehicles visible to the account."""
        transport = self._require_transport()
        return await with_timeout(_vehicles_api.fetch_vehicles(self._config.base_url, transport), timeout)

    async def get_bulk(self, vehicle_id: str, *, timeout: float | None = None) -> Bulk:
        """Fetch the last telemetry record of a vehicle (uncached)."""
        transport = self._require_transport()
        return await with_timeout(_vehicles_api.fetch_bulk(self._config.base_url, transport, vehicle_id), timeout)

    async def start_charging(self, vehicle_id: str, *, timeout: float | None = None) -> None:
        """Start charging. Vehicles that refuse with HTTP 405 are not an error."""
        transport = self._require_transport()
        await with_timeout(_charging_api.start_charging(self._config.base_url, transport, vehicle_id), timeout)

    async def stop_charging(self, vehicle_id: str, *, timeout: float | None = None) -> None:
        """Stop charging. Vehicles that refuse with HTTP 405 are not an error."""
        transport = self._require_transport()
        await with_timeout(_charging_api.stop_charging(self._config.base_url, transport, vehicle_id), timeout)
