"""Plain HTTP transport with JSON decoding and status mapping."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from json import JSONDecodeError, loads
from typing import Any, Protocol

import aiohttp

from pytronity._constants import USER_AGENT
from pytronity._redact import redact_for_log
from pytronity.exceptions import TronityTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementations (`HttpClient`,
    `AuthenticatedTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        ...


class HttpClient:
    """HTTP transport that decodes JSON responses and raises on non-2xx.

    Used directly for token requests and wrapped by
    :class:`pytronity.auth.AuthenticatedTransport` for everything else.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
        secrets: Iterable[str] = (),
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._secrets = tuple(secrets)

    def _redact(self, value: Any) -> Any:
        return redact_for_log(value, secrets=self._secrets)

    def _redact_body(self, text: str) -> Any:
        try:
            return self._redact(loads(text))
        except JSONDecodeError:
            return self._redact(text)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty).

        Raises
        ------
        TronityTransportError
            On network failure, non-2xx status or a body that is not JSON.
        """
        hdrs: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            hdrs.update(headers)

        _logger.debug("%s %s body=%s", method, url, self._redact(json if json is not None else data))

        try:
            async with self._http.request(
                method,
                url,
                json=json,
                data=data,
                headers=hdrs,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise TronityTransportError(
                f"{method} {url} failed: {exc}",
                url=url,
            ) from exc

        if not 200 <= status < 300:
            _logger.debug("%s %s -> %d %s", method, url, status, self._redact_body(text))
            raise TronityTransportError(
                f"unexpected status: {status} ({url}): {str(self._redact_body(text))[:200]}",
                status_code=status,
                url=url,
            )

        if not text.strip():
            _logger.debug("%s %s -> %d <empty>", method, url, status)
            return None

        try:
            decoded = loads(text)
        except JSONDecodeError as exc:
            raise TronityTransportError(
                f"Invalid JSON from {url}: {self._redact(text[:200])}",
                status_code=status,
                url=url,
            ) from exc

        # Key-based masking only applies to decoded bodies.
        _logger.debug("%s %s -> %d %s", method, url, status, self._redact(decoded))
        return decoded
