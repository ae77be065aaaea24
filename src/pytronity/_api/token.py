"""Token endpoint.

Endpoint:
  - /authentication

Two grants are used: the proprietary ``app`` grant (client credentials in a
JSON body) and the standard OAuth2 ``refresh_token`` grant (form-encoded,
client credentials in the body).
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pytronity._redact import redact_for_log
from pytronity.exceptions import TronityAuthenticationError
from pytronity.models.token import OAuthToken

_logger = logging.getLogger(__name__)


def build_app_token_request(client_id: str, client_secret: str) -> dict[str, str]:
    """JSON body for the app flow."""
    return {
        "client_id": client_id,
        "client_secret": client_secret,
        "grant_type": "app",
    }


def build_refresh_token_request(client_id: str, client_secret: str, refresh_token: str) -> dict[str, str]:
    """Form body for the standard refresh-token exchange."""
    return {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
        "client_secret": client_secret,
    }


def parse_token_response(response: Any, *, url: str = "") -> OAuthToken:
    """Parse a token endpoint response.

    Raises
    ------
    TronityAuthenticationError
        If the response is not a token object.
    """
    _logger.debug("Token response parsed=%s", redact_for_log(response))
    if not isinstance(response, dict) or not response.get("access_token"):
        raise TronityAuthenticationError("token response missing access_token", url=url)
    try:
        return OAuthToken.model_validate(response)
    except ValidationError as exc:
        raise TronityAuthenticationError(f"invalid token response: {exc}", url=url) from exc
