"""OAuth2 token model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from pytronity._constants import TOKEN_EXPIRY_DELTA


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class OAuthToken(BaseModel):
    """Bearer token returned by the Tronity token endpoint.

    Parameters
    ----------
    access_token : str
        Bearer token sent with every API call.
    refresh_token : str
        Refresh token (user flow only; empty for the app flow).
    token_type : str
        Authorization scheme, ``Bearer`` unless the server says otherwise.
    expires_in : int or None
        Lifetime in seconds as reported by the server.
    expiry : datetime or None
        Absolute expiry. Derived from ``expires_in`` at parse time when
        the server does not send it. ``None`` means no known expiry.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: int | None = None
    expiry: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_expiry(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = {k: v for k, v in values.items() if v is not None}
        expires_in = merged.get("expires_in")
        if "expiry" not in merged and expires_in:
            merged["expiry"] = _utcnow() + timedelta(seconds=float(expires_in))
        if not merged.get("token_type"):
            merged.pop("token_type", None)
        return merged

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        scheme = "Bearer" if self.token_type.lower() == "bearer" else self.token_type
        return f"{scheme} {self.access_token}"

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expiry is None:
            return False
        now = now or _utcnow()
        return now >= self.expiry - timedelta(seconds=TOKEN_EXPIRY_DELTA)

    @property
    def valid(self) -> bool:
        """Whether the token can be used for a request right now."""
        return bool(self.access_token) and not self.is_expired()
