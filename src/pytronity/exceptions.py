"""Custom exception hierarchy for pytronity."""

from __future__ import annotations

from collections.abc import Sequence


class TronityError(Exception):
    """Base exception for all pytronity errors."""


class TronityConfigError(TronityError):
    """Invalid or missing configuration."""


class TronitySponsorRequiredError(TronityError):
    """The licensing gate refused to create the adapter."""


class TronityTransportError(TronityError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)

    def has_status(self, *codes: int) -> bool:
        """Whether the failing response carried one of *codes*."""
        return self.status_code is not None and self.status_code in codes


class TronityAuthenticationError(TronityTransportError):
    """Token acquisition or refresh failed."""


class TronityVehicleNotFoundError(TronityError):
    """No vehicle matched the configured VIN, or the selection was ambiguous."""

    def __init__(self, message: str, *, vin: str = "", available: Sequence[str] = ()) -> None:
        self.vin = vin
        self.available = tuple(available)
        super().__init__(message)
