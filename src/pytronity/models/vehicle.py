"""Vehicle model.

Mapped from the ``/tronity/vehicles`` response.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pytronity.models._base import TronityBaseModel


class Vehicle(TronityBaseModel):
    """A vehicle visible to the authenticated account."""

    id: str
    """Tronity-internal vehicle identifier used in request paths."""
    vin: str = ""
    """Vehicle Identification Number."""
    scopes: tuple[str, ...] = ()
    """OAuth scopes the owner granted for this vehicle."""
    display_name: str = Field(default="", validation_alias=AliasChoices("displayName", "display_name"))
    """User-defined vehicle name."""
    manufacturer: str = ""
    """Manufacturer name (e.g. ``"Volkswagen"``)."""
    model: str = ""
    """Model name (e.g. ``"ID.3"``)."""

    @field_validator("id", "vin", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return str(value)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
