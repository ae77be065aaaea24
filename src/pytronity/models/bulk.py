"""Bulk telemetry model.

Mapped from ``/tronity/vehicles/{id}/last_record``. The endpoint combines
state of charge, range, odometer and charge/plug state in one record.
"""

from __future__ import annotations

import enum

from pytronity._constants import CHARGING_SIGNAL
from pytronity.models._base import TronityBaseModel


class ChargeStatus(str, enum.Enum):
    """Vehicle charge state using IEC 61851 letters."""

    DISCONNECTED = "A"
    CONNECTED = "B"
    CHARGING = "C"


class Bulk(TronityBaseModel):
    """Last telemetry record reported for a vehicle.

    Missing fields keep their zero default; values are checked for type
    shape only.
    """

    level: float = 0.0
    """State of charge in percent."""
    range: float = 0.0
    """Remaining range in provider units (km)."""
    odometer: float = 0.0
    """Odometer reading in provider units (km)."""
    charging: str = ""
    """Provider charging indicator; ``"Charging"`` while charging."""
    plugged: bool = False
    """Whether a charging cable is connected."""
    charger_power: float | None = None
    """Charging power in kW, when reported."""
    latitude: float | None = None
    longitude: float | None = None
    timestamp: int | str | None = None
    """Record time as reported (epoch milliseconds or ISO string)."""

    @property
    def charge_status(self) -> ChargeStatus:
        """Derive the charge state; charging wins over plugged."""
        if self.charging == CHARGING_SIGNAL:
            return ChargeStatus.CHARGING
        if self.plugged:
            return ChargeStatus.CONNECTED
        return ChargeStatus.DISCONNECTED
