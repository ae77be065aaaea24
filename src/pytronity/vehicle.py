"""Capability-gated vehicle handle.

A :class:`TronityVehicle` is built once per configured vehicle. Which
optional operations it has depends on the OAuth scopes the owner granted
for that vehicle:

============================  ==============================  =====================
capability                    scope                           methods
============================  ==============================  =====================
``Capability.CHARGE_STATE``   ``read_charge``                 ``status()``
``Capability.ODOMETER``       ``read_odometer``               ``odometer()``
``Capability.CHARGE_CONTROL`` ``write_charge_start_stop``     ``start_charge()``,
                                                              ``stop_charge()``
============================  ==============================  =====================

An ungranted operation is absent from the handle, not merely failing:
``hasattr(handle, "odometer")`` is false and
``isinstance(handle, VehicleOdometer)`` is false. ``soc()`` and ``range()``
are always present.

All reads share one TTL-cached bulk fetch, so reads within one cache
window observe the same record.
"""

from __future__ import annotations

import enum
import functools
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import aiohttp

from pytronity._cache import TtlCache, cached, with_timeout
from pytronity._constants import READ_CHARGE, READ_ODOMETER, WRITE_CHARGE_START_STOP
from pytronity.client import TronityClient
from pytronity.config import TronityConfig
from pytronity.exceptions import TronitySponsorRequiredError, TronityVehicleNotFoundError
from pytronity.models.bulk import Bulk, ChargeStatus
from pytronity.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


class Capability(enum.Enum):
    """Optional vehicle operations and the scope each one requires."""

    CHARGE_STATE = READ_CHARGE
    ODOMETER = READ_ODOMETER
    CHARGE_CONTROL = WRITE_CHARGE_START_STOP

    @property
    def scope(self) -> str:
        return str(self.value)


def compose_capabilities(scopes: Iterable[str]) -> frozenset[Capability]:
    """Return the capabilities granted by *scopes*."""
    granted = set(scopes)
    return frozenset(c for c in Capability if c.scope in granted)


def resolve_vehicle(vin: str, vehicles: Sequence[Vehicle]) -> Vehicle:
    """Select the configured vehicle.

    With a VIN the match is exact string equality. Without one, the account
    must hold exactly one vehicle.

    Raises
    ------
    TronityVehicleNotFoundError
        If no vehicle matches, or the selection is ambiguous.
    """
    available = [v.vin for v in vehicles]
    if vin:
        for vehicle in vehicles:
            if vehicle.vin == vin:
                return vehicle
        raise TronityVehicleNotFoundError(
            f"vin not found: {vin} (available: {available})",
            vin=vin,
            available=available,
        )

    if len(vehicles) == 1:
        return vehicles[0]
    raise TronityVehicleNotFoundError(
        f"vin not configured and {len(vehicles)} vehicles found: {available}",
        available=available,
    )


# ----------------------------------------------------------------------
# Structural interfaces
# ----------------------------------------------------------------------


@runtime_checkable
class VehicleRange(Protocol):
    async def range(self, *, timeout: float | None = None) -> int:
        ...


@runtime_checkable
class ChargeState(Protocol):
    async def status(self, *, timeout: float | None = None) -> ChargeStatus:
        ...


@runtime_checkable
class VehicleOdometer(Protocol):
    async def odometer(self, *, timeout: float | None = None) -> float:
        ...


@runtime_checkable
class VehicleChargeController(Protocol):
    async def start_charge(self, *, timeout: float | None = None) -> None:
        ...

    async def stop_charge(self, *, timeout: float | None = None) -> None:
        ...


# ----------------------------------------------------------------------
# Handle
# ----------------------------------------------------------------------


class TronityVehicle:
    """Vehicle handle with state of charge and range.

    Do not instantiate directly; use :meth:`create` or
    :func:`compose_vehicle`, which add the granted optional operations.
    """

    def __init__(
        self,
        client: TronityClient,
        vehicle: Vehicle,
        capabilities: frozenset[Capability],
        *,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._config = client.config
        self._vehicle = vehicle
        self._capabilities = capabilities
        self._owns_client = owns_client
        self._bulk: TtlCache[Bulk] = cached(functools.partial(client.get_bulk, vehicle.id), self._config.cache)

    @classmethod
    async def create(
        cls,
        config: TronityConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> TronityVehicle:
        """Authenticate, resolve the configured vehicle and compose its handle."""
        client = TronityClient(config, session=session)
        await client.open()
        try:
            vehicles = await client.get_vehicles()
            vehicle = resolve_vehicle(config.vin, vehicles)
        except BaseException:
            await client.close()
            raise
        _logger.debug("Selected vehicle id=%s vin=%s scopes=%s", vehicle.id, vehicle.vin, list(vehicle.scopes))
        return compose_vehicle(client, vehicle, owns_client=True)

    async def __aenter__(self) -> TronityVehicle:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()

    def __repr__(self) -> str:
        caps = ",".join(sorted(c.name for c in self._capabilities))
        return f"<{type(self).__name__} vin={self._vehicle.vin!r} capabilities=[{caps}]>"

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def vehicle(self) -> Vehicle:
        return self._vehicle

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    def has(self, capability: Capability) -> bool:
        return capability in self._capabilities

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def title(self) -> str:
        return self._config.title or self._vehicle.display_name

    def capacity(self) -> float:
        """Battery capacity in kWh."""
        return self._config.capacity

    def phases(self) -> int:
        return self._config.phases

    def identifiers(self) -> tuple[str, ...]:
        return self._config.identifiers

    def icon(self) -> str:
        return self._config.icon

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    async def bulk(self, *, timeout: float | None = None) -> Bulk:
        """The cached telemetry record backing every read."""
        return await with_timeout(self._bulk.get(), timeout)

    def invalidate(self) -> None:
        """Drop cached telemetry so the next read fetches."""
        self._bulk.reset()

    async def soc(self, *, timeout: float | None = None) -> float:
        """State of charge in percent."""
        res = await self.bulk(timeout=timeout)
        return res.level

    async def range(self, *, timeout: float | None = None) -> int:
        """Remaining range in km."""
        res = await self.bulk(timeout=timeout)
        return int(res.range)


class _ChargeStateMixin:
    bulk: Callable[..., Any]

    async def status(self, *, timeout: float | None = None) -> ChargeStatus:
        """Charge state; charging takes precedence over plugged."""
        res: Bulk = await self.bulk(timeout=timeout)
        return res.charge_status


class _OdometerMixin:
    bulk: Callable[..., Any]

    async def odometer(self, *, timeout: float | None = None) -> float:
        """Odometer in km."""
        res: Bulk = await self.bulk(timeout=timeout)
        return res.odometer


class _ChargeControllerMixin:
    _client: TronityClient
    _config: TronityConfig
    _vehicle: Vehicle
    invalidate: Callable[[], None]

    async def start_charge(self, *, timeout: float | None = None) -> None:
        await self._client.start_charging(self._vehicle.id, timeout=timeout)
        if self._config.invalidate_cache_on_command:
            self.invalidate()

    async def stop_charge(self, *, timeout: float | None = None) -> None:
        await self._client.stop_charging(self._vehicle.id, timeout=timeout)
        if self._config.invalidate_cache_on_command:
            self.invalidate()


_MIXINS: dict[Capability, type] = {
    Capability.CHARGE_STATE: _ChargeStateMixin,
    Capability.ODOMETER: _OdometerMixin,
    Capability.CHARGE_CONTROL: _ChargeControllerMixin,
}


@functools.cache
def _handle_class(capabilities: frozenset[Capability]) -> type[TronityVehicle]:
    bases = tuple(_MIXINS[c] for c in Capability if c in capabilities)
    if not bases:
        return TronityVehicle
    return type("TronityVehicle", (*bases, TronityVehicle), {"__module__": __name__})


def compose_vehicle(client: TronityClient, vehicle: Vehicle, *, owns_client: bool = False) -> TronityVehicle:
    """Build the handle class for the vehicle's scopes and instantiate it."""
    capabilities = compose_capabilities(vehicle.scopes)
    handle_cls = _handle_class(capabilities)
    return handle_cls(client, vehicle, capabilities, owns_client=owns_client)


def _always_authorized() -> bool:
    return True


async def create_from_config(
    other: Mapping[str, Any],
    *,
    session: aiohttp.ClientSession | None = None,
    is_authorized: Callable[[], bool] = _always_authorized,
) -> TronityVehicle:
    """Create a vehicle handle from loose user configuration.

    Configuration and credential errors, and a refused licensing check,
    are raised before any network access.
    """
    config = TronityConfig.from_dict(other)
    config.validate()
    if not is_authorized():
        raise TronitySponsorRequiredError("sponsorship required")
    return await TronityVehicle.create(config, session=session)
