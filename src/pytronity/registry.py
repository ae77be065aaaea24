"""Explicit vehicle provider registration.

The host application builds a :class:`VehicleRegistry` at startup and
passes it to whatever instantiates vehicles by provider name. There is no
module-level registry.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pytronity.exceptions import TronityConfigError
from pytronity.vehicle import create_from_config

VehicleFactory = Callable[..., Awaitable[Any]]
"""``async factory(other, **kwargs) -> vehicle``."""


class VehicleRegistry:
    """Map provider type names to vehicle factories."""

    def __init__(self) -> None:
        self._factories: dict[str, VehicleFactory] = {}

    def add(self, name: str, factory: VehicleFactory) -> None:
        key = name.lower()
        if key in self._factories:
            raise ValueError(f"vehicle type already registered: {name}")
        self._factories[key] = factory

    def get(self, name: str) -> VehicleFactory:
        factory = self._factories.get(name.lower())
        if factory is None:
            raise TronityConfigError(f"invalid vehicle type: {name}")
        return factory

    def types(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._factories

    async def create(self, name: str, other: Mapping[str, Any], **kwargs: Any) -> Any:
        """Instantiate a vehicle of type *name* from its configuration."""
        return await self.get(name)(other, **kwargs)


def default_registry() -> VehicleRegistry:
    """Return a new registry with the providers shipped in this package."""
    registry = VehicleRegistry()
    registry.add("tronity", create_from_config)
    return registry
