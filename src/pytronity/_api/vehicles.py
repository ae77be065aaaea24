"""Vehicle list and bulk telemetry endpoints.

Endpoints:
  - GET /tronity/vehicles
  - GET /tronity/vehicles/{id}/last_record
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pytronity._transport import Transport
from pytronity.exceptions import TronityTransportError
from pytronity.models.bulk import Bulk
from pytronity.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


def vehicles_url(base_url: str) -> str:
    return f"{base_url}/tronity/vehicles"


def vehicle_url(base_url: str, vehicle_id: str, action: str) -> str:
    return f"{base_url}/tronity/vehicles/{vehicle_id}/{action}"


async def fetch_vehicles(base_url: str, transport: Transport) -> list[Vehicle]:
    """Fetch all vehicles visible to the authenticated account.

    Raises
    ------
    TronityTransportError
        If a vehicle entry does not match the expected shape.
    """
    url = vehicles_url(base_url)
    decoded = await transport.request("GET", url)
    items = decoded.get("data") if isinstance(decoded, dict) else None
    if not isinstance(items, list):
        items = []
    try:
        vehicles = [Vehicle.model_validate(item) for item in items if isinstance(item, dict)]
    except ValidationError as exc:
        raise TronityTransportError(f"invalid vehicle list: {exc}", url=url) from exc
    _logger.debug("Found %d vehicle(s): %s", len(vehicles), [v.vin for v in vehicles])
    return vehicles


async def fetch_bulk(base_url: str, transport: Transport, vehicle_id: str) -> Bulk:
    """Fetch the last telemetry record of a vehicle."""
    url = vehicle_url(base_url, vehicle_id, "last_record")
    decoded = await transport.request("GET", url)
    try:
        return Bulk.model_validate(decoded if isinstance(decoded, dict) else {})
    except ValidationError as exc:
        raise TronityTransportError(f"invalid telemetry record: {exc}", url=url) from exc
