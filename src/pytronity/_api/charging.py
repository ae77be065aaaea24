"""Charge control endpoints.

Endpoints:
  - POST /tronity/vehicles/{id}/start_charging
  - POST /tronity/vehicles/{id}/stop_charging
"""

from __future__ import annotations

import logging

from pytronity._api.vehicles import vehicle_url
from pytronity._transport import Transport
from pytronity.exceptions import TronityTransportError

_logger = logging.getLogger(__name__)

# Returned by vehicles whose model does not support remote start/stop.
_METHOD_NOT_ALLOWED = 405


async def post_charge_command(base_url: str, transport: Transport, vehicle_id: str, action: str) -> None:
    """POST an empty body to a charge control endpoint.

    A 405 response is not an error; every other failure propagates.
    """
    url = vehicle_url(base_url, vehicle_id, action)
    try:
        await transport.request("POST", url)
    except TronityTransportError as exc:
        if not exc.has_status(_METHOD_NOT_ALLOWED):
            raise
        _logger.debug("%s not allowed for vehicle %s, ignoring", action, vehicle_id)


async def start_charging(base_url: str, transport: Transport, vehicle_id: str) -> None:
    await post_charge_command(base_url, transport, vehicle_id, "start_charging")


async def stop_charging(base_url: str, transport: Transport, vehicle_id: str) -> None:
    await post_charge_command(base_url, transport, vehicle_id, "stop_charging")
