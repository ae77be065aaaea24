#!/usr/bin/env python3
"""Live Tronity adapter check.

Builds a vehicle handle from ``TRONITY_*`` environment variables, prints
the granted capabilities and one telemetry snapshot, and optionally sends
a start/stop command.

Credential sourcing:
- TRONITY_CLIENT_ID, TRONITY_CLIENT_SECRET (required)
- TRONITY_ACCESS_TOKEN, TRONITY_REFRESH_TOKEN (optional, user flow)
- TRONITY_VIN (optional when the account holds one vehicle)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytronity import (  # noqa: E402
    ChargeState,
    TronityConfig,
    TronityError,
    TronityVehicle,
    VehicleChargeController,
    VehicleOdometer,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query a Tronity vehicle once")
    parser.add_argument("--vin", help="VIN to select (overrides TRONITY_VIN)")
    parser.add_argument(
        "--command",
        choices=("start", "stop"),
        help="Send a charge command after reading telemetry",
    )
    parser.add_argument("--timeout", type=float, default=30.0, help="Per-call timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.vin:
        overrides["vin"] = args.vin
    config = TronityConfig.from_env(**overrides)

    async with await TronityVehicle.create(config) as vehicle:
        report: dict[str, Any] = {
            "id": vehicle.vehicle.id,
            "vin": vehicle.vehicle.vin,
            "scopes": list(vehicle.vehicle.scopes),
            "capabilities": sorted(c.name for c in vehicle.capabilities),
            "soc": await vehicle.soc(timeout=args.timeout),
            "range": await vehicle.range(timeout=args.timeout),
        }
        if isinstance(vehicle, ChargeState):
            report["status"] = (await vehicle.status(timeout=args.timeout)).name
        if isinstance(vehicle, VehicleOdometer):
            report["odometer"] = await vehicle.odometer(timeout=args.timeout)

        if args.command:
            if not isinstance(vehicle, VehicleChargeController):
                print("vehicle does not grant write_charge_start_stop", file=sys.stderr)
                return 2
            if args.command == "start":
                await vehicle.start_charge(timeout=args.timeout)
            else:
                await vehicle.stop_charge(timeout=args.timeout)
            report["command"] = args.command

    print(json.dumps(report, indent=2))
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(_run(args))
    except TronityError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
