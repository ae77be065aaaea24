"""pytronity - Async Python client for the Tronity vehicle telemetry API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytronity")
except PackageNotFoundError:
    __version__ = "0+local"
from pytronity.auth import (
    AppTokenSource,
    AuthenticatedTransport,
    RefreshTokenSource,
    TokenSource,
)
from pytronity.client import TronityClient
from pytronity.config import ClientCredentials, Tokens, TronityConfig
from pytronity.exceptions import (
    TronityAuthenticationError,
    TronityConfigError,
    TronityError,
    TronitySponsorRequiredError,
    TronityTransportError,
    TronityVehicleNotFoundError,
)
from pytronity.models import Bulk, ChargeStatus, OAuthToken, Vehicle
from pytronity.registry import VehicleRegistry, default_registry
from pytronity.vehicle import (
    Capability,
    ChargeState,
    TronityVehicle,
    VehicleChargeController,
    VehicleOdometer,
    VehicleRange,
    create_from_config,
)

__all__ = [
    "__version__",
    "AppTokenSource",
    "AuthenticatedTransport",
    "Bulk",
    "Capability",
    "ChargeState",
    "ChargeStatus",
    "ClientCredentials",
    "OAuthToken",
    "RefreshTokenSource",
    "TokenSource",
    "Tokens",
    "TronityAuthenticationError",
    "TronityClient",
    "TronityConfig",
    "TronityConfigError",
    "TronityError",
    "TronitySponsorRequiredError",
    "TronityTransportError",
    "TronityVehicle",
    "TronityVehicleNotFoundError",
    "Vehicle",
    "VehicleChargeController",
    "VehicleOdometer",
    "VehicleRange",
    "VehicleRegistry",
    "create_from_config",
    "default_registry",
]
