"""Data models for Tronity API responses."""

from pytronity.models._base import TronityBaseModel
from pytronity.models.bulk import Bulk, ChargeStatus
from pytronity.models.token import OAuthToken
from pytronity.models.vehicle import Vehicle

__all__ = [
    "Bulk",
    "ChargeStatus",
    "OAuthToken",
    "TronityBaseModel",
    "Vehicle",
]
