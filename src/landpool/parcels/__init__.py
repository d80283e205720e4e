"""Parcel records and the integration opt-in flag."""

from landpool.parcels.manager import ParcelManager
from landpool.parcels.models import DeclaredLandHint, Parcel
from landpool.parcels.store import ParcelStore

__all__ = ["DeclaredLandHint", "Parcel", "ParcelManager", "ParcelStore"]
