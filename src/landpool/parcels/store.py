"""In-memory store for parcel records."""

from __future__ import annotations

from landpool.core.types import ParcelStatus
from landpool.parcels.models import Parcel


class ParcelStore:
    """In-memory dict store for parcels, suitable for single-instance deployment.

    Parcels are never deleted; a re-sketch adds a new record.
    """

    def __init__(self) -> None:
        self._parcels: dict[str, Parcel] = {}

    def save(self, parcel: Parcel) -> Parcel:
        self._parcels[parcel.parcel_id] = parcel
        return parcel

    def get(self, parcel_id: str) -> Parcel | None:
        return self._parcels.get(parcel_id)

    def list_for_owner(self, owner_id: str) -> list[Parcel]:
        """Owner's parcels, oldest first."""
        parcels = [p for p in self._parcels.values() if p.owner_id == owner_id]
        return sorted(parcels, key=lambda p: p.created_at)

    def list_ready(self) -> list[Parcel]:
        """Parcels currently opted in to integration, in insertion order."""
        return [
            p for p in self._parcels.values()
            if p.ready_to_integrate and p.status == ParcelStatus.COMPLETED
        ]

    def list_all(self) -> list[Parcel]:
        return list(self._parcels.values())

    @property
    def count(self) -> int:
        return len(self._parcels)
