"""Constants and builders shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from landpool.parcels.manager import ParcelManager
from landpool.parcels.models import DeclaredLandHint, Parcel

BANGALORE = (12.97, 77.59)
SQUARE_10M = [(0, 0), (10, 0), (10, 10), (0, 10)]

FIXED_NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = current + timedelta(minutes=1)
        return current


def make_parcel(
    manager: ParcelManager,
    owner_id: str,
    acres: float | None = None,
    anchor: tuple[float, float] = BANGALORE,
    ready: bool = False,
    survey_id: str | None = None,
) -> Parcel:
    """Store a completed 10 m square parcel, optionally with a declared size."""
    declared = None
    if acres is not None or survey_id is not None:
        declared = DeclaredLandHint(size_acres=acres, survey_id=survey_id)
    parcel = manager.compute_and_store(owner_id, SQUARE_10M, anchor, declared=declared)
    if ready:
        manager.set_ready(parcel.parcel_id, True, owner_id=owner_id)
    return parcel
