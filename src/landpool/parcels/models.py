"""Parcel data models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from landpool.core.types import ParcelStatus
from landpool.geometry.models import GeoPoint, ParcelGeometry


class DeclaredLandHint(BaseModel):
    """Land-title fields extracted from a scanned document.

    Produced by an external OCR pipeline and consumed as-is.
    """

    size_acres: float | None = Field(default=None, ge=0.0)
    survey_id: str | None = None
    ownership_verified: bool = False
    location: str | None = None
    village: str | None = None
    taluk: str | None = None
    hobli: str | None = None
    soil_type: str | None = None
    crop_type: str | None = None


class Parcel(BaseModel):
    """A landholder's parcel: computed geometry plus the declared title hint."""

    parcel_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    geometry: ParcelGeometry | None = None
    declared: DeclaredLandHint | None = None
    ready_to_integrate: bool = False
    ready_since: datetime | None = None
    status: ParcelStatus = ParcelStatus.PENDING
    error: str | None = None
    superseded_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def anchor(self) -> GeoPoint | None:
        return self.geometry.centroid if self.geometry else None

    @property
    def size_acres(self) -> float:
        """Declared size when the title gives one, otherwise the sketched area."""
        if self.declared is not None and self.declared.size_acres is not None:
            return self.declared.size_acres
        if self.geometry is not None:
            return self.geometry.area_acres
        return 0.0

    @property
    def survey_id(self) -> str | None:
        return self.declared.survey_id if self.declared else None
