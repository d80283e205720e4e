"""Geometry data models: sketch points, geographic points and parcel geometry."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

SQUARE_METERS_PER_ACRE = 4046.8564224


class Point2D(BaseModel):
    """A point on the hand-drawn sketch, in sketch units."""

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class GeoPoint(BaseModel):
    """A real-world point in decimal degrees."""

    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)


class ParcelGeometry(BaseModel):
    """Real-world description of a sketched parcel.

    ``centroid`` is always the anchor the owner supplied. ``vertices`` keep the
    sketch's order; the ring is implicitly closed.
    """

    centroid: GeoPoint
    vertices: list[GeoPoint]
    side_lengths_m: list[float]
    area_sq_m: float = Field(ge=0.0)

    @model_validator(mode="after")
    def _check_sides(self) -> ParcelGeometry:
        if len(self.side_lengths_m) != len(self.vertices):
            raise ValueError(
                f"{len(self.side_lengths_m)} side lengths for {len(self.vertices)} vertices"
            )
        return self

    @property
    def area_acres(self) -> float:
        return self.area_sq_m / SQUARE_METERS_PER_ACRE

    @property
    def perimeter_m(self) -> float:
        return sum(self.side_lengths_m)

    def to_geojson(self) -> dict[str, Any]:
        """Return a GeoJSON Feature with a closed ring in [lon, lat] order."""
        ring = [[v.longitude, v.latitude] for v in self.vertices]
        if ring:
            ring.append(list(ring[0]))
        return {
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "properties": {
                "centroid": [self.centroid.longitude, self.centroid.latitude],
                "side_lengths_m": list(self.side_lengths_m),
                "area_sq_m": self.area_sq_m,
            },
        }
