"""Geometry engine: sketch + anchor -> real-world parcel geometry.

The sketch has no inherent scale. One sketch unit is taken as one meter (or
one foot when the sketch is declared in feet); no scale is inferred from the
drawing. Offsets from the sketch's area-weighted centroid are projected onto
the globe with a local equirectangular approximation rooted at the owner's
anchor, which is therefore returned unchanged as the parcel centroid.

All functions here are pure.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from landpool.core.config import GeometryConfig
from landpool.core.errors import (
    InsufficientVertices,
    InvalidAnchor,
    SketchTooLarge,
    ValidationError,
)
from landpool.core.types import SketchUnit
from landpool.geometry.models import GeoPoint, ParcelGeometry, Point2D

SketchInput = Sequence[Point2D | tuple[float, float]]
AnchorInput = GeoPoint | tuple[float, float]

_DEFAULT_CONFIG = GeometryConfig()


def _as_xy(point: Point2D | tuple[float, float]) -> tuple[float, float]:
    if isinstance(point, Point2D):
        return point.x, point.y
    x, y = point
    return float(x), float(y)


def normalize_sketch(sketch: SketchInput) -> list[tuple[float, float]]:
    """Drop repeated consecutive points, including a closing repeat of the first."""
    points: list[tuple[float, float]] = []
    for point in sketch:
        xy = _as_xy(point)
        if not (math.isfinite(xy[0]) and math.isfinite(xy[1])):
            raise ValidationError(f"Sketch point {xy!r} is not finite")
        if points and points[-1] == xy:
            continue
        points.append(xy)
    while len(points) > 1 and points[-1] == points[0]:
        points.pop()
    return points


def validate_anchor(anchor: AnchorInput) -> GeoPoint:
    """Return the anchor as a GeoPoint, or raise InvalidAnchor."""
    if isinstance(anchor, GeoPoint):
        latitude, longitude = anchor.latitude, anchor.longitude
    else:
        try:
            latitude, longitude = (float(v) for v in anchor)
        except (TypeError, ValueError) as exc:
            raise InvalidAnchor(f"Anchor {anchor!r} is not a (latitude, longitude) pair") from exc

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidAnchor(f"Anchor ({latitude}, {longitude}) is not finite")
    # The local projection divides by cos(latitude), so the poles are excluded.
    if not -90.0 < latitude < 90.0:
        raise InvalidAnchor(f"Anchor latitude {latitude} must be strictly between -90 and 90")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidAnchor(f"Anchor longitude {longitude} must be within [-180, 180]")
    return GeoPoint(latitude=latitude, longitude=longitude)


def signed_area(points: Sequence[tuple[float, float]]) -> float:
    """Shoelace signed area; positive for counter-clockwise rings."""
    total = 0.0
    n = len(points)
    for i in range(n):
        x0, y0 = points[i]
        x1, y1 = points[(i + 1) % n]
        total += x0 * y1 - x1 * y0
    return total / 2.0


def polygon_centroid(
    points: Sequence[tuple[float, float]],
    epsilon: float = _DEFAULT_CONFIG.degenerate_area_epsilon,
) -> tuple[float, float]:
    """Area-weighted centroid of a simple polygon.

    Falls back to the vertex mean when the polygon is degenerate (collinear
    or zero area).
    """
    n = len(points)
    if n == 0:
        raise ValueError("Cannot take the centroid of an empty polygon")

    area = 0.0
    cx = 0.0
    cy = 0.0
    for i in range(n):
        x0, y0 = points[i]
        x1, y1 = points[(i + 1) % n]
        cross = x0 * y1 - x1 * y0
        area += cross
        cx += (x0 + x1) * cross
        cy += (y0 + y1) * cross
    area /= 2.0

    if abs(area) < epsilon:
        return (
            sum(p[0] for p in points) / n,
            sum(p[1] for p in points) / n,
        )
    return cx / (6.0 * area), cy / (6.0 * area)


def offset_to_lat_lon(
    anchor: GeoPoint,
    east_m: float,
    north_m: float,
    earth_radius_m: float = _DEFAULT_CONFIG.earth_radius_m,
) -> tuple[float, float]:
    """Move ``east_m``/``north_m`` meters from the anchor (equirectangular)."""
    latitude = anchor.latitude + math.degrees(north_m / earth_radius_m)
    longitude = anchor.longitude + math.degrees(
        east_m / (earth_radius_m * math.cos(math.radians(anchor.latitude)))
    )
    return latitude, longitude


def _wrap_longitude(longitude: float) -> float:
    if -180.0 <= longitude <= 180.0:
        return longitude
    return (longitude + 180.0) % 360.0 - 180.0


def haversine_m(
    a: GeoPoint,
    b: GeoPoint,
    earth_radius_m: float = _DEFAULT_CONFIG.earth_radius_m,
) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = phi2 - phi1
    d_lambda = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    return 2.0 * earth_radius_m * math.asin(min(1.0, math.sqrt(h)))


def planar_area_sq_m(
    lat_lon: Sequence[tuple[float, float]],
    reference_latitude: float,
    earth_radius_m: float = _DEFAULT_CONFIG.earth_radius_m,
) -> float:
    """Shoelace area over raw (lat, lon) pairs, scaled to square meters.

    The square-degree result is scaled back with the same equirectangular
    factors used to place the vertices, so a sketch of ``S x S`` units yields
    about ``S**2`` square meters. Only valid for small parcels.
    """
    square_degrees = abs(signed_area(lat_lon))
    meters_per_degree = math.radians(1.0) * earth_radius_m
    return (
        square_degrees
        * meters_per_degree
        * meters_per_degree
        * math.cos(math.radians(reference_latitude))
    )


def compute_geometry(
    sketch: SketchInput,
    anchor: AnchorInput,
    unit: SketchUnit = SketchUnit.METERS,
    *,
    flip_y: bool = False,
    config: GeometryConfig | None = None,
) -> ParcelGeometry:
    """Turn an ordered sketch and an anchor into a ParcelGeometry.

    Args:
        sketch: Ordered sketch points (at least three distinct).
        anchor: Real-world location of the sketch's centroid.
        unit: Unit of one sketch coordinate step.
        flip_y: Treat the sketch's y axis as pointing south (canvas pixels).
        config: Geometry configuration; defaults to ``GeometryConfig()``.

    Raises:
        InsufficientVertices: Fewer than ``min_vertices`` distinct points.
        InvalidAnchor: Anchor is not finite or out of range.
        SketchTooLarge: A projected vertex falls outside [-90, 90] latitude.
    """
    config = config or _DEFAULT_CONFIG
    anchor_point = validate_anchor(anchor)

    points = normalize_sketch(sketch)
    if len(points) < config.min_vertices:
        raise InsufficientVertices(
            f"A parcel needs at least {config.min_vertices} vertices, got {len(points)}"
        )

    scale = unit.meters_per_unit
    north_sign = -1.0 if flip_y else 1.0
    local = [(x * scale, north_sign * y * scale) for x, y in points]

    cx, cy = polygon_centroid(local, config.degenerate_area_epsilon)
    offsets = [(x - cx, y - cy) for x, y in local]

    raw = [
        offset_to_lat_lon(anchor_point, east, north, config.earth_radius_m)
        for east, north in offsets
    ]
    for lat, lon in raw:
        if not (math.isfinite(lat) and math.isfinite(lon)) or not -90.0 <= lat <= 90.0:
            raise SketchTooLarge(
                f"Sketch extends past the valid latitude range from anchor "
                f"({anchor_point.latitude}, {anchor_point.longitude})"
            )
    vertices = [
        GeoPoint(latitude=lat, longitude=_wrap_longitude(lon)) for lat, lon in raw
    ]

    n = len(vertices)
    side_lengths = [
        haversine_m(vertices[i], vertices[(i + 1) % n], config.earth_radius_m)
        for i in range(n)
    ]
    area = planar_area_sq_m(raw, anchor_point.latitude, config.earth_radius_m)
    if not math.isfinite(area):
        raise SketchTooLarge("Sketch area overflows")

    return ParcelGeometry(
        centroid=anchor_point,
        vertices=vertices,
        side_lengths_m=side_lengths,
        area_sq_m=area,
    )


class GeometryEngine:
    """Configured front for ``compute_geometry``.

    Passed as a collaborator to the parcel manager and to any sketch-capture
    component.
    """

    def __init__(self, config: GeometryConfig | None = None) -> None:
        self._config = config or GeometryConfig()

    @property
    def config(self) -> GeometryConfig:
        return self._config

    def compute(
        self,
        sketch: SketchInput,
        anchor: AnchorInput,
        unit: SketchUnit = SketchUnit.METERS,
        *,
        flip_y: bool = False,
    ) -> ParcelGeometry:
        return compute_geometry(sketch, anchor, unit, flip_y=flip_y, config=self._config)

    def distance_m(self, a: GeoPoint, b: GeoPoint) -> float:
        return haversine_m(a, b, self._config.earth_radius_m)
