"""Geometry engine for hand-drawn parcel sketches."""

from landpool.geometry.engine import GeometryEngine, compute_geometry
from landpool.geometry.models import GeoPoint, ParcelGeometry, Point2D

__all__ = ["GeoPoint", "GeometryEngine", "ParcelGeometry", "Point2D", "compute_geometry"]
