"""Parcel API router: geometry, parcel records, readiness and neighbours."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from landpool.auth.identity import Caller, require_caller
from landpool.core.errors import ParcelNotCompleted, Unauthorized
from landpool.core.types import SketchUnit
from landpool.parcels.models import DeclaredLandHint, Parcel

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response models
# ---------------------------------------------------------------------------


class SketchRequest(BaseModel):
    """Request body carrying a hand-drawn sketch and its GPS anchor."""

    sketch: list[tuple[float, float]] = Field(default_factory=list)
    anchor: tuple[float, float]
    unit: SketchUnit = SketchUnit.METERS
    flip_y: bool = False


class ParcelCreateRequest(SketchRequest):
    """Request body for storing a parcel."""

    declared: DeclaredLandHint | None = None


class ReadyRequest(BaseModel):
    ready: bool


# ---------------------------------------------------------------------------
# Helpers to get services from app state
# ---------------------------------------------------------------------------


def _get_geometry_engine(request: Request):
    engine = getattr(request.app.state, "geometry_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Geometry engine not available")
    return engine


def _get_parcel_manager(request: Request):
    manager = getattr(request.app.state, "parcel_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Parcel manager not available")
    return manager


def _get_neighbor_finder(request: Request):
    finder = getattr(request.app.state, "neighbor_finder", None)
    if finder is None:
        raise HTTPException(status_code=503, detail="Neighbor finder not available")
    return finder


def _owned_parcel(request: Request, parcel_id: str, caller: Caller) -> Parcel:
    parcel = _get_parcel_manager(request).get_parcel(parcel_id)
    if parcel.owner_id != caller.owner_id:
        raise Unauthorized(f"Parcel {parcel_id!r} belongs to another owner")
    return parcel


def _parcel_response(parcel: Parcel) -> dict[str, Any]:
    data = parcel.model_dump(mode="json")
    data["size_acres"] = parcel.size_acres
    return data


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/api/parcels/geometry")
async def api_compute_geometry(body: SketchRequest, request: Request) -> dict[str, Any]:
    """Compute parcel geometry without storing anything."""
    engine = _get_geometry_engine(request)
    geometry = engine.compute(body.sketch, body.anchor, body.unit, flip_y=body.flip_y)
    data = geometry.model_dump(mode="json")
    data["area_acres"] = geometry.area_acres
    return data


@router.post("/api/parcels")
async def api_create_parcel(
    body: ParcelCreateRequest,
    request: Request,
    caller: Caller = require_caller(),
) -> dict[str, Any]:
    """Compute and store the caller's parcel.

    A sketch the geometry engine rejects is still stored, with status
    ``failed`` and the error message.
    """
    manager = _get_parcel_manager(request)
    parcel = manager.compute_and_store(
        caller.owner_id,
        body.sketch,
        body.anchor,
        declared=body.declared,
        unit=body.unit,
        flip_y=body.flip_y,
    )
    return _parcel_response(parcel)


@router.get("/api/parcels/current")
async def api_current_parcel(
    request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    """The caller's most recently stored parcel."""
    parcel = _get_parcel_manager(request).current_parcel(caller.owner_id)
    if parcel is None:
        raise HTTPException(status_code=404, detail="No parcel stored for this owner")
    return _parcel_response(parcel)


@router.get("/api/parcels/{parcel_id}")
async def api_get_parcel(
    parcel_id: str, request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    return _parcel_response(_owned_parcel(request, parcel_id, caller))


@router.get("/api/parcels/{parcel_id}/geojson")
async def api_parcel_geojson(
    parcel_id: str, request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    """GeoJSON Feature for the parcel outline."""
    parcel = _owned_parcel(request, parcel_id, caller)
    if parcel.geometry is None:
        raise ParcelNotCompleted(f"Parcel {parcel_id!r} has no computed geometry")
    return parcel.geometry.to_geojson()


@router.get("/api/parcels/{parcel_id}/ready")
async def api_get_ready(
    parcel_id: str, request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    parcel = _owned_parcel(request, parcel_id, caller)
    return {"parcel_id": parcel_id, "ready": parcel.ready_to_integrate}


@router.put("/api/parcels/{parcel_id}/ready")
async def api_set_ready(
    parcel_id: str,
    body: ReadyRequest,
    request: Request,
    caller: Caller = require_caller(),
) -> dict[str, Any]:
    """Opt the parcel in to (or out of) integration."""
    manager = _get_parcel_manager(request)
    ready = manager.set_ready(parcel_id, body.ready, owner_id=caller.owner_id)
    return {"parcel_id": parcel_id, "ready": ready}


@router.get("/api/parcels/{parcel_id}/neighbors")
async def api_find_neighbors(
    parcel_id: str,
    request: Request,
    radius_m: float | None = None,
    limit: int | None = None,
    caller: Caller = require_caller(),
) -> list[dict[str, Any]]:
    """Opted-in parcels of other owners near this parcel, nearest first."""
    parcel = _owned_parcel(request, parcel_id, caller)
    if parcel.anchor is None:
        raise ParcelNotCompleted(f"Parcel {parcel_id!r} has no computed geometry")
    finder = _get_neighbor_finder(request)
    candidates = finder.find(
        (parcel.anchor.latitude, parcel.anchor.longitude),
        exclude_owner_id=caller.owner_id,
        radius_m=radius_m,
        limit=limit,
    )
    return [c.model_dump() for c in candidates]
