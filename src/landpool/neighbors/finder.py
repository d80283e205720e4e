"""Nearby opted-in parcels, ranked by great-circle distance."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from landpool.core.config import NeighborConfig
from landpool.geometry.engine import AnchorInput, GeometryEngine, validate_anchor
from landpool.repositories.protocols import ParcelRepository

logger = logging.getLogger(__name__)


class NeighborCandidate(BaseModel):
    """A parcel the requester could propose to integrate with. Not persisted."""

    owner_id: str
    parcel_id: str
    size_in_acres: float
    distance_m: float


class NeighborFinder:
    """Linear scan over the opt-in pool.

    No spatial index: the pool is a farming neighbourhood, not a national
    cadastre.
    """

    def __init__(
        self,
        store: ParcelRepository,
        config: NeighborConfig | None = None,
        geometry_engine: GeometryEngine | None = None,
    ) -> None:
        self._store = store
        self._config = config or NeighborConfig()
        self._engine = geometry_engine or GeometryEngine()

    def find(
        self,
        anchor: AnchorInput,
        exclude_owner_id: str,
        radius_m: float | None = None,
        limit: int | None = None,
    ) -> list[NeighborCandidate]:
        """Return ready parcels within ``radius_m`` of ``anchor``, nearest first.

        Equal distances keep the pool's order. An empty list is a valid
        result.
        """
        origin = validate_anchor(anchor)
        radius = self._config.search_radius_m if radius_m is None else radius_m
        page_size = self._config.page_size if limit is None else limit

        candidates: list[NeighborCandidate] = []
        for parcel in self._store.list_ready():
            if parcel.owner_id == exclude_owner_id or parcel.anchor is None:
                continue
            distance = self._engine.distance_m(origin, parcel.anchor)
            if distance > radius:
                continue
            candidates.append(
                NeighborCandidate(
                    owner_id=parcel.owner_id,
                    parcel_id=parcel.parcel_id,
                    size_in_acres=parcel.size_acres,
                    distance_m=distance,
                )
            )

        candidates.sort(key=lambda c: c.distance_m)
        logger.debug(
            "Neighbor search for %s: %d within %.0f m", exclude_owner_id, len(candidates), radius
        )
        return candidates[:page_size]
