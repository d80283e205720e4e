"""Parcel record management: compute, store and opt in to integration."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from landpool.core.errors import (
    ParcelNotCompleted,
    ParcelNotFound,
    Unauthorized,
    ValidationError,
)
from landpool.core.types import ParcelStatus, SketchUnit
from landpool.geometry.engine import AnchorInput, GeometryEngine, SketchInput
from landpool.governance.audit import AuditLogger
from landpool.parcels.models import DeclaredLandHint, Parcel
from landpool.repositories.protocols import ParcelRepository

logger = logging.getLogger(__name__)


class ParcelManager:
    """Owns the parcel lifecycle.

    The geometry engine and store are injected; nothing here is reached
    through module-level state.
    """

    def __init__(
        self,
        store: ParcelRepository,
        geometry_engine: GeometryEngine | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._store = store
        self._engine = geometry_engine or GeometryEngine()
        self._audit = audit_logger

    @property
    def store(self) -> ParcelRepository:
        return self._store

    def compute_and_store(
        self,
        owner_id: str,
        sketch: SketchInput,
        anchor: AnchorInput,
        declared: DeclaredLandHint | None = None,
        unit: SketchUnit = SketchUnit.METERS,
        *,
        flip_y: bool = False,
    ) -> Parcel:
        """Run the geometry engine and persist the outcome.

        Input errors do not propagate: the parcel is stored as FAILED with the
        error message kept for display. Anything else (store failures
        included) propagates unchanged.
        """
        parcel = Parcel(owner_id=owner_id, declared=declared)
        try:
            parcel.geometry = self._engine.compute(sketch, anchor, unit, flip_y=flip_y)
        except ValidationError as exc:
            parcel.status = ParcelStatus.FAILED
            parcel.error = str(exc)
            logger.warning(
                "Geometry rejected for owner %s (%s): %s", owner_id, exc.code, exc
            )
        else:
            parcel.status = ParcelStatus.COMPLETED
            self._supersede(owner_id, parcel.parcel_id)
            logger.info(
                "Stored parcel %s for owner %s (%.1f m2, %d vertices)",
                parcel.parcel_id,
                owner_id,
                parcel.geometry.area_sq_m,
                len(parcel.geometry.vertices),
            )

        parcel.updated_at = datetime.now(timezone.utc)
        self._store.save(parcel)
        self._log_audit(owner_id, f"parcel_{parcel.status.value}", parcel.parcel_id, {
            "error": parcel.error,
        })
        return parcel

    def get_parcel(self, parcel_id: str) -> Parcel:
        parcel = self._store.get(parcel_id)
        if parcel is None:
            raise ParcelNotFound(f"Parcel {parcel_id!r} not found")
        return parcel

    def current_parcel(self, owner_id: str) -> Parcel | None:
        """The owner's most recently stored parcel, if any."""
        parcels = self._store.list_for_owner(owner_id)
        return parcels[-1] if parcels else None

    def set_ready(self, parcel_id: str, ready: bool, owner_id: str | None = None) -> bool:
        """Opt a parcel in to (or out of) integration. Idempotent.

        Raises:
            ParcelNotFound: Unknown parcel.
            Unauthorized: ``owner_id`` given and not the parcel's owner.
            ParcelNotCompleted: Parcel geometry did not complete.
        """
        parcel = self.get_parcel(parcel_id)
        if owner_id is not None and parcel.owner_id != owner_id:
            raise Unauthorized(f"Parcel {parcel_id!r} belongs to another owner")
        if parcel.status != ParcelStatus.COMPLETED:
            raise ParcelNotCompleted(
                f"Parcel {parcel_id!r} is '{parcel.status}', not completed"
            )
        if parcel.superseded_by is not None and ready:
            raise ParcelNotCompleted(
                f"Parcel {parcel_id!r} was superseded by {parcel.superseded_by!r}"
            )

        if parcel.ready_to_integrate != ready:
            parcel.ready_to_integrate = ready
            parcel.ready_since = datetime.now(timezone.utc) if ready else None
            parcel.updated_at = datetime.now(timezone.utc)
            self._store.save(parcel)
            logger.info("Parcel %s ready_to_integrate=%s", parcel_id, ready)
            self._log_audit(parcel.owner_id, "parcel_ready_changed", parcel_id, {"ready": ready})
        return parcel.ready_to_integrate

    def get_ready(self, parcel_id: str) -> bool:
        return self.get_parcel(parcel_id).ready_to_integrate

    def _supersede(self, owner_id: str, new_parcel_id: str) -> None:
        for old in self._store.list_for_owner(owner_id):
            if old.superseded_by is None and old.parcel_id != new_parcel_id:
                old.superseded_by = new_parcel_id
                old.ready_to_integrate = False
                old.ready_since = None
                old.updated_at = datetime.now(timezone.utc)
                self._store.save(old)

    def _log_audit(self, actor: str, action: str, resource: str, details: dict) -> None:
        if self._audit is None:
            return
        self._audit.record(actor, action, f"parcel:{resource}", details)
