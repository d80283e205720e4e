"""Integration negotiation state machine.

    PENDING --accept--> ACCEPTED --both signatures--> COMPLETED
    PENDING --reject--> REJECTED

REJECTED and COMPLETED are terminal. Nothing ever returns to PENDING, and
ACCEPTED -> COMPLETED happens only in the signature ledger.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from landpool.core.config import IntegrationConfig
from landpool.core.errors import (
    AlreadyResolved,
    DuplicatePending,
    InvalidParcelSize,
    InvalidTransition,
    NegotiationNotFound,
    ParcelNotCompleted,
    SelfRequest,
    TargetNotReady,
    Unauthorized,
    ValidationError,
)
from landpool.core.types import NegotiationStatus, ParcelStatus, ResponseAction
from landpool.governance.audit import AuditLogger
from landpool.integration.locks import PairLockRegistry
from landpool.integration.models import IntegrationNegotiation, IntegrationPeriod, SplitRatio
from landpool.parcels.manager import ParcelManager
from landpool.repositories.protocols import NegotiationRepository

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = (NegotiationStatus.PENDING, NegotiationStatus.ACCEPTED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def split_by_size(requesting_size: float, target_size: float) -> SplitRatio:
    """Size-proportional percentages, one decimal, summing to exactly 100.

    The smaller share is rounded; the larger share takes the remainder. On a
    tie the requesting side is rounded and the target takes the remainder.
    """
    total = requesting_size + target_size
    if total <= 0:
        raise InvalidParcelSize("Combined parcel size must be positive")

    requesting_raw = 100.0 * requesting_size / total
    target_raw = 100.0 * target_size / total
    if requesting_raw > target_raw:
        target_pct = round(target_raw, 1)
        return SplitRatio(requesting=100.0 - target_pct, target=target_pct)
    requesting_pct = round(requesting_raw, 1)
    return SplitRatio(requesting=requesting_pct, target=100.0 - requesting_pct)


class NegotiationEngine:
    """Creates negotiations and applies the target owner's response.

    Args:
        store: Negotiation persistence.
        parcels: Parcel manager used to resolve both parcels at creation.
        locks: Pair lock registry, shared with the SignatureLedger.
        config: Integration settings (default term length).
        audit_logger: Optional audit trail.
        clock: Source of "now"; defaults to UTC wall time.
    """

    def __init__(
        self,
        store: NegotiationRepository,
        parcels: ParcelManager,
        locks: PairLockRegistry | None = None,
        config: IntegrationConfig | None = None,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._parcels = parcels
        self._locks = locks or PairLockRegistry()
        self._config = config or IntegrationConfig()
        self._audit = audit_logger
        self._clock = clock or _utcnow

    @property
    def store(self) -> NegotiationRepository:
        return self._store

    @property
    def locks(self) -> PairLockRegistry:
        return self._locks

    def request_integration(
        self,
        requester_owner_id: str,
        requester_parcel_id: str,
        target_parcel_id: str,
        period: IntegrationPeriod | None = None,
    ) -> IntegrationNegotiation:
        """Propose pooling the requester's parcel with a ready neighbour.

        Raises:
            ParcelNotFound: Either parcel is unknown.
            Unauthorized: The requester does not own ``requester_parcel_id``.
            SelfRequest: Both parcels belong to the requester.
            ParcelNotCompleted: The requester's parcel has no geometry or was
                superseded.
            TargetNotReady: The target parcel is not opted in.
            DuplicatePending: An active negotiation exists for this pair.
        """
        requesting = self._parcels.get_parcel(requester_parcel_id)
        target = self._parcels.get_parcel(target_parcel_id)

        if requesting.owner_id != requester_owner_id:
            raise Unauthorized(f"Parcel {requester_parcel_id!r} belongs to another owner")
        if requesting.parcel_id == target.parcel_id or target.owner_id == requester_owner_id:
            raise SelfRequest("Cannot request integration with your own parcel")
        if requesting.status != ParcelStatus.COMPLETED:
            raise ParcelNotCompleted(
                f"Parcel {requester_parcel_id!r} is '{requesting.status}', not completed"
            )
        if requesting.superseded_by is not None:
            raise ParcelNotCompleted(
                f"Parcel {requester_parcel_id!r} was superseded by {requesting.superseded_by!r}"
            )
        if not target.ready_to_integrate or target.status != ParcelStatus.COMPLETED:
            raise TargetNotReady(f"Parcel {target_parcel_id!r} is not ready to integrate")

        requesting_size = requesting.size_acres
        target_size = target.size_acres
        contribution = split_by_size(requesting_size, target_size)

        now = self._clock()
        if period is None:
            period = IntegrationPeriod(
                start=now, end=now + timedelta(days=self._config.default_term_days)
            )

        with self._locks.hold(requesting.owner_id, target.owner_id):
            active = [
                n for n in self._store.list_between(requesting.owner_id, target.owner_id)
                if n.status in _ACTIVE_STATUSES
            ]
            if active:
                logger.warning(
                    "Duplicate integration request %s -> %s (existing %s)",
                    requesting.owner_id, target.owner_id, active[0].id,
                )
                raise DuplicatePending(
                    f"Negotiation {active[0].id!r} between these owners is still "
                    f"'{active[0].status}'"
                )

            negotiation = IntegrationNegotiation(
                requesting_owner=requesting.owner_id,
                target_owner=target.owner_id,
                requesting_parcel_id=requesting.parcel_id,
                target_parcel_id=target.parcel_id,
                requesting_anchor=requesting.anchor,
                target_anchor=target.anchor,
                requested_at=now,
                period=period,
                requesting_size=requesting_size,
                target_size=target_size,
                total_size=requesting_size + target_size,
                contribution_ratio=contribution,
                profit_sharing_ratio=contribution.model_copy(),
            )
            self._store.save(negotiation)

        logger.info(
            "Integration %s requested: %s -> %s (%.2f + %.2f acres)",
            negotiation.id, negotiation.requesting_owner, negotiation.target_owner,
            requesting_size, target_size,
        )
        self._log_audit(requester_owner_id, "integration_requested", negotiation, {
            "target_owner": negotiation.target_owner,
            "contribution_ratio": contribution.model_dump(),
        })
        return negotiation

    def respond(
        self,
        negotiation_id: str,
        owner_id: str,
        action: ResponseAction | str,
    ) -> IntegrationNegotiation:
        """Apply the target owner's accept or reject.

        Accepting does not complete the negotiation; both parties must sign.

        Raises:
            NegotiationNotFound: Unknown id.
            AlreadyResolved: Negotiation is REJECTED or COMPLETED.
            Unauthorized: Caller is not the target owner.
            InvalidTransition: Negotiation was already accepted.
        """
        try:
            action = ResponseAction(action)
        except ValueError as exc:
            raise ValidationError(f"Unknown response action {action!r}") from exc

        negotiation = self._require(negotiation_id)
        with self._locks.hold(*negotiation.participants):
            negotiation = self._require(negotiation_id)

            if negotiation.status.is_terminal:
                raise AlreadyResolved(
                    f"Negotiation {negotiation_id!r} is already '{negotiation.status}'"
                )
            if not negotiation.is_participant(owner_id):
                raise Unauthorized(f"Not a participant in negotiation {negotiation_id!r}")
            if owner_id != negotiation.target_owner:
                raise Unauthorized("Only the target owner may respond to a request")
            if negotiation.status != NegotiationStatus.PENDING:
                raise InvalidTransition(
                    f"Negotiation {negotiation_id!r} is '{negotiation.status}', not pending"
                )

            negotiation.status = (
                NegotiationStatus.ACCEPTED
                if action == ResponseAction.ACCEPT
                else NegotiationStatus.REJECTED
            )
            negotiation.responded_at = self._clock()
            self._store.save(negotiation)

        logger.info("Integration %s %s by %s", negotiation_id, negotiation.status, owner_id)
        self._log_audit(owner_id, f"integration_{negotiation.status.value}", negotiation, {})
        return negotiation

    def get(self, negotiation_id: str, owner_id: str | None = None) -> IntegrationNegotiation:
        """Fetch a negotiation; when ``owner_id`` is given it must be a participant."""
        negotiation = self._require(negotiation_id)
        if owner_id is not None and not negotiation.is_participant(owner_id):
            raise Unauthorized(f"Not a participant in negotiation {negotiation_id!r}")
        return negotiation

    def list_for_owner(
        self, owner_id: str, status: NegotiationStatus | None = None
    ) -> list[IntegrationNegotiation]:
        """Incoming and outgoing negotiations, newest request first."""
        negotiations = [
            n for n in self._store.list_for_owner(owner_id)
            if status is None or n.status == status
        ]
        return sorted(negotiations, key=lambda n: n.requested_at, reverse=True)

    def completed_agreements(self, owner_id: str) -> list[IntegrationNegotiation]:
        """Fully executed negotiations, most recently executed first."""
        completed = self.list_for_owner(owner_id, NegotiationStatus.COMPLETED)
        return sorted(
            completed,
            key=lambda n: n.executed_at or n.requested_at,
            reverse=True,
        )

    def _require(self, negotiation_id: str) -> IntegrationNegotiation:
        negotiation = self._store.get(negotiation_id)
        if negotiation is None:
            raise NegotiationNotFound(f"Negotiation {negotiation_id!r} not found")
        return negotiation

    def _log_audit(
        self,
        actor: str,
        action: str,
        negotiation: IntegrationNegotiation,
        details: dict[str, Any],
    ) -> None:
        if self._audit is None:
            return
        self._audit.record(actor, action, f"integration:{negotiation.id}", {
            "status": negotiation.status.value,
            **details,
        })
