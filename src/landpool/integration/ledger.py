"""Signature ledger: append-only signatures that gate completion.

Appending a signature, checking whether both parties have now signed and
flipping the negotiation to COMPLETED happen under the pair lock, so two
parties signing at the same moment produce exactly one completion.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from landpool.core.errors import (
    AlreadySigned,
    NegotiationNotFound,
    NotReadyToSign,
    Unauthorized,
)
from landpool.core.types import NegotiationStatus
from landpool.governance.audit import AuditLogger
from landpool.integration.locks import PairLockRegistry
from landpool.integration.models import (
    IntegrationNegotiation,
    Signature,
    SignatureStatus,
    SignResult,
)
from landpool.repositories.protocols import NegotiationRepository

logger = logging.getLogger(__name__)


def content_hash(owner_id: str, snapshot_text: str, signed_at: datetime) -> str:
    """SHA-256 over owner, agreement snapshot and server timestamp."""
    payload = f"{owner_id}{snapshot_text}{signed_at.isoformat()}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


class SignatureLedger:
    """Records signatures on accepted negotiations.

    Args:
        store: Negotiation persistence, shared with the NegotiationEngine.
        locks: Pair lock registry, shared with the NegotiationEngine.
        audit_logger: Optional audit trail.
        clock: Source of the server timestamp; defaults to UTC wall time.
    """

    def __init__(
        self,
        store: NegotiationRepository,
        locks: PairLockRegistry,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._locks = locks
        self._audit = audit_logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def sign(
        self,
        negotiation_id: str,
        owner_id: str,
        snapshot_text: str,
        display_name: str | None = None,
        origin: dict[str, Any] | None = None,
    ) -> SignResult:
        """Append the caller's signature; complete the negotiation if both signed.

        Raises:
            NegotiationNotFound: Unknown id.
            Unauthorized: Caller is not a participant.
            NotReadyToSign: Negotiation is not ACCEPTED.
            AlreadySigned: Caller already signed this negotiation.
        """
        negotiation = self._require(negotiation_id)
        with self._locks.hold(*negotiation.participants):
            negotiation = self._require(negotiation_id)

            if not negotiation.is_participant(owner_id):
                raise Unauthorized(f"Not a participant in negotiation {negotiation_id!r}")
            # A retried submission reports AlreadySigned even after completion.
            if negotiation.signature_for(owner_id) is not None:
                raise AlreadySigned(f"{owner_id!r} already signed negotiation {negotiation_id!r}")
            if negotiation.status != NegotiationStatus.ACCEPTED:
                raise NotReadyToSign(
                    f"Negotiation {negotiation_id!r} is '{negotiation.status}', not accepted"
                )

            signed_at = self._clock()
            signature = Signature(
                owner_id=owner_id,
                display_name=display_name or owner_id,
                content_hash=content_hash(owner_id, snapshot_text, signed_at),
                signed_at=signed_at,
                origin=origin or {},
            )
            negotiation.signatures.append(signature)

            completed = negotiation.fully_signed
            if completed:
                negotiation.status = NegotiationStatus.COMPLETED
                negotiation.executed_at = signed_at
            self._store.save(negotiation)

        logger.info(
            "Negotiation %s signed by %s%s",
            negotiation_id, owner_id, " (completed)" if completed else "",
        )
        self._log_audit(owner_id, "agreement_signed", negotiation, {
            "content_hash": signature.content_hash,
        })
        if completed:
            self._log_audit(owner_id, "integration_completed", negotiation, {})

        return SignResult(signed=True, completed=completed, signature=signature)

    def signature_status(self, negotiation_id: str, owner_id: str) -> SignatureStatus:
        """Caller's view: who has signed and whether the agreement is executed."""
        negotiation = self._require(negotiation_id)
        if not negotiation.is_participant(owner_id):
            raise Unauthorized(f"Not a participant in negotiation {negotiation_id!r}")
        return SignatureStatus(
            caller_signed=negotiation.signature_for(owner_id) is not None,
            other_signed=negotiation.signature_for(negotiation.other_party(owner_id)) is not None,
            completed=negotiation.status == NegotiationStatus.COMPLETED,
            signatures=[
                {"display_name": s.display_name, "signed_at": s.signed_at}
                for s in negotiation.signatures
            ],
        )

    def verify(self, negotiation_id: str, owner_id: str, snapshot_text: str) -> bool:
        """True if the stored hash matches ``snapshot_text`` for this signer."""
        negotiation = self._require(negotiation_id)
        signature = negotiation.signature_for(owner_id)
        if signature is None:
            return False
        expected = content_hash(owner_id, snapshot_text, signature.signed_at)
        return expected == signature.content_hash

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
