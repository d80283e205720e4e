"""Protocol definitions for the persistence collaborator.

Each protocol mirrors the public methods of the corresponding in-memory
store, so a durable backend can be swapped in without touching the
engines.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from landpool.core.types import AuditEvent, NegotiationStatus

if TYPE_CHECKING:
    from landpool.governance.audit import AuditEntry
    from landpool.integration.models import IntegrationNegotiation
    from landpool.parcels.models import Parcel


@runtime_checkable
class ParcelRepository(Protocol):
    """Protocol for parcel storage."""

    def save(self, parcel: Parcel) -> Parcel: ...

    def get(self, parcel_id: str) -> Parcel | None: ...

    def list_for_owner(self, owner_id: str) -> list[Parcel]: ...

    def list_ready(self) -> list[Parcel]: ...

    def list_all(self) -> list[Parcel]: ...

    @property
    def count(self) -> int: ...


@runtime_checkable
class NegotiationRepository(Protocol):
    """Protocol for negotiation storage.

    Implementations must serialise writes for one owner pair; the engines
    do this through PairLockRegistry, a database would use a row lock or a
    unique constraint on active pairs.
    """

    def save(self, negotiation: IntegrationNegotiation) -> IntegrationNegotiation: ...

    def get(self, negotiation_id: str) -> IntegrationNegotiation | None: ...

    def list_for_owner(self, owner_id: str) -> list[IntegrationNegotiation]: ...

    def list_between(self, owner_a: str, owner_b: str) -> list[IntegrationNegotiation]: ...

    def list_by_status(self, status: NegotiationStatus) -> list[IntegrationNegotiation]: ...

    def list_all(self) -> list[IntegrationNegotiation]: ...

    @property
    def count(self) -> int: ...


@runtime_checkable
class AuditRepository(Protocol):
    """Protocol for audit logging."""

    def log(self, event: AuditEvent) -> AuditEntry: ...

    def verify_chain(self) -> bool: ...

    def query(self, filters: dict[str, Any] | None = None) -> list[AuditEvent]: ...
