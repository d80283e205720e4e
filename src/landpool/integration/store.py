"""In-memory store for integration negotiations."""

from __future__ import annotations

from landpool.core.types import NegotiationStatus
from landpool.integration.models import IntegrationNegotiation


class NegotiationStore:
    """In-memory dict store for negotiations. Records are never removed."""

    def __init__(self) -> None:
        self._negotiations: dict[str, IntegrationNegotiation] = {}

    def save(self, negotiation: IntegrationNegotiation) -> IntegrationNegotiation:
        self._negotiations[negotiation.id] = negotiation
        return negotiation

    def get(self, negotiation_id: str) -> IntegrationNegotiation | None:
        return self._negotiations.get(negotiation_id)

    def list_for_owner(self, owner_id: str) -> list[IntegrationNegotiation]:
        return [
            n for n in self._negotiations.values()
            if owner_id in (n.requesting_owner, n.target_owner)
        ]

    def list_between(self, owner_a: str, owner_b: str) -> list[IntegrationNegotiation]:
        """Negotiations between two owners, in either direction."""
        pair = {owner_a, owner_b}
        return [
            n for n in self._negotiations.values()
            if {n.requesting_owner, n.target_owner} == pair
        ]

    def list_by_status(self, status: NegotiationStatus) -> list[IntegrationNegotiation]:
        return [n for n in self._negotiations.values() if n.status == status]

    def list_all(self) -> list[IntegrationNegotiation]:
        return list(self._negotiations.values())

    @property
    def count(self) -> int:
        return len(self._negotiations)
