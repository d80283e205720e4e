"""Integration negotiation and signature data models."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator

from landpool.core.errors import InvalidPeriod
from landpool.core.types import NegotiationStatus
from landpool.geometry.models import GeoPoint


class IntegrationPeriod(BaseModel):
    """Proposed term of the pooled cultivation."""

    start: datetime
    end: datetime

    @classmethod
    def between(cls, start: datetime, end: datetime) -> IntegrationPeriod:
        """Build a period, raising InvalidPeriod unless it ends after it starts."""
        if end <= start:
            raise InvalidPeriod(f"Integration period must end after it starts ({start} -> {end})")
        return cls(start=start, end=end)

    @model_validator(mode="after")
    def _check_order(self) -> IntegrationPeriod:
        if self.end <= self.start:
            raise ValueError("Integration period must end after it starts")
        return self

    @property
    def months(self) -> int:
        """Term length in 30-day months, rounded up."""
        days = (self.end - self.start).total_seconds() / 86400.0
        return math.ceil(days / 30.0)


class SplitRatio(BaseModel):
    """Percentage split between the two parties."""

    requesting: float
    target: float


class Signature(BaseModel):
    """A hash-based attestation by one party. Not a legal e-signature."""

    owner_id: str
    display_name: str
    content_hash: str
    signed_at: datetime
    origin: dict[str, Any] = Field(default_factory=dict)


class IntegrationNegotiation(BaseModel):
    """One request between two owners to pool their parcels.

    Sizes and ratios are frozen at creation time.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    requesting_owner: str
    target_owner: str
    requesting_parcel_id: str
    target_parcel_id: str
    requesting_anchor: GeoPoint | None = None
    target_anchor: GeoPoint | None = None
    status: NegotiationStatus = NegotiationStatus.PENDING
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    responded_at: datetime | None = None
    period: IntegrationPeriod
    requesting_size: float
    target_size: float
    total_size: float
    contribution_ratio: SplitRatio
    profit_sharing_ratio: SplitRatio
    signatures: list[Signature] = Field(default_factory=list)
    executed_at: datetime | None = None

    @property
    def participants(self) -> tuple[str, str]:
        return self.requesting_owner, self.target_owner

    def is_participant(self, owner_id: str) -> bool:
        return owner_id in self.participants

    def other_party(self, owner_id: str) -> str:
        return self.target_owner if owner_id == self.requesting_owner else self.requesting_owner

    def signature_for(self, owner_id: str) -> Signature | None:
        for signature in self.signatures:
            if signature.owner_id == owner_id:
                return signature
        return None

    @property
    def fully_signed(self) -> bool:
        signers = [s.owner_id for s in self.signatures]
        return all(signers.count(owner) == 1 for owner in self.participants)


class SignResult(BaseModel):
    """Outcome of a signing call."""

    signed: bool
    completed: bool
    signature: Signature

    @property
    def message(self) -> str:
        if self.completed:
            return "Agreement fully executed by both parties"
        return "Agreement signed. Waiting for the other party to sign."


class SignatureStatus(BaseModel):
    """Caller's view of the signing progress."""

    caller_signed: bool
    other_signed: bool
    completed: bool
    signatures: list[dict[str, Any]] = Field(default_factory=list)
