"""Core type definitions shared across all landpool modules."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ParcelStatus(StrEnum):
    """Processing status of a parcel record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class NegotiationStatus(StrEnum):
    """Status of an integration negotiation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (NegotiationStatus.REJECTED, NegotiationStatus.COMPLETED)


class ResponseAction(StrEnum):
    """Target owner's answer to an integration request."""

    ACCEPT = "accept"
    REJECT = "reject"


class SketchUnit(StrEnum):
    """Unit of the hand-drawn sketch coordinates."""

    METERS = "meters"
    FEET = "feet"

    @property
    def meters_per_unit(self) -> float:
        return 0.3048 if self is SketchUnit.FEET else 1.0


class AuditEvent(BaseModel):
    """Immutable audit log entry."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    actor: str
    action: str
    resource: str
    details: dict[str, Any] = Field(default_factory=dict)


class HealthStatus(BaseModel):
    """Health check response for any service."""

    service: str
    healthy: bool
    details: dict[str, Any] = Field(default_factory=dict)
