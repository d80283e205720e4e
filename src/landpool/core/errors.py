"""Error taxonomy for landpool operations.

Four categories, each a distinct base class so callers can branch on kind:

- ``ValidationError``: caller-fixable input problems.
- ``StatePreconditionError``: the record is not in a state that allows the
  operation.
- ``AuthorizationError``: the caller is not a participant.
- ``NotFoundError``: the referenced record does not exist.

None of them is transient; nothing in the core retries.
"""

from __future__ import annotations


class LandPoolError(Exception):
    """Base class for all landpool errors."""

    code: str = "landpool_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# -- Validation --


class ValidationError(LandPoolError, ValueError):
    code = "validation_error"


class InsufficientVertices(ValidationError):
    code = "insufficient_vertices"


class InvalidAnchor(ValidationError):
    code = "invalid_anchor"


class SketchTooLarge(ValidationError):
    code = "sketch_too_large"


class InvalidPeriod(ValidationError):
    code = "invalid_period"


class InvalidParcelSize(ValidationError):
    code = "invalid_parcel_size"


# -- State preconditions --


class StatePreconditionError(LandPoolError):
    code = "state_precondition"


class InvalidTransition(StatePreconditionError):
    code = "invalid_transition"


class AlreadyResolved(InvalidTransition):
    code = "already_resolved"


class NotReadyToSign(StatePreconditionError):
    code = "not_ready_to_sign"


class AlreadySigned(StatePreconditionError):
    code = "already_signed"


class TargetNotReady(StatePreconditionError):
    code = "target_not_ready"


class DuplicatePending(StatePreconditionError):
    code = "duplicate_pending"


class SelfRequest(StatePreconditionError):
    code = "self_request"


class ParcelNotCompleted(StatePreconditionError):
    code = "parcel_not_completed"


class NotCompleted(StatePreconditionError):
    code = "not_completed"


# -- Authorization --


class AuthorizationError(LandPoolError):
    code = "authorization_error"


class Unauthorized(AuthorizationError):
    code = "unauthorized"


# -- Not found --


class NotFoundError(LandPoolError, KeyError):
    code = "not_found"


class ParcelNotFound(NotFoundError):
    code = "parcel_not_found"


class NegotiationNotFound(NotFoundError):
    code = "negotiation_not_found"
