"""Identity resolver collaborator and FastAPI dependency.

Session handling lives outside this package; all the core needs is the
caller's owner id (and optionally a display name) for each request.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fastapi import Depends, HTTPException, Request
from pydantic import BaseModel


class Caller(BaseModel):
    """The resolved identity of the current caller."""

    owner_id: str
    display_name: str = ""


@runtime_checkable
class IdentityResolver(Protocol):
    """Protocol for resolving the caller of a request."""

    def resolve(self, request: Request) -> Caller | None: ...


class HeaderIdentityResolver:
    """Reads the owner id from a trusted upstream header.

    Intended to sit behind a gateway that has already authenticated the
    caller and sets the header.
    """

    def __init__(
        self,
        owner_header: str = "X-Owner-Id",
        name_header: str = "X-Owner-Name",
    ) -> None:
        self._owner_header = owner_header
        self._name_header = name_header

    def resolve(self, request: Request) -> Caller | None:
        owner_id = request.headers.get(self._owner_header, "").strip()
        if not owner_id:
            return None
        display_name = request.headers.get(self._name_header, "").strip()
        return Caller(owner_id=owner_id, display_name=display_name or owner_id)


def _current_caller(request: Request) -> Caller:
    resolver = getattr(request.app.state, "identity_resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Identity resolver not available")
    caller = resolver.resolve(request)
    if caller is None:
        raise HTTPException(status_code=401, detail="Caller identity required")
    return caller


def require_caller():
    """FastAPI dependency returning the resolved Caller or failing with 401."""
    return Depends(_current_caller)
