"""Integration API router: negotiation, signing and agreement export."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from landpool.auth.identity import Caller, require_caller
from landpool.core.types import NegotiationStatus, ResponseAction
from landpool.export.models import PartyProfile
from landpool.integration.models import IntegrationNegotiation, IntegrationPeriod

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response models
# ---------------------------------------------------------------------------


class PeriodRequest(BaseModel):
    start: datetime
    end: datetime


class IntegrationCreateRequest(BaseModel):
    """Request body for proposing an integration."""

    requester_parcel_id: str
    target_parcel_id: str
    period: PeriodRequest | None = None


class RespondRequest(BaseModel):
    action: ResponseAction


class SignRequest(BaseModel):
    """Request body for signing.

    ``snapshot_text`` is the agreement text the signer was shown.
    """

    snapshot_text: str
    display_name: str | None = None


class AgreementRequest(BaseModel):
    """Optional display data for the two parties of an agreement."""

    requesting: PartyProfile | None = None
    target: PartyProfile | None = None


# ---------------------------------------------------------------------------
# Helpers to get services from app state
# ---------------------------------------------------------------------------


def _get_negotiation_engine(request: Request):
    engine = getattr(request.app.state, "negotiation_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Negotiation engine not available")
    return engine


def _get_signature_ledger(request: Request):
    ledger = getattr(request.app.state, "signature_ledger", None)
    if ledger is None:
        raise HTTPException(status_code=503, detail="Signature ledger not available")
    return ledger


def _get_agreement_renderer(request: Request):
    renderer = getattr(request.app.state, "agreement_renderer", None)
    if renderer is None:
        raise HTTPException(status_code=503, detail="Agreement renderer not available")
    return renderer


def _default_profile(
    request: Request, negotiation: IntegrationNegotiation, owner_id: str, parcel_id: str
) -> PartyProfile:
    signature = negotiation.signature_for(owner_id)
    display_name = signature.display_name if signature else owner_id
    manager = getattr(request.app.state, "parcel_manager", None)
    parcel = manager.store.get(parcel_id) if manager is not None else None
    if parcel is None:
        return PartyProfile(display_name=display_name)
    return PartyProfile.from_parcel(parcel, display_name)


def _profiles(
    request: Request, negotiation: IntegrationNegotiation, body: AgreementRequest | None
) -> tuple[PartyProfile, PartyProfile]:
    body = body or AgreementRequest()
    requesting = body.requesting or _default_profile(
        request, negotiation, negotiation.requesting_owner, negotiation.requesting_parcel_id
    )
    target = body.target or _default_profile(
        request, negotiation, negotiation.target_owner, negotiation.target_parcel_id
    )
    return requesting, target


def _origin(request: Request) -> dict[str, Any]:
    return {
        "client_host": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/api/integrations")
async def api_request_integration(
    body: IntegrationCreateRequest,
    request: Request,
    caller: Caller = require_caller(),
) -> dict[str, Any]:
    """Propose pooling the caller's parcel with a ready neighbour."""
    engine = _get_negotiation_engine(request)
    period = None
    if body.period is not None:
        period = IntegrationPeriod.between(body.period.start, body.period.end)
    negotiation = engine.request_integration(
        caller.owner_id, body.requester_parcel_id, body.target_parcel_id, period=period
    )
    return negotiation.model_dump(mode="json")


@router.get("/api/integrations")
async def api_list_integrations(
    request: Request,
    status: NegotiationStatus | None = None,
    caller: Caller = require_caller(),
) -> list[dict[str, Any]]:
    """Incoming and outgoing negotiations for the caller, newest first."""
    engine = _get_negotiation_engine(request)
    return [
        n.model_dump(mode="json")
        for n in engine.list_for_owner(caller.owner_id, status=status)
    ]


@router.get("/api/integrations/completed")
async def api_completed_agreements(
    request: Request, caller: Caller = require_caller()
) -> list[dict[str, Any]]:
    engine = _get_negotiation_engine(request)
    return [n.model_dump(mode="json") for n in engine.completed_agreements(caller.owner_id)]


@router.get("/api/integrations/{negotiation_id}")
async def api_get_integration(
    negotiation_id: str, request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    engine = _get_negotiation_engine(request)
    return engine.get(negotiation_id, owner_id=caller.owner_id).model_dump(mode="json")


@router.post("/api/integrations/{negotiation_id}/respond")
async def api_respond(
    negotiation_id: str,
    body: RespondRequest,
    request: Request,
    caller: Caller = require_caller(),
) -> dict[str, Any]:
    """Accept or reject an incoming request."""
    engine = _get_negotiation_engine(request)
    negotiation = engine.respond(negotiation_id, caller.owner_id, body.action)
    return negotiation.model_dump(mode="json")


@router.post("/api/integrations/{negotiation_id}/sign")
async def api_sign(
    negotiation_id: str,
    body: SignRequest,
    request: Request,
    caller: Caller = require_caller(),
) -> dict[str, Any]:
    """Sign an accepted agreement."""
    ledger = _get_signature_ledger(request)
    result = ledger.sign(
        negotiation_id,
        caller.owner_id,
        body.snapshot_text,
        display_name=body.display_name or caller.display_name or None,
        origin=_origin(request),
    )
    return {
        "signed": result.signed,
        "completed": result.completed,
        "message": result.message,
        "signed_at": result.signature.signed_at.isoformat(),
    }


@router.get("/api/integrations/{negotiation_id}/signatures")
async def api_signature_status(
    negotiation_id: str, request: Request, caller: Caller = require_caller()
) -> dict[str, Any]:
    ledger = _get_signature_ledger(request)
    return ledger.signature_status(negotiation_id, caller.owner_id).model_dump(mode="json")


@router.post("/api/integrations/{negotiation_id}/agreement")
async def api_render_agreement(
    negotiation_id: str,
    request: Request,
    body: AgreementRequest | None = None,
    format: str = "text",
    caller: Caller = require_caller(),
):
    """Render the executed agreement as plain text or JSON."""
    engine = _get_negotiation_engine(request)
    renderer = _get_agreement_renderer(request)
    negotiation = engine.get(negotiation_id, owner_id=caller.owner_id)
    requesting, target = _profiles(request, negotiation, body)

    if format == "json":
        return renderer.summary(negotiation, requesting, target).model_dump(mode="json")
    if format != "text":
        raise HTTPException(status_code=400, detail=f"Unsupported format {format!r}")

    text = renderer.render_text(negotiation, requesting, target)
    return PlainTextResponse(
        text,
        headers={
            "Content-Disposition": f'attachment; filename="agreement_{negotiation.id}.txt"'
        },
    )
