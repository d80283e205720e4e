"""FastAPI application for the land pooling service.

Exposes parcel capture, neighbour search, integration negotiation,
signing and agreement export over REST.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from landpool.auth.identity import HeaderIdentityResolver, IdentityResolver
from landpool.core.config import Settings
from landpool.core.errors import (
    AuthorizationError,
    LandPoolError,
    NotFoundError,
    StatePreconditionError,
    ValidationError,
)
from landpool.core.types import HealthStatus
from landpool.export.renderer import AgreementRenderer
from landpool.geometry.engine import GeometryEngine
from landpool.governance.audit import AuditLogger
from landpool.integration.ledger import SignatureLedger
from landpool.integration.locks import PairLockRegistry
from landpool.integration.negotiation import NegotiationEngine
from landpool.integration.store import NegotiationStore
from landpool.neighbors.finder import NeighborFinder
from landpool.parcels.manager import ParcelManager
from landpool.parcels.store import ParcelStore
from landpool.web.integration_router import router as integration_router
from landpool.web.parcel_router import router as parcel_router

logger = logging.getLogger(__name__)


def status_for_error(exc: LandPoolError) -> int:
    """HTTP status code for a landpool error category."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, StatePreconditionError):
        return 409
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    return 500


def create_app(
    settings: Settings | None = None,
    audit_logger: AuditLogger | None = None,
    identity_resolver: IdentityResolver | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with their own stores.

    Args:
        settings: Application settings. Defaults to Settings().
        audit_logger: Optional pre-built AuditLogger. When omitted one is
            created under ``settings.audit.log_dir``.
        identity_resolver: Resolves the caller for each request. Defaults to
            the ``X-Owner-Id`` header.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.getLogger("landpool").setLevel(settings.log_level.upper())

    app = FastAPI(
        title="LandPool",
        description="Parcel geometry and land integration agreements",
        version="0.1.0",
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if audit_logger is None:
        audit_logger = AuditLogger(config=settings.audit)

    geometry_engine = GeometryEngine(config=settings.geometry)
    parcel_store = ParcelStore()
    parcel_manager = ParcelManager(
        store=parcel_store,
        geometry_engine=geometry_engine,
        audit_logger=audit_logger,
    )
    neighbor_finder = NeighborFinder(
        store=parcel_store,
        config=settings.neighbor,
        geometry_engine=geometry_engine,
    )

    negotiation_store = NegotiationStore()
    pair_locks = PairLockRegistry()
    negotiation_engine = NegotiationEngine(
        store=negotiation_store,
        parcels=parcel_manager,
        locks=pair_locks,
        config=settings.integration,
        audit_logger=audit_logger,
    )
    signature_ledger = SignatureLedger(
        store=negotiation_store,
        locks=pair_locks,
        audit_logger=audit_logger,
    )
    agreement_renderer = AgreementRenderer(config=settings.export)

    app.state.settings = settings
    app.state.audit_logger = audit_logger
    app.state.identity_resolver = identity_resolver or HeaderIdentityResolver()
    app.state.geometry_engine = geometry_engine
    app.state.parcel_store = parcel_store
    app.state.parcel_manager = parcel_manager
    app.state.neighbor_finder = neighbor_finder
    app.state.negotiation_store = negotiation_store
    app.state.negotiation_engine = negotiation_engine
    app.state.signature_ledger = signature_ledger
    app.state.agreement_renderer = agreement_renderer

    @app.exception_handler(LandPoolError)
    async def handle_landpool_error(request: Request, exc: LandPoolError) -> JSONResponse:
        status_code = status_for_error(exc)
        if status_code >= 500:
            logger.error("Unhandled %s on %s: %s", exc.code, request.url.path, exc)
        else:
            logger.warning(
                "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc
            )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    app.include_router(parcel_router)
    app.include_router(integration_router)

    @app.get("/api/health")
    async def health() -> dict:
        """Health check endpoint."""
        status = HealthStatus(
            service="landpool",
            healthy=True,
            details={
                "environment": settings.environment,
                "parcels": parcel_store.count,
                "negotiations": negotiation_store.count,
                "audit_chain_valid": audit_logger.verify_chain(),
            },
        )
        return status.model_dump()

    return app
