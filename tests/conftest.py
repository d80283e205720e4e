"""Shared test fixtures."""

from __future__ import annotations

from datetime import timedelta

import pytest

from landpool.core.config import AuditConfig
from landpool.governance.audit import AuditLogger
from landpool.integration.ledger import SignatureLedger
from landpool.integration.locks import PairLockRegistry
from landpool.integration.negotiation import NegotiationEngine
from landpool.integration.store import NegotiationStore
from landpool.parcels.manager import ParcelManager
from landpool.parcels.store import ParcelStore

from helpers import FIXED_NOW, StepClock, make_parcel


@pytest.fixture()
def audit_logger(tmp_path) -> AuditLogger:
    return AuditLogger(config=AuditConfig(log_dir=str(tmp_path / "audit")))


@pytest.fixture()
def parcel_manager(audit_logger) -> ParcelManager:
    return ParcelManager(store=ParcelStore(), audit_logger=audit_logger)


@pytest.fixture()
def locks() -> PairLockRegistry:
    return PairLockRegistry()


@pytest.fixture()
def negotiation_store() -> NegotiationStore:
    return NegotiationStore()


@pytest.fixture()
def engine(negotiation_store, parcel_manager, locks, audit_logger) -> NegotiationEngine:
    return NegotiationEngine(
        store=negotiation_store,
        parcels=parcel_manager,
        locks=locks,
        audit_logger=audit_logger,
        clock=StepClock(),
    )


@pytest.fixture()
def ledger(negotiation_store, locks, audit_logger) -> SignatureLedger:
    return SignatureLedger(
        store=negotiation_store,
        locks=locks,
        audit_logger=audit_logger,
        clock=StepClock(FIXED_NOW + timedelta(days=1)),
    )


@pytest.fixture()
def accepted(engine, parcel_manager):
    """An ACCEPTED negotiation between alice (3 acres) and bob (7 acres)."""
    alice = make_parcel(parcel_manager, "alice", acres=3.0, survey_id="SY-12/3")
    bob = make_parcel(parcel_manager, "bob", acres=7.0, ready=True, survey_id="SY-14/1")
    negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
    return engine.respond(negotiation.id, "bob", "accept")
