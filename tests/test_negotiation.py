"""Tests for the integration negotiation state machine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from landpool.core.config import IntegrationConfig
from landpool.core.errors import (
    AlreadyResolved,
    DuplicatePending,
    InvalidParcelSize,
    InvalidPeriod,
    InvalidTransition,
    NegotiationNotFound,
    ParcelNotCompleted,
    ParcelNotFound,
    SelfRequest,
    TargetNotReady,
    Unauthorized,
    ValidationError,
)
from landpool.core.types import NegotiationStatus
from landpool.integration.models import IntegrationPeriod
from landpool.integration.negotiation import NegotiationEngine, split_by_size

from helpers import BANGALORE, FIXED_NOW, StepClock, make_parcel


@pytest.fixture()
def pair(parcel_manager):
    """alice (3 acres, not ready) and bob (7 acres, ready)."""
    alice = make_parcel(parcel_manager, "alice", acres=3.0)
    bob = make_parcel(parcel_manager, "bob", acres=7.0, ready=True)
    return alice, bob


# ---------------------------------------------------------------------------
# Ratio split
# ---------------------------------------------------------------------------


class TestSplitBySize:
    def test_three_seven(self):
        split = split_by_size(3.0, 7.0)
        assert split.requesting == 30.0
        assert split.target == 70.0

    @pytest.mark.parametrize(
        "requesting,target",
        [(1.0, 2.0), (2.0, 1.0), (1.0, 1.0), (0.37, 5.2), (13.3, 0.01), (1.0, 6.0), (0.0, 4.0)],
    )
    def test_sums_to_exactly_100(self, requesting, target):
        split = split_by_size(requesting, target)
        assert split.requesting + split.target == 100.0

    def test_thirds(self):
        split = split_by_size(1.0, 2.0)
        assert split.requesting == 33.3
        assert split.target == pytest.approx(66.7)

    def test_larger_side_takes_remainder(self):
        split = split_by_size(2.0, 1.0)
        assert split.target == 33.3
        assert split.requesting == pytest.approx(66.7)

    def test_zero_total(self):
        with pytest.raises(InvalidParcelSize):
            split_by_size(0.0, 0.0)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestRequestIntegration:
    def test_creates_pending(self, engine, pair):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert negotiation.status == NegotiationStatus.PENDING
        assert negotiation.requesting_owner == "alice"
        assert negotiation.target_owner == "bob"
        assert negotiation.requesting_size == 3.0
        assert negotiation.target_size == 7.0
        assert negotiation.total_size == 10.0
        assert negotiation.contribution_ratio.requesting == 30.0
        assert negotiation.contribution_ratio.target == 70.0
        assert negotiation.profit_sharing_ratio == negotiation.contribution_ratio
        assert negotiation.requesting_anchor.latitude == BANGALORE[0]
        assert engine.store.get(negotiation.id) is negotiation

    def test_default_period(self, engine, pair):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert negotiation.requested_at == FIXED_NOW
        assert negotiation.period.start == FIXED_NOW
        assert negotiation.period.end == FIXED_NOW + timedelta(days=365)
        assert negotiation.period.months == 13

    def test_configured_default_term(self, negotiation_store, parcel_manager, pair):
        alice, bob = pair
        engine = NegotiationEngine(
            negotiation_store,
            parcel_manager,
            config=IntegrationConfig(default_term_days=180),
            clock=StepClock(),
        )
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert negotiation.period.months == 6

    def test_explicit_period(self, engine, pair):
        alice, bob = pair
        period = IntegrationPeriod.between(FIXED_NOW, FIXED_NOW + timedelta(days=90))
        negotiation = engine.request_integration(
            "alice", alice.parcel_id, bob.parcel_id, period=period
        )
        assert negotiation.period.months == 3

    def test_sizes_frozen_at_creation(self, engine, parcel_manager, pair):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        alice.declared.size_acres = 50.0
        assert negotiation.requesting_size == 3.0
        assert negotiation.contribution_ratio.requesting == 30.0

    def test_superseded_requesting_parcel(self, engine, parcel_manager, pair):
        alice, bob = pair
        make_parcel(parcel_manager, "alice", acres=9.0)
        assert alice.superseded_by is not None
        with pytest.raises(ParcelNotCompleted):
            engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert engine.store.count == 0

    def test_target_not_ready(self, engine, parcel_manager, pair):
        alice, bob = pair
        parcel_manager.set_ready(bob.parcel_id, False)
        with pytest.raises(TargetNotReady):
            engine.request_integration("alice", alice.parcel_id, bob.parcel_id)

    def test_self_request_same_parcel(self, engine, pair):
        alice, _ = pair
        with pytest.raises(SelfRequest):
            engine.request_integration("alice", alice.parcel_id, alice.parcel_id)

    def test_self_request_same_owner(self, engine, parcel_manager):
        parcel = make_parcel(parcel_manager, "alice")
        # Two parcels held by the same owner.
        other = parcel_manager.store.save(parcel.model_copy(update={"parcel_id": "second"}))
        other.ready_to_integrate = True
        with pytest.raises(SelfRequest):
            engine.request_integration("alice", parcel.parcel_id, "second")

    def test_requester_must_own_parcel(self, engine, pair):
        alice, bob = pair
        with pytest.raises(Unauthorized):
            engine.request_integration("mallory", alice.parcel_id, bob.parcel_id)

    def test_unknown_parcel(self, engine, pair):
        alice, _ = pair
        with pytest.raises(ParcelNotFound):
            engine.request_integration("alice", alice.parcel_id, "missing")

    def test_requesting_parcel_failed(self, engine, parcel_manager, pair):
        _, bob = pair
        failed = parcel_manager.compute_and_store("carol", [(0, 0)], BANGALORE)
        with pytest.raises(ParcelNotCompleted):
            engine.request_integration("carol", failed.parcel_id, bob.parcel_id)

    def test_duplicate_pending(self, engine, pair):
        alice, bob = pair
        engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        with pytest.raises(DuplicatePending):
            engine.request_integration("alice", alice.parcel_id, bob.parcel_id)

    def test_duplicate_in_reverse_direction(self, engine, parcel_manager, pair):
        alice, bob = pair
        engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        parcel_manager.set_ready(alice.parcel_id, True)
        with pytest.raises(DuplicatePending):
            engine.request_integration("bob", bob.parcel_id, alice.parcel_id)

    def test_duplicate_while_accepted(self, engine, pair):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        engine.respond(negotiation.id, "bob", "accept")
        with pytest.raises(DuplicatePending):
            engine.request_integration("alice", alice.parcel_id, bob.parcel_id)

    def test_new_request_after_rejection(self, engine, pair):
        alice, bob = pair
        first = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        engine.respond(first.id, "bob", "reject")
        second = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert second.id != first.id
        assert second.status == NegotiationStatus.PENDING

    def test_audit_event(self, engine, pair, audit_logger):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        events = audit_logger.query({"resource": f"integration:{negotiation.id}"})
        assert events[0].action == "integration_requested"
        assert events[0].details["contribution_ratio"] == {"requesting": 30.0, "target": 70.0}


class TestIntegrationPeriod:
    def test_end_before_start(self):
        with pytest.raises(InvalidPeriod):
            IntegrationPeriod.between(FIXED_NOW, FIXED_NOW - timedelta(days=1))

    def test_zero_length(self):
        with pytest.raises(InvalidPeriod):
            IntegrationPeriod.between(FIXED_NOW, FIXED_NOW)

    def test_model_validation(self):
        with pytest.raises(ValueError):
            IntegrationPeriod(start=FIXED_NOW, end=FIXED_NOW)

    def test_months_round_up(self):
        period = IntegrationPeriod.between(FIXED_NOW, FIXED_NOW + timedelta(days=31))
        assert period.months == 2


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class TestRespond:
    @pytest.fixture()
    def pending(self, engine, pair):
        alice, bob = pair
        return engine.request_integration("alice", alice.parcel_id, bob.parcel_id)

    def test_accept(self, engine, pending):
        negotiation = engine.respond(pending.id, "bob", "accept")
        assert negotiation.status == NegotiationStatus.ACCEPTED
        assert negotiation.responded_at is not None
        assert negotiation.executed_at is None

    def test_reject(self, engine, pending):
        negotiation = engine.respond(pending.id, "bob", "reject")
        assert negotiation.status == NegotiationStatus.REJECTED

    def test_requester_cannot_respond(self, engine, pending):
        with pytest.raises(Unauthorized):
            engine.respond(pending.id, "alice", "accept")

    def test_outsider_cannot_respond(self, engine, pending):
        with pytest.raises(Unauthorized):
            engine.respond(pending.id, "mallory", "accept")

    def test_accept_twice(self, engine, pending):
        engine.respond(pending.id, "bob", "accept")
        with pytest.raises(InvalidTransition):
            engine.respond(pending.id, "bob", "accept")

    @pytest.mark.parametrize("caller", ["alice", "bob", "mallory"])
    def test_rejected_is_resolved_for_any_caller(self, engine, pending, caller):
        engine.respond(pending.id, "bob", "reject")
        with pytest.raises(AlreadyResolved):
            engine.respond(pending.id, caller, "accept")

    @pytest.mark.parametrize("caller", ["alice", "bob", "mallory"])
    def test_completed_is_resolved_for_any_caller(self, engine, ledger, accepted, caller):
        ledger.sign(accepted.id, "alice", "terms")
        ledger.sign(accepted.id, "bob", "terms")
        assert accepted.status == NegotiationStatus.COMPLETED
        with pytest.raises(AlreadyResolved):
            engine.respond(accepted.id, caller, "reject")
        assert accepted.status == NegotiationStatus.COMPLETED

    def test_already_resolved_is_invalid_transition(self):
        assert issubclass(AlreadyResolved, InvalidTransition)

    def test_unknown_action(self, engine, pending):
        with pytest.raises(ValidationError):
            engine.respond(pending.id, "bob", "maybe")

    def test_unknown_negotiation(self, engine):
        with pytest.raises(NegotiationNotFound):
            engine.respond("missing", "bob", "accept")

    def test_audit_event(self, engine, pending, audit_logger):
        engine.respond(pending.id, "bob", "reject")
        events = audit_logger.query({"action": "integration_rejected"})
        assert len(events) == 1
        assert events[0].actor == "bob"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_requires_participant(self, engine, pair):
        alice, bob = pair
        negotiation = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        assert engine.get(negotiation.id, owner_id="bob") is negotiation
        with pytest.raises(Unauthorized):
            engine.get(negotiation.id, owner_id="mallory")

    def test_list_for_owner_newest_first(self, engine, parcel_manager, pair):
        alice, bob = pair
        carol = make_parcel(parcel_manager, "carol", acres=1.0, ready=True)
        first = engine.request_integration("alice", alice.parcel_id, bob.parcel_id)
        second = engine.request_integration("alice", alice.parcel_id, carol.parcel_id)

        assert engine.list_for_owner("alice") == [second, first]
        assert engine.list_for_owner("bob") == [first]
        assert engine.list_for_owner("carol", NegotiationStatus.ACCEPTED) == []

    def test_completed_agreements_only_completed(self, engine, accepted):
        assert engine.completed_agreements("alice") == []
