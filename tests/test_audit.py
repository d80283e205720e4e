"""Tests for the hash-chained audit logger."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from landpool.core.config import AuditConfig
from landpool.core.types import AuditEvent
from landpool.governance.audit import AuditEntry, AuditLogger


def _make_event(**overrides) -> AuditEvent:
    """Helper to build an AuditEvent with sensible defaults."""
    defaults = {
        "actor": "alice",
        "action": "integration_requested",
        "resource": "integration:neg-001",
    }
    defaults.update(overrides)
    return AuditEvent(**defaults)


@pytest.fixture()
def audit_dir(tmp_path: Path) -> Path:
    d = tmp_path / "audit"
    d.mkdir()
    return d


@pytest.fixture()
def logger(audit_dir: Path) -> AuditLogger:
    return AuditLogger(config=AuditConfig(log_dir=str(audit_dir)))


class TestAuditLogger:
    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        logger = AuditLogger(config=AuditConfig(log_dir=str(tmp_path / "nested" / "audit")))
        logger.record("alice", "parcel_completed", "parcel:p-1")
        assert logger.log_path.exists()

    def test_log_returns_entry_with_hash(self, logger: AuditLogger) -> None:
        entry = logger.log(_make_event())
        assert entry.entry_hash
        assert entry.previous_hash
        assert entry.entry_hash != entry.previous_hash

    def test_record_builds_event(self, logger: AuditLogger) -> None:
        entry = logger.record("bob", "integration_accepted", "integration:n-1", {"status": "accepted"})
        assert entry.event.actor == "bob"
        assert entry.event.details == {"status": "accepted"}

    def test_verify_chain_empty(self, logger: AuditLogger) -> None:
        assert logger.verify_chain() is True

    def test_verify_chain_multiple_entries(self, logger: AuditLogger) -> None:
        for i in range(5):
            logger.log(_make_event(action=f"action_{i}"))
        assert logger.verify_chain() is True

    def test_hash_chain_links_entries(self, logger: AuditLogger) -> None:
        e1 = logger.log(_make_event(action="first"))
        e2 = logger.log(_make_event(action="second"))
        assert e2.previous_hash == e1.entry_hash

    def test_tampered_entry_breaks_chain(self, logger: AuditLogger) -> None:
        logger.log(_make_event(action="agreement_signed"))
        logger.log(_make_event(action="agreement_signed", actor="bob"))
        logger.log(_make_event(action="integration_completed"))
        assert logger.verify_chain() is True

        lines = logger.log_path.read_text().strip().split("\n")
        data = json.loads(lines[1])
        data["event"]["actor"] = "mallory"
        lines[1] = json.dumps(data)
        logger.log_path.write_text("\n".join(lines) + "\n")

        assert logger.verify_chain() is False

    def test_tampered_hash_breaks_chain(self, logger: AuditLogger) -> None:
        logger.log(_make_event(action="a"))
        logger.log(_make_event(action="b"))

        lines = logger.log_path.read_text().strip().split("\n")
        data = json.loads(lines[0])
        data["entry_hash"] = "0" * 64
        lines[0] = json.dumps(data)
        logger.log_path.write_text("\n".join(lines) + "\n")

        assert logger.verify_chain() is False

    def test_query_filters(self, logger: AuditLogger) -> None:
        logger.log(_make_event(actor="alice", action="agreement_signed"))
        logger.log(_make_event(actor="bob", action="agreement_signed"))
        logger.log(_make_event(actor="bob", action="integration_completed", resource="integration:x"))

        assert len(logger.query()) == 3
        assert [e.actor for e in logger.query({"actor": "alice"})] == ["alice"]
        assert len(logger.query({"action": "agreement_signed"})) == 2
        assert len(logger.query({"resource": "integration:x"})) == 1

    def test_query_time_window(self, logger: AuditLogger) -> None:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for day in range(3):
            logger.log(_make_event(timestamp=base + timedelta(days=day)))

        after = logger.query({"after": (base + timedelta(hours=12)).isoformat()})
        assert len(after) == 2
        before = logger.query({"before": "2024-01-02T00:00:00"})
        assert len(before) == 1

    def test_recover_last_hash_on_reopen(self, audit_dir: Path) -> None:
        config = AuditConfig(log_dir=str(audit_dir))
        logger1 = AuditLogger(config=config)
        e1 = logger1.log(_make_event(action="first"))

        logger2 = AuditLogger(config=config)
        assert logger2.last_hash == e1.entry_hash

        e2 = logger2.log(_make_event(action="second"))
        assert e2.previous_hash == e1.entry_hash
        assert logger2.verify_chain() is True

    def test_entry_round_trip(self, logger: AuditLogger) -> None:
        entry = logger.log(_make_event())
        restored = AuditEntry.from_dict(entry.to_dict())
        assert restored.entry_hash == entry.entry_hash
        assert restored.event == entry.event
