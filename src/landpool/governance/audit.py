"""Append-only audit log for parcel and negotiation activity.

Entries are written to a JSONL file. Each entry's SHA-256 hash covers the
previous entry's hash, forming a tamper-evident chain: altering any entry
breaks the chain for every entry after it.
"""

from __future__ import annotations

import hashlib
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from landpool.core.config import AuditConfig
from landpool.core.types import AuditEvent


class AuditEntry:
    """Wrapper around an AuditEvent with chain hash metadata."""

    def __init__(self, event: AuditEvent, previous_hash: str, entry_hash: str) -> None:
        self.event = event
        self.previous_hash = previous_hash
        self.entry_hash = entry_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous_hash": self.previous_hash,
            "entry_hash": self.entry_hash,
            "event": json.loads(self.event.model_dump_json()),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        return cls(
            event=AuditEvent(**data["event"]),
            previous_hash=data["previous_hash"],
            entry_hash=data["entry_hash"],
        )


class AuditLogger:
    """Append-only, hash-chained audit logger.

    Args:
        config: AuditConfig instance. Defaults to AuditConfig() which reads
            from environment variables.
        log_file: Override the log file name (default: ``audit.jsonl``).
    """

    def __init__(
        self,
        config: AuditConfig | None = None,
        log_file: str = "audit.jsonl",
    ) -> None:
        self._config = config or AuditConfig()
        self._log_dir = Path(self._config.log_dir)
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._log_path = self._log_dir / log_file
        self._write_lock = threading.Lock()
        self._last_hash: str = self._compute_genesis_hash()

        if self._log_path.exists():
            self._recover_last_hash()

    @staticmethod
    def _compute_genesis_hash() -> str:
        return hashlib.sha256(b"landpool-genesis").hexdigest()

    def _recover_last_hash(self) -> None:
        """Read the existing log file and recover the last entry's hash."""
        last_line: str | None = None
        with open(self._log_path) as fh:
            for line in fh:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if last_line:
            self._last_hash = json.loads(last_line)["entry_hash"]

    def _compute_hash(self, previous_hash: str, entry_json: str) -> str:
        payload = (previous_hash + entry_json).encode("utf-8")
        return hashlib.new(self._config.hash_algorithm, payload).hexdigest()

    def _iter_entries(self):
        if not self._log_path.exists():
            return
        with open(self._log_path) as fh:
            for line in fh:
                stripped = line.strip()
                if stripped:
                    yield json.loads(stripped)

    def log(self, event: AuditEvent) -> AuditEntry:
        """Append an audit event to the log and return it with its hashes."""
        event_json = event.model_dump_json()
        with self._write_lock:
            entry_hash = self._compute_hash(self._last_hash, event_json)
            entry = AuditEntry(
                event=event,
                previous_hash=self._last_hash,
                entry_hash=entry_hash,
            )
            with open(self._log_path, "a") as fh:
                fh.write(json.dumps(entry.to_dict()) + "\n")
            self._last_hash = entry_hash
        return entry

    def record(
        self, actor: str, action: str, resource: str, details: dict[str, Any] | None = None
    ) -> AuditEntry:
        """Build an AuditEvent from its parts and log it."""
        return self.log(
            AuditEvent(actor=actor, action=action, resource=resource, details=details or {})
        )

    def verify_chain(self) -> bool:
        """Recompute every hash in the file; False if any entry was altered."""
        previous_hash = self._compute_genesis_hash()
        for data in self._iter_entries():
            if data["previous_hash"] != previous_hash:
                return False
            event_json = AuditEvent(**data["event"]).model_dump_json()
            if data["entry_hash"] != self._compute_hash(previous_hash, event_json):
                return False
            previous_hash = data["entry_hash"]
        return True

    def query(self, filters: dict[str, Any] | None = None) -> list[AuditEvent]:
        """Query audit events with optional filters.

        Supported filter keys:
            - ``actor``: exact match on actor field
            - ``action``: exact match on action field
            - ``resource``: exact match on resource field
            - ``after``: ISO datetime string; only events after this time
            - ``before``: ISO datetime string; only events before this time
        """
        filters = filters or {}

        after_dt = _parse_bound(filters.get("after"))
        before_dt = _parse_bound(filters.get("before"))

        results: list[AuditEvent] = []
        for data in self._iter_entries():
            event = AuditEvent(**data["event"])
            if "actor" in filters and event.actor != filters["actor"]:
                continue
            if "action" in filters and event.action != filters["action"]:
                continue
            if "resource" in filters and event.resource != filters["resource"]:
                continue
            if after_dt and event.timestamp <= after_dt:
                continue
            if before_dt and event.timestamp >= before_dt:
                continue
            results.append(event)
        return results

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def last_hash(self) -> str:
        return self._last_hash


def _parse_bound(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
