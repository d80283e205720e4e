"""Governance module for LandPool.

Provides the immutable, hash-chained audit log.
"""

from landpool.governance.audit import AuditLogger

__all__ = ["AuditLogger"]
