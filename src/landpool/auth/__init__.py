"""Caller identity resolution."""

from landpool.auth.identity import Caller, HeaderIdentityResolver, IdentityResolver

__all__ = ["Caller", "HeaderIdentityResolver", "IdentityResolver"]
