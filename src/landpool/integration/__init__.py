"""Integration negotiation state machine and signature ledger."""

from landpool.integration.ledger import SignatureLedger
from landpool.integration.locks import PairLockRegistry
from landpool.integration.negotiation import NegotiationEngine, split_by_size
from landpool.integration.store import NegotiationStore

__all__ = [
    "NegotiationEngine",
    "NegotiationStore",
    "PairLockRegistry",
    "SignatureLedger",
    "split_by_size",
]
