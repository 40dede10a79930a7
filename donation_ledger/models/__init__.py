"""
Domain models.

Raw on-chain events, the derived projection and in-flight donation requests.
"""

from .donation import (
    Aggregates,
    DonationKind,
    DonationOutcome,
    DonationRecord,
    DonationRequest,
    Projection,
    Reconciliation,
    RequestState,
)
from .events import (
    BlockRef,
    EventSource,
    LedgerDonationEvent,
    NativeDonationEvent,
    RawEvent,
)


__all__ = [
    "Aggregates",
    "BlockRef",
    "DonationKind",
    "DonationOutcome",
    "DonationRecord",
    "DonationRequest",
    "EventSource",
    "LedgerDonationEvent",
    "NativeDonationEvent",
    "Projection",
    "RawEvent",
    "Reconciliation",
    "RequestState",
]
