"""
Raw donation events.

Decoded logs from the two on-chain sources: the donation ledger contract
(`DonationReceived`) and the charity wallet (`ETHDonation`).
"""

from dataclasses import dataclass
from enum import StrEnum


class EventSource(StrEnum):
    """On-chain event source."""

    LEDGER = "ledger"
    NATIVE = "native"

    @property
    def event_name(self) -> str:
        """ABI name of the event emitted by this source."""
        if self is EventSource.LEDGER:
            return "DonationReceived"
        return "ETHDonation"


@dataclass(frozen=True)
class BlockRef:
    """Position of a log in the chain."""

    block_number: int
    tx_hash: str = ""
    log_index: int = 0


@dataclass(frozen=True)
class LedgerDonationEvent:
    """Multi-asset donation recorded by the donation ledger contract."""

    donor: str
    asset: str
    amount: int
    campaign_id: int
    timestamp: int
    block_ref: BlockRef

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Donation amount cannot be negative: {self.amount}")


@dataclass(frozen=True)
class NativeDonationEvent:
    """Native-currency transfer received by the charity wallet."""

    donor: str
    amount: int
    timestamp: int
    block_ref: BlockRef

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Donation amount cannot be negative: {self.amount}")


RawEvent = LedgerDonationEvent | NativeDonationEvent
