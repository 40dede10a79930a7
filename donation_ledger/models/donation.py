"""
Donation projection and request models.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from types import MappingProxyType

from donation_ledger.utils.exceptions import DonationLedgerError, DonationRejectedError


@dataclass(frozen=True)
class DonationRecord:
    """One donation as shown in the recent donations list."""

    donor: str
    asset_label: str
    human_amount: Decimal
    campaign_name: str
    timestamp: int


@dataclass(frozen=True)
class Aggregates:
    """Totals computed over the full fetched event set."""

    total_native: Decimal = Decimal("0")
    total_ledger_asset: Decimal = Decimal("0")
    per_campaign_total: Mapping[str, Decimal] = field(default_factory=dict)
    per_asset_total: Mapping[str, Decimal] = field(default_factory=dict)
    donation_count: int = 0

    def __post_init__(self) -> None:
        # Installed snapshots are shared with readers; keep the totals read-only
        for name in ("per_campaign_total", "per_asset_total"):
            totals = getattr(self, name)
            if not isinstance(totals, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(totals)))

    @property
    def campaigns_supported(self) -> int:
        """Number of campaigns that received at least one donation."""
        return len(self.per_campaign_total)


@dataclass(frozen=True)
class Reconciliation:
    """Output of one reconciliation pass."""

    records: tuple[DonationRecord, ...]
    aggregates: Aggregates


@dataclass(frozen=True)
class Projection:
    """
    Snapshot of the local donation view.

    Installed wholesale after every successful resync; never mutated.
    """

    records: tuple[DonationRecord, ...] = ()
    aggregates: Aggregates = field(default_factory=Aggregates)
    from_block: int | None = None
    to_block: int | None = None
    synced_at: datetime | None = None

    @property
    def is_synced(self) -> bool:
        return self.synced_at is not None

    @classmethod
    def from_reconciliation(
        cls,
        reconciliation: Reconciliation,
        from_block: int,
        to_block: int,
    ) -> "Projection":
        return cls(
            records=reconciliation.records,
            aggregates=reconciliation.aggregates,
            from_block=from_block,
            to_block=to_block,
            synced_at=datetime.now(UTC),
        )


class DonationKind(StrEnum):
    """What the user is donating."""

    NATIVE = "native"
    TOKEN = "token"


class RequestState(StrEnum):
    """Lifecycle of a donation request."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.SUCCEEDED, RequestState.FAILED)


# CONFIRMING -> SUBMITTING is the token flow moving from approval to donation
_ALLOWED_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.IDLE: frozenset({RequestState.VALIDATING}),
    RequestState.VALIDATING: frozenset({RequestState.SUBMITTING, RequestState.FAILED}),
    RequestState.SUBMITTING: frozenset({RequestState.CONFIRMING, RequestState.FAILED}),
    RequestState.CONFIRMING: frozenset(
        {RequestState.SUBMITTING, RequestState.SUCCEEDED, RequestState.FAILED}
    ),
    RequestState.SUCCEEDED: frozenset(),
    RequestState.FAILED: frozenset(),
}


@dataclass
class DonationRequest:
    """A single user donation in flight."""

    kind: DonationKind
    amount: str
    campaign_name: str
    token_address: str | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: RequestState = RequestState.IDLE
    error: DonationLedgerError | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def advance(self, state: RequestState) -> None:
        """
        Move the request to the next state.

        Raises:
            RuntimeError: If the transition is not part of the lifecycle
        """
        if state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid donation request transition {self.state} -> {state}"
            )
        self.state = state

    def fail(self, error: DonationLedgerError) -> None:
        self.advance(RequestState.FAILED)
        self.error = error


@dataclass
class DonationOutcome:
    """Terminal result of a donation request."""

    request: DonationRequest
    approval_tx_hash: str | None = None
    donation_tx_hash: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.request.state is RequestState.SUCCEEDED

    @property
    def error(self) -> DonationLedgerError | None:
        return self.request.error

    @property
    def residual_allowance(self) -> bool:
        """Approval went through but the donation call did not."""
        return isinstance(self.request.error, DonationRejectedError)
