"""
Ledger reconciler.

Merges donation ledger events and native-currency wallet events into one
time-ordered record list and recomputes the donation aggregates.

Reconciliation is a pure function of its inputs: every resync rebuilds the
whole projection from the fetched window, so a missed notification can never
leave the totals permanently out of step with the chain.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal, localcontext

from donation_ledger.config.constants import (
    DECIMAL_PRECISION,
    DEFAULT_TOKEN_DECIMALS,
    GENERAL_CAMPAIGN_NAME,
    NATIVE_ASSET_LABEL,
    NATIVE_DECIMALS,
    RECENT_DONATIONS_LIMIT,
)
from donation_ledger.models import (
    Aggregates,
    DonationRecord,
    LedgerDonationEvent,
    NativeDonationEvent,
    Reconciliation,
)
from donation_ledger.services.campaign_registry import CampaignRegistry


def to_human_amount(amount: int, decimals: int) -> Decimal:
    """Convert an integer amount in smallest units to asset units."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(amount).scaleb(-decimals)


class LedgerReconciler:
    """Builds DonationRecords and Aggregates from raw events."""

    def __init__(
        self,
        registry: CampaignRegistry,
        display_limit: int = RECENT_DONATIONS_LIMIT,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            registry: Campaign registry used to attribute ledger events
            display_limit: Number of most recent records kept for display
        """
        if display_limit <= 0:
            raise ValueError("display_limit must be positive")
        self.registry = registry
        self.display_limit = display_limit

    def reconcile(
        self,
        ledger_events: Sequence[LedgerDonationEvent],
        native_events: Sequence[NativeDonationEvent],
        token_decimals: Mapping[str, int] | None = None,
    ) -> Reconciliation:
        """
        Build the projection contents from both event streams.

        Each stream is taken newest-first (reverse arrival order), ledger
        records are placed before native ones, and the result is stably
        sorted by timestamp descending. Equal timestamps therefore keep
        ledger-before-native and newest-arrival-first order.

        Aggregates cover every event; only the returned records are cut to
        display_limit.

        Args:
            ledger_events: DonationReceived events in arrival order
            native_events: ETHDonation events in arrival order
            token_decimals: Token address -> decimals used to convert ledger
                amounts (lowercase keys; missing tokens use 18)

        Returns:
            Reconciliation with display records and aggregates
        """
        decimals_by_token = {
            address.lower(): decimals
            for address, decimals in (token_decimals or {}).items()
        }

        records: list[DonationRecord] = []
        per_campaign: dict[str, Decimal] = {}
        per_asset: dict[str, Decimal] = {}
        total_ledger = Decimal("0")
        total_native = Decimal("0")

        # Sums of uint256-sized amounts must not round either
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION

            for event in reversed(ledger_events):
                decimals = decimals_by_token.get(event.asset.lower(), DEFAULT_TOKEN_DECIMALS)
                value = to_human_amount(event.amount, decimals)
                campaign_name = self.registry.resolve_name(event.campaign_id)

                total_ledger += value
                per_campaign[campaign_name] = per_campaign.get(campaign_name, Decimal("0")) + value
                per_asset[event.asset] = per_asset.get(event.asset, Decimal("0")) + value

                records.append(
                    DonationRecord(
                        donor=event.donor,
                        asset_label=event.asset,
                        human_amount=value,
                        campaign_name=campaign_name,
                        timestamp=event.timestamp,
                    )
                )

            for event in reversed(native_events):
                value = to_human_amount(event.amount, NATIVE_DECIMALS)

                total_native += value
                per_campaign[GENERAL_CAMPAIGN_NAME] = (
                    per_campaign.get(GENERAL_CAMPAIGN_NAME, Decimal("0")) + value
                )
                per_asset[NATIVE_ASSET_LABEL] = (
                    per_asset.get(NATIVE_ASSET_LABEL, Decimal("0")) + value
                )

                records.append(
                    DonationRecord(
                        donor=event.donor,
                        asset_label=NATIVE_ASSET_LABEL,
                        human_amount=value,
                        campaign_name=GENERAL_CAMPAIGN_NAME,
                        timestamp=event.timestamp,
                    )
                )

        # sorted() is stable
        records = sorted(records, key=lambda record: record.timestamp, reverse=True)

        aggregates = Aggregates(
            total_native=total_native,
            total_ledger_asset=total_ledger,
            per_campaign_total=per_campaign,
            per_asset_total=per_asset,
            donation_count=len(ledger_events) + len(native_events),
        )

        return Reconciliation(
            records=tuple(records[: self.display_limit]),
            aggregates=aggregates,
        )
