"""
Formatters utility.

Text rendering of the projection for the command line.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext

from donation_ledger.config.constants import (
    AMOUNT_DISPLAY_PLACES,
    DECIMAL_PRECISION,
    NATIVE_ASSET_LABEL,
)
from donation_ledger.models import Aggregates, DonationRecord, Projection
from donation_ledger.utils.security import mask_address


def format_amount(value: Decimal, places: int = AMOUNT_DISPLAY_PLACES) -> str:
    """
    Format amount with a fixed number of decimal places.

    Examples:
        >>> format_amount(Decimal("1.23456"))
        '1.2346'
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        quantum = Decimal(1).scaleb(-places)
        return f"{value.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def format_timestamp(timestamp: int) -> str:
    """Unix seconds as local date and time."""
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def format_asset(asset_label: str, native_symbol: str = "ETH") -> str:
    """Native currency symbol, or the masked token address."""
    if asset_label == NATIVE_ASSET_LABEL:
        return native_symbol
    return mask_address(asset_label)


def format_record(record: DonationRecord, native_symbol: str = "ETH") -> str:
    """
    One recent donation as a single line.

    Example:
        Clean Water Initiative | 0x1234...abcd | 2.0000 0xA0b8...eB48 | 2024-05-01 12:00:00
    """
    return (
        f"{record.campaign_name} | "
        f"{mask_address(record.donor)} | "
        f"{format_amount(record.human_amount)} {format_asset(record.asset_label, native_symbol)} | "
        f"{format_timestamp(record.timestamp)}"
    )


def format_aggregates(aggregates: Aggregates, native_symbol: str = "ETH") -> list[str]:
    """Totals block: native, token and per-campaign sums."""
    lines = [
        f"{native_symbol} donated: {format_amount(aggregates.total_native)} {native_symbol}",
        f"Token donations: {format_amount(aggregates.total_ledger_asset)} tokens",
        f"Campaigns supported: {aggregates.campaigns_supported}",
    ]
    if not aggregates.per_campaign_total:
        lines.append("No campaign donations yet.")
        return lines

    lines.append("Donations per campaign:")
    for name, total in aggregates.per_campaign_total.items():
        lines.append(f"  {name}: {format_amount(total)}")
    return lines


def format_projection(projection: Projection, native_symbol: str = "ETH") -> str:
    """Full summary: totals followed by the recent donations."""
    lines = format_aggregates(projection.aggregates, native_symbol)

    lines.append("")
    lines.append("Recent donations:")
    if not projection.records:
        lines.append("  No donations yet.")
    for record in projection.records:
        lines.append(f"  {format_record(record, native_symbol)}")

    if projection.from_block is not None:
        lines.append("")
        lines.append(f"Blocks {projection.from_block}-{projection.to_block}")
    return "\n".join(lines)
