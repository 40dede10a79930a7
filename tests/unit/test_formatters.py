"""
Unit tests for projection formatting.
"""

from decimal import Decimal

from donation_ledger.models import Aggregates, DonationRecord, Projection
from donation_ledger.utils.formatters import (
    format_aggregates,
    format_amount,
    format_asset,
    format_projection,
    format_record,
)
from donation_ledger.utils.security import mask_address, mask_tx_hash


DONOR = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
TOKEN = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class TestMasking:
    def test_mask_address(self):
        assert mask_address(DONOR) == "0x742d...bEb0"

    def test_mask_short_address(self):
        assert mask_address("0x12") == "***"

    def test_mask_tx_hash(self):
        masked = mask_tx_hash("0x" + "ab" * 32)
        assert masked.startswith("0xabab")
        assert "..." in masked

    def test_mask_tx_hash_bytes(self):
        """Receipts and logs carry hashes as raw bytes."""
        assert mask_tx_hash(bytes.fromhex("ab" * 32)) == "0xabababab...ababab"

    def test_mask_non_hex(self):
        assert mask_address("742d35Cc6634C0532925a3b844Bc9e7595f0bEb0") == "***"


class TestFormatAmount:
    def test_four_places(self):
        assert format_amount(Decimal("1.23456")) == "1.2346"

    def test_pads_zeros(self):
        assert format_amount(Decimal("2")) == "2.0000"

    def test_tiny_amount(self):
        assert format_amount(Decimal("0.00001")) == "0.0000"


class TestFormatRecord:
    def test_native_record(self):
        record = DonationRecord(
            donor=DONOR,
            asset_label="native",
            human_amount=Decimal("1.5"),
            campaign_name="General native-currency Donation",
            timestamp=1700000000,
        )

        line = format_record(record, native_symbol="MATIC")

        assert line.startswith("General native-currency Donation | 0x742d...bEb0 | 1.5000 MATIC | ")

    def test_token_record_masks_asset(self):
        assert format_asset(TOKEN) == "0xA0b8...eB48"
        assert format_asset("native", "ETH") == "ETH"


class TestFormatProjection:
    def test_empty_projection(self):
        text = format_projection(Projection())

        assert "No campaign donations yet." in text
        assert "No donations yet." in text
        assert "Blocks" not in text

    def test_aggregates(self):
        aggregates = Aggregates(
            total_native=Decimal("1"),
            total_ledger_asset=Decimal("2"),
            per_campaign_total={
                "Clean Water Initiative": Decimal("2"),
                "General native-currency Donation": Decimal("1"),
            },
            donation_count=2,
        )

        lines = format_aggregates(aggregates)

        assert lines[0] == "ETH donated: 1.0000 ETH"
        assert lines[1] == "Token donations: 2.0000 tokens"
        assert lines[2] == "Campaigns supported: 2"
        assert "  Clean Water Initiative: 2.0000" in lines

    def test_block_range_shown(self):
        projection = Projection(from_block=10, to_block=50010)

        assert "Blocks 10-50010" in format_projection(projection)
