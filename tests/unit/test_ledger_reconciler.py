"""
Unit tests for the ledger reconciler.

Covers record ordering, campaign attribution and the aggregate invariants.
"""

from decimal import Decimal

import pytest

from donation_ledger.services.campaign_registry import CampaignRegistry
from donation_ledger.services.ledger_reconciler import LedgerReconciler, to_human_amount


ONE_ETHER = 10**18
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


def _sum_invariant_holds(aggregates) -> bool:
    per_campaign = sum(aggregates.per_campaign_total.values(), Decimal("0"))
    total = aggregates.total_native + aggregates.total_ledger_asset
    return abs(per_campaign - total) <= Decimal("1e-6")


class TestToHumanAmount:
    """Test integer to asset unit conversion."""

    def test_eighteen_decimals(self):
        assert to_human_amount(2 * ONE_ETHER, 18) == Decimal("2")

    def test_six_decimals(self):
        assert to_human_amount(25_500_000, 6) == Decimal("25.5")

    def test_uint256_max_keeps_every_digit(self):
        max_uint = 2**256 - 1
        value = to_human_amount(max_uint, 18)

        _, digits, exponent = value.as_tuple()
        assert "".join(str(d) for d in digits) == str(max_uint)
        assert exponent == -18


class TestReconcile:
    """Test merging of both event streams."""

    def test_mixed_example(self, reconciler, make_ledger_event, make_native_event):
        """Native donation at t=200 sorts before ledger donation at t=100."""
        ledger = [make_ledger_event(amount=2 * ONE_ETHER, campaign_id=1, timestamp=100)]
        native = [make_native_event(amount=ONE_ETHER, timestamp=200)]

        result = reconciler.reconcile(ledger, native)

        assert [r.timestamp for r in result.records] == [200, 100]
        assert result.records[0].asset_label == "native"
        assert result.records[0].campaign_name == "General native-currency Donation"
        assert result.records[1].campaign_name == "Clean Water Initiative"

        aggregates = result.aggregates
        assert aggregates.total_native == Decimal("1")
        assert aggregates.total_ledger_asset == Decimal("2")
        assert aggregates.per_campaign_total == {
            "Clean Water Initiative": Decimal("2"),
            "General native-currency Donation": Decimal("1"),
        }
        assert aggregates.donation_count == 2
        assert aggregates.campaigns_supported == 2

    def test_unknown_campaign_id(self, reconciler, make_ledger_event):
        ledger = [
            make_ledger_event(amount=3 * ONE_ETHER, campaign_id=99),
            make_ledger_event(amount=ONE_ETHER, campaign_id=2, timestamp=101),
        ]

        result = reconciler.reconcile(ledger, [])

        assert result.aggregates.per_campaign_total["Unknown"] == Decimal("3")
        assert result.aggregates.total_ledger_asset == Decimal("4")
        assert any(r.campaign_name == "Unknown" for r in result.records)

    def test_empty_streams(self, reconciler):
        result = reconciler.reconcile([], [])

        assert result.records == ()
        assert result.aggregates.total_native == Decimal("0")
        assert result.aggregates.total_ledger_asset == Decimal("0")
        assert result.aggregates.per_campaign_total == {}
        assert result.aggregates.donation_count == 0

    def test_truncation_keeps_full_aggregates(
        self, reconciler, make_ledger_event, make_native_event
    ):
        """100 events produce 5 records but totals over all 100."""
        ledger = [
            make_ledger_event(amount=ONE_ETHER, campaign_id=(i % 6) + 1, timestamp=1000 + i)
            for i in range(50)
        ]
        native = [make_native_event(amount=ONE_ETHER, timestamp=2000 + i) for i in range(50)]

        result = reconciler.reconcile(ledger, native)

        assert len(result.records) == 5
        assert [r.timestamp for r in result.records] == [2049, 2048, 2047, 2046, 2045]
        assert result.aggregates.donation_count == 100
        assert result.aggregates.total_ledger_asset == Decimal("50")
        assert result.aggregates.total_native == Decimal("50")
        assert _sum_invariant_holds(result.aggregates)

    def test_custom_display_limit(self, registry, make_native_event):
        reconciler = LedgerReconciler(registry, display_limit=2)
        native = [make_native_event(timestamp=t) for t in (1, 2, 3)]

        result = reconciler.reconcile([], native)

        assert [r.timestamp for r in result.records] == [3, 2]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_display_limit(self, registry, limit):
        with pytest.raises(ValueError):
            LedgerReconciler(registry, display_limit=limit)

    def test_equal_timestamps_ledger_first_newest_arrival_first(
        self, reconciler, make_ledger_event, make_native_event
    ):
        ledger = [
            make_ledger_event(amount=1, timestamp=500, block_number=1),
            make_ledger_event(amount=2, timestamp=500, block_number=2),
        ]
        native = [
            make_native_event(amount=3, timestamp=500, block_number=3),
            make_native_event(amount=4, timestamp=500, block_number=4),
        ]

        result = reconciler.reconcile(ledger, native)

        amounts = [r.human_amount.scaleb(18) for r in result.records]
        assert amounts == [Decimal(2), Decimal(1), Decimal(4), Decimal(3)]

    def test_deterministic(self, reconciler, make_ledger_event, make_native_event):
        ledger = [
            make_ledger_event(amount=(i + 1) * 10**17, campaign_id=i % 8, timestamp=i * 7 % 13)
            for i in range(20)
        ]
        native = [
            make_native_event(amount=(i + 1) * 10**16, timestamp=i * 5 % 11)
            for i in range(20)
        ]

        first = reconciler.reconcile(ledger, native)
        second = reconciler.reconcile(list(ledger), list(native))

        assert first == second
        assert repr(first) == repr(second)

    def test_sum_invariant_with_unknown_and_native(
        self, reconciler, make_ledger_event, make_native_event
    ):
        ledger = [
            make_ledger_event(amount=123456789, campaign_id=0),
            make_ledger_event(amount=10**18 + 1, campaign_id=3),
            make_ledger_event(amount=7, campaign_id=42),
        ]
        native = [make_native_event(amount=987654321987654321)]

        result = reconciler.reconcile(ledger, native)

        assert _sum_invariant_holds(result.aggregates)

    def test_large_totals_are_exact(self, reconciler, make_ledger_event):
        max_uint = 2**256 - 1
        ledger = [make_ledger_event(amount=max_uint), make_ledger_event(amount=max_uint)]

        result = reconciler.reconcile(ledger, [])

        _, digits, exponent = result.aggregates.total_ledger_asset.as_tuple()
        assert "".join(str(d) for d in digits) == str(2 * max_uint)
        assert exponent == -18
        assert result.aggregates.per_campaign_total["Clean Water Initiative"] == (
            result.aggregates.total_ledger_asset
        )

    def test_aggregates_are_read_only(self, reconciler, make_native_event):
        result = reconciler.reconcile([], [make_native_event()])

        with pytest.raises(TypeError):
            result.aggregates.per_campaign_total["Injected"] = Decimal("1")
        with pytest.raises(TypeError):
            result.aggregates.per_asset_total["native"] = Decimal("0")

    def test_inputs_not_mutated(self, reconciler, make_ledger_event, make_native_event):
        ledger = [make_ledger_event(timestamp=1), make_ledger_event(timestamp=2)]
        native = [make_native_event(timestamp=3)]
        ledger_before, native_before = list(ledger), list(native)

        reconciler.reconcile(ledger, native)

        assert ledger == ledger_before
        assert native == native_before


class TestTokenDecimals:
    """Test per-token precision in ledger amounts."""

    def test_token_decimals_applied(self, reconciler, make_ledger_event):
        ledger = [
            make_ledger_event(amount=25_000_000, asset=USDC, timestamp=1),
            make_ledger_event(amount=3 * ONE_ETHER, asset=DAI, timestamp=2),
        ]

        result = reconciler.reconcile(ledger, [], token_decimals={USDC: 6})

        assert result.aggregates.per_asset_total == {
            USDC: Decimal("25"),
            DAI: Decimal("3"),
        }
        assert result.aggregates.total_ledger_asset == Decimal("28")

    def test_token_decimals_keys_case_insensitive(self, reconciler, make_ledger_event):
        ledger = [make_ledger_event(amount=1_000_000, asset=USDC)]

        result = reconciler.reconcile(ledger, [], token_decimals={USDC.lower(): 6})

        assert result.records[0].human_amount == Decimal("1")

    def test_native_asset_total(self, reconciler, make_native_event):
        result = reconciler.reconcile([], [make_native_event(amount=ONE_ETHER // 2)])

        assert result.aggregates.per_asset_total == {"native": Decimal("0.5")}


class TestCustomRegistry:
    """Test attribution with an overridden campaign table."""

    def test_override_table(self, make_ledger_event):
        reconciler = LedgerReconciler(CampaignRegistry({"Library Books": 7}))
        ledger = [
            make_ledger_event(amount=ONE_ETHER, campaign_id=7),
            make_ledger_event(amount=ONE_ETHER, campaign_id=1),
        ]

        result = reconciler.reconcile(ledger, [])

        assert result.aggregates.per_campaign_total == {
            "Library Books": Decimal("1"),
            "Unknown": Decimal("1"),
        }
