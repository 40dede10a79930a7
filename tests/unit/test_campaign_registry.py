"""
Unit tests for the campaign registry.
"""

import pytest

from donation_ledger.config.campaigns import DEFAULT_CAMPAIGNS
from donation_ledger.services.campaign_registry import CampaignRegistry


class TestResolution:
    """Test name <-> id lookups."""

    def test_resolve_id_known_name(self, registry):
        assert registry.resolve_id("Clean Water Initiative") == 1
        assert registry.resolve_id("Animal Welfare Fund") == 6

    def test_resolve_id_unknown_name_is_zero(self, registry):
        assert registry.resolve_id("Save the Moon") == 0

    def test_resolve_id_is_case_sensitive(self, registry):
        assert registry.resolve_id("clean water initiative") == 0

    def test_resolve_name_known_id(self, registry):
        assert registry.resolve_name(2) == "Zero Hunger Mission"

    def test_resolve_name_unknown_id(self, registry):
        assert registry.resolve_name(99) == "Unknown"

    def test_resolve_name_zero_is_unknown(self, registry):
        assert registry.resolve_name(0) == "Unknown"

    def test_resolution_is_total(self, registry):
        """Every id up to and past the table resolves to some name."""
        max_id = max(DEFAULT_CAMPAIGNS.values())
        for campaign_id in range(0, max_id + 10):
            name = registry.resolve_name(campaign_id)
            assert isinstance(name, str) and name
            if campaign_id == 0 or campaign_id > max_id:
                assert name == "Unknown"

    def test_round_trip_for_every_campaign(self, registry):
        for name in registry:
            assert registry.resolve_name(registry.resolve_id(name)) == name


class TestConstruction:
    """Test table validation."""

    def test_default_table(self, registry):
        assert len(registry) == len(DEFAULT_CAMPAIGNS)
        assert registry.names == list(DEFAULT_CAMPAIGNS)
        assert "Clean Water Initiative" in registry

    def test_custom_table(self):
        registry = CampaignRegistry({"Library Books": 7})

        assert registry.resolve_id("Library Books") == 7
        assert registry.resolve_id("Clean Water Initiative") == 0

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="used by both"):
            CampaignRegistry({"A": 1, "B": 1})

    @pytest.mark.parametrize("campaign_id", [0, -3])
    def test_non_positive_id_rejected(self, campaign_id):
        with pytest.raises(ValueError, match="must be positive"):
            CampaignRegistry({"A": campaign_id})

    def test_non_integer_id_rejected(self):
        with pytest.raises(ValueError, match="must be an integer"):
            CampaignRegistry({"A": "1"})

    @pytest.mark.parametrize(
        "name",
        ["General native-currency Donation", "Unknown"],
    )
    def test_reserved_names_rejected(self, name):
        with pytest.raises(ValueError, match="reserved"):
            CampaignRegistry({name: 1})

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            CampaignRegistry({"  ": 1})

    def test_table_is_immutable(self, registry):
        table = registry.as_dict()
        table["Injected"] = 42

        assert "Injected" not in registry
        assert registry.resolve_id("Injected") == 0
