"""
Campaign registry.

Bidirectional lookup between campaign display names and the numeric ids
recorded on-chain.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from donation_ledger.config.campaigns import DEFAULT_CAMPAIGNS
from donation_ledger.config.constants import (
    GENERAL_CAMPAIGN_NAME,
    NO_CAMPAIGN_ID,
    UNKNOWN_CAMPAIGN_NAME,
)


class CampaignRegistry:
    """
    Immutable name <-> id mapping.

    Unknown names resolve to id 0 (no campaign) and unknown ids resolve to
    "Unknown". Native-currency donations carry no id and are attributed to
    the reserved general campaign.
    """

    GENERAL_CAMPAIGN = GENERAL_CAMPAIGN_NAME
    UNKNOWN = UNKNOWN_CAMPAIGN_NAME

    def __init__(self, campaigns: Mapping[str, int] | None = None) -> None:
        """
        Build the registry.

        Args:
            campaigns: Name to id mapping (defaults to the built-in table)

        Raises:
            ValueError: If an id is not a positive integer, is used twice,
                or a name clashes with a reserved label
        """
        table = dict(DEFAULT_CAMPAIGNS if campaigns is None else campaigns)

        by_id: dict[int, str] = {}
        for name, campaign_id in table.items():
            if not name or not name.strip():
                raise ValueError("Campaign name cannot be empty")
            if name in (GENERAL_CAMPAIGN_NAME, UNKNOWN_CAMPAIGN_NAME):
                raise ValueError(f"Campaign name {name!r} is reserved")
            if isinstance(campaign_id, bool) or not isinstance(campaign_id, int):
                raise ValueError(f"Campaign id for {name!r} must be an integer")
            if campaign_id <= NO_CAMPAIGN_ID:
                raise ValueError(f"Campaign id for {name!r} must be positive")
            if campaign_id in by_id:
                raise ValueError(
                    f"Campaign id {campaign_id} used by both "
                    f"{by_id[campaign_id]!r} and {name!r}"
                )
            by_id[campaign_id] = name

        self._by_name = MappingProxyType(table)
        self._by_id = MappingProxyType(by_id)

    def resolve_id(self, name: str) -> int:
        """Campaign id for a display name, or 0 if the name is unknown."""
        return self._by_name.get(name, NO_CAMPAIGN_ID)

    def resolve_name(self, campaign_id: int) -> str:
        """Display name for a campaign id, or "Unknown"."""
        return self._by_id.get(int(campaign_id), UNKNOWN_CAMPAIGN_NAME)

    @property
    def names(self) -> list[str]:
        """Campaign names in table order."""
        return list(self._by_name)

    def as_dict(self) -> dict[str, int]:
        return dict(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"CampaignRegistry({dict(self._by_name)!r})"
