"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import json
from functools import lru_cache

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from donation_ledger.config.campaigns import DEFAULT_CAMPAIGNS
from donation_ledger.config.constants import (
    BLOCKCHAIN_POLL_INTERVAL,
    BLOCKCHAIN_TIMEOUT,
    CONFIRMATION_TIMEOUT,
    HISTORY_WINDOW_BLOCKS,
    RECENT_DONATIONS_LIMIT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Blockchain RPC
    rpc_url: str
    rpc_timeout: float = Field(
        default=BLOCKCHAIN_TIMEOUT, gt=0, description="RPC call timeout in seconds"
    )

    # Contracts
    donation_manager_address: str
    charity_wallet_address: str

    native_symbol: str = Field(default="ETH", description="Symbol of the chain's native currency")

    # Wallet (signing is disabled without a key)
    wallet_private_key: str | None = None

    # Synchronization
    history_window_blocks: int = Field(
        default=HISTORY_WINDOW_BLOCKS,
        gt=0,
        description="Blocks refetched back from the chain head on every resync",
    )
    recent_donations_limit: int = Field(
        default=RECENT_DONATIONS_LIMIT,
        gt=0,
        description="Number of records kept in the recent donations list",
    )
    blockchain_poll_interval: float = Field(
        default=BLOCKCHAIN_POLL_INTERVAL,
        gt=0,
        description="New-event polling interval in seconds",
    )

    # Transactions
    confirmation_timeout: float = Field(
        default=CONFIRMATION_TIMEOUT,
        gt=0,
        description="Seconds to wait for a transaction receipt",
    )

    # Campaign table override, e.g. '{"Clean Water Initiative": 1}'
    campaigns_json: str | None = None

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('donation_manager_address', 'charity_wallet_address')
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Validate contract address format."""
        v = v.strip()
        if not v.startswith('0x') or len(v) != 42:
            raise ValueError('Invalid contract address format')
        try:
            int(v[2:], 16)
        except ValueError as e:
            raise ValueError('Contract address must be hexadecimal') from e
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    @model_validator(mode='after')
    def validate_campaigns(self) -> 'Settings':
        """Make sure the campaign override parses before anything uses it."""
        if self.campaigns_json:
            self.get_campaigns()
        return self

    def get_campaigns(self) -> dict[str, int]:
        """
        Campaign table to use.

        Returns:
            Mapping of campaign name to on-chain id

        Raises:
            ValueError: If the JSON override is malformed
        """
        if not self.campaigns_json:
            return dict(DEFAULT_CAMPAIGNS)

        try:
            raw = json.loads(self.campaigns_json)
        except json.JSONDecodeError as e:
            raise ValueError(f'CAMPAIGNS_JSON is not valid JSON: {e}') from e

        if not isinstance(raw, dict) or not raw:
            raise ValueError('CAMPAIGNS_JSON must be a non-empty object')

        campaigns: dict[str, int] = {}
        for name, campaign_id in raw.items():
            if isinstance(campaign_id, bool) or not isinstance(campaign_id, int):
                raise ValueError(f'Campaign id for {name!r} must be an integer')
            campaigns[str(name)] = campaign_id

        logger.debug(f"Using campaign table override with {len(campaigns)} entries")
        return campaigns


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
