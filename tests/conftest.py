"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment so Settings() can be built in tests
os.environ.setdefault("RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault("DONATION_MANAGER_ADDRESS", "0x5FbDB2315678afecb367f032d93F642f64180aa3")
os.environ.setdefault("CHARITY_WALLET_ADDRESS", "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from unittest.mock import MagicMock

from donation_ledger.config.settings import Settings
from donation_ledger.models import BlockRef, LedgerDonationEvent, NativeDonationEvent
from donation_ledger.services.campaign_registry import CampaignRegistry
from donation_ledger.services.ledger_reconciler import LedgerReconciler


MANAGER_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
WALLET_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
TOKEN_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DONOR_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"

# Well-known throwaway key, never funded
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

ONE_ETHER = 10**18


@pytest.fixture
def registry():
    """Registry with the built-in campaign table."""
    return CampaignRegistry()


@pytest.fixture
def reconciler(registry):
    return LedgerReconciler(registry)


@pytest.fixture
def make_ledger_event():
    """Factory for DonationReceived events."""

    def _make(
        amount=2 * ONE_ETHER,
        campaign_id=1,
        timestamp=100,
        asset=TOKEN_ADDRESS,
        donor=DONOR_ADDRESS,
        block_number=1,
        log_index=0,
    ):
        return LedgerDonationEvent(
            donor=donor,
            asset=asset,
            amount=amount,
            campaign_id=campaign_id,
            timestamp=timestamp,
            block_ref=BlockRef(block_number=block_number, log_index=log_index),
        )

    return _make


@pytest.fixture
def make_native_event():
    """Factory for ETHDonation events."""

    def _make(
        amount=ONE_ETHER,
        timestamp=200,
        donor=DONOR_ADDRESS,
        block_number=2,
        log_index=0,
    ):
        return NativeDonationEvent(
            donor=donor,
            amount=amount,
            timestamp=timestamp,
            block_ref=BlockRef(block_number=block_number, log_index=log_index),
        )

    return _make


@pytest.fixture
def mock_web3():
    """AsyncWeb3 stand-in; every eth.contract() call returns a fresh mock."""
    web3 = MagicMock()
    web3.eth.contract.side_effect = lambda **kwargs: MagicMock()
    return web3


@pytest.fixture
def settings():
    """Settings built from explicit values, ignoring any local .env."""
    return Settings(
        _env_file=None,
        rpc_url="http://127.0.0.1:8545",
        donation_manager_address=MANAGER_ADDRESS,
        charity_wallet_address=WALLET_ADDRESS,
        recent_donations_limit=5,
        blockchain_poll_interval=0.01,
    )


@pytest.fixture
def signing_settings(settings):
    """Settings with a signing key configured."""
    return settings.model_copy(update={"wallet_private_key": TEST_PRIVATE_KEY})
