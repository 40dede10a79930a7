"""
Blockchain access layer.

Event log queries, token metadata reads and transaction submission.
"""

from .constants import CHARITY_WALLET_ABI, DONATION_MANAGER_ABI, ERC20_ABI
from .event_fetcher import EventFetcher, FetchedWindow
from .nonce_manager import NonceManager
from .token_metadata import TokenDecimalsCache, read_token_decimals
from .transaction_sender import TransactionResult, TransactionSender


__all__ = [
    "CHARITY_WALLET_ABI",
    "DONATION_MANAGER_ABI",
    "ERC20_ABI",
    "EventFetcher",
    "FetchedWindow",
    "NonceManager",
    "TokenDecimalsCache",
    "TransactionResult",
    "TransactionSender",
    "read_token_decimals",
]
