"""
Donation ledger synchronizer.

Reconstructs campaign donation history from on-chain events and drives
native-currency and ERC-20 donation transactions.
"""

__version__ = "0.1.0"
