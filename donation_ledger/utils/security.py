"""
Log masking for on-chain identifiers.

Donor addresses, token addresses and transaction hashes are shortened before
they reach logs or the terminal. Values may arrive as hex strings or as the
raw bytes/HexBytes web3 returns in logs and receipts.
"""

from web3 import Web3


HexValue = str | bytes | None

MASK = "***"


def mask_hex(value: HexValue, head: int, tail: int) -> str:
    """
    Keep the first `head` and last `tail` characters of a 0x-prefixed value.

    Values that are empty, not 0x-prefixed or too short to shorten are
    replaced entirely.

    Examples:
        >>> mask_hex(bytes.fromhex("ab" * 4), head=4, tail=2)
        '0xab...ab'
        >>> mask_hex("not-hex", head=4, tail=2)
        '***'
    """
    if isinstance(value, bytes):
        value = Web3.to_hex(value)
    if not value or not value.startswith("0x"):
        return MASK
    if len(value) <= head + tail:
        return MASK
    return f"{value[:head]}...{value[-tail:]}"


def mask_address(address: HexValue) -> str:
    """
    Donor, token or contract address as 0x1234...5678.

    Examples:
        >>> mask_address("0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0")
        '0x742d...bEb0'
        >>> mask_address(None)
        '***'
    """
    return mask_hex(address, head=6, tail=4)


def mask_tx_hash(tx_hash: HexValue) -> str:
    """Transaction hash as 0x12345678...abcdef."""
    return mask_hex(tx_hash, head=10, tail=6)
