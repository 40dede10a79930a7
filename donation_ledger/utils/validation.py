"""
Validation utilities.

Address and amount validators used by the donation workflow.
"""

from decimal import Decimal, InvalidOperation, localcontext

from loguru import logger
from web3 import Web3

from donation_ledger.config.constants import DECIMAL_PRECISION


# Zero address - never a valid token
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def validate_wallet_address(address: str | None) -> tuple[bool, str | None]:
    """
    Validate an EVM address.

    Args:
        address: Address to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Examples:
        >>> validate_wallet_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_wallet_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    # Validate hex format
    try:
        int(address[2:], 16)
    except ValueError:
        return False, "Invalid address format"

    try:
        Web3.to_checksum_address(address)
        return True, None
    except (ValueError, TypeError) as e:
        logger.debug(f"Address validation failed for {address}: {e}")
        return False, "Invalid address format"


def validate_token_address(address: str | None) -> tuple[bool, str | None]:
    """
    Validate an ERC-20 token address.

    Same as validate_wallet_address, but also rejects the zero address.
    """
    is_valid, error = validate_wallet_address(address)
    if not is_valid:
        return is_valid, error

    if address.strip().lower() == ZERO_ADDRESS:
        return False, "Token address cannot be the zero address"

    return True, None


def validate_amount(
    amount: str | Decimal | None,
    decimals: int | None = None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a human-readable donation amount.

    Args:
        amount: Amount string (or Decimal) to validate
        decimals: Asset precision; amounts finer than one smallest unit
            are rejected when given

    Returns:
        Tuple of (is_valid, parsed_value, error_message)
        - (True, value, None) if valid
        - (False, None, error_message) if invalid

    Examples:
        >>> validate_amount("0.5")
        (True, Decimal('0.5'), None)
        >>> validate_amount("0")
        (False, None, 'Amount must be positive')
    """
    if amount is None:
        return False, None, "Amount is empty"

    if isinstance(amount, Decimal):
        value = amount
    else:
        if not isinstance(amount, str):
            return False, None, "Amount must be a string"

        text = amount.strip().replace(",", ".")
        if not text:
            return False, None, "Amount is empty"

        try:
            value = Decimal(text)
        except InvalidOperation:
            return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if value <= 0:
        return False, None, "Amount must be positive"

    if decimals is not None and -value.as_tuple().exponent > decimals:
        # Trailing zeros do not add precision; normalize() must not round
        with localcontext() as ctx:
            ctx.prec = _exact_precision(value)
            normalized = value.normalize()
        if -normalized.as_tuple().exponent > decimals:
            return False, None, f"Amount has more than {decimals} decimal places"

    return True, value, None


def _exact_precision(value: Decimal) -> int:
    """Context precision that holds every digit of value."""
    return max(DECIMAL_PRECISION, len(value.as_tuple().digits))


def to_smallest_unit(value: Decimal, decimals: int) -> int:
    """
    Convert a validated amount to the asset's smallest unit.

    Args:
        value: Positive amount with at most `decimals` fractional digits
        decimals: Asset precision

    Returns:
        Integer amount in smallest units
    """
    with localcontext() as ctx:
        ctx.prec = _exact_precision(value)
        return int(value.scaleb(decimals))
