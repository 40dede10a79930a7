"""
RPC wrapper with timeout.

Provides centralized timeout handling for blockchain RPC calls.
"""

import asyncio
from typing import Any

from loguru import logger

from donation_ledger.config.constants import BLOCKCHAIN_TIMEOUT


class BlockchainTimeoutError(TimeoutError):
    """Raised when blockchain RPC call times out."""
    pass


async def with_timeout(
    coro: Any,
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
) -> Any:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: BLOCKCHAIN_TIMEOUT)
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        BlockchainTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.error(error_msg)
        raise BlockchainTimeoutError(error_msg) from e
