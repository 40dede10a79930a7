"""
ERC-20 token metadata.

Reads decimals() from token contracts, with an optional cache for the
display path.
"""

from loguru import logger
from web3 import AsyncWeb3

from donation_ledger.config.constants import BLOCKCHAIN_TIMEOUT, DEFAULT_TOKEN_DECIMALS
from donation_ledger.utils.security import mask_address

from .constants import ERC20_ABI
from .rpc_wrapper import with_timeout


async def read_token_decimals(
    web3: AsyncWeb3,
    token_address: str,
    timeout: float = BLOCKCHAIN_TIMEOUT,
) -> int:
    """
    Query decimals() from the token contract.

    Args:
        web3: AsyncWeb3 instance
        token_address: Token contract address
        timeout: RPC timeout in seconds

    Returns:
        Token decimals

    Raises:
        Any RPC or contract error from the node
    """
    contract = web3.eth.contract(
        address=web3.to_checksum_address(token_address),
        abi=ERC20_ABI,
    )
    decimals = await with_timeout(
        contract.functions.decimals().call(),
        timeout=timeout,
        operation_name=f"decimals() for {mask_address(token_address)}",
    )
    return int(decimals)


class TokenDecimalsCache:
    """
    Caches token decimals for converting donation amounts for display.

    Tokens that do not answer decimals() are shown with 18 decimals; the
    fallback is not cached so the next resync asks again.
    """

    def __init__(self, web3: AsyncWeb3, timeout: float = BLOCKCHAIN_TIMEOUT) -> None:
        self.web3 = web3
        self.timeout = timeout
        self._decimals: dict[str, int] = {}

    async def get(self, token_address: str) -> int:
        key = token_address.lower()
        if key in self._decimals:
            return self._decimals[key]

        try:
            decimals = await read_token_decimals(self.web3, token_address, self.timeout)
        except Exception as e:
            logger.warning(
                f"[Decimals] Could not read decimals for "
                f"{mask_address(token_address)}, using {DEFAULT_TOKEN_DECIMALS}: {e}"
            )
            return DEFAULT_TOKEN_DECIMALS

        self._decimals[key] = decimals
        logger.debug(f"[Decimals] {mask_address(token_address)} uses {decimals} decimals")
        return decimals

    async def get_many(self, token_addresses: set[str]) -> dict[str, int]:
        """Decimals for every address, keyed by lowercase address."""
        result = {}
        for address in sorted(token_addresses):
            result[address.lower()] = await self.get(address)
        return result

    def clear(self) -> None:
        self._decimals.clear()
