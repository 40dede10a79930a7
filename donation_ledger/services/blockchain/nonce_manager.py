"""
Nonce management.

Hands out nonces to concurrently running donation workflows without holding
a lock across RPC calls.
"""

from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from donation_ledger.config.constants import BLOCKCHAIN_TIMEOUT
from donation_ledger.utils.security import mask_address

from .rpc_wrapper import with_timeout


class NonceManager:
    """
    Manages transaction nonces for the signing account.

    The node's pending count is read first; the local state is then updated
    with no await in between, so two workflows that read the same pending
    count still get distinct nonces.

    A nonce released while later ones are still in flight would leave a gap
    that blocks every later transaction, so it is kept and handed out again
    before the counter advances.
    """

    def __init__(self, web3: AsyncWeb3, timeout: float = BLOCKCHAIN_TIMEOUT) -> None:
        """
        Initialize nonce manager.

        Args:
            web3: AsyncWeb3 instance
            timeout: RPC timeout in seconds
        """
        self.web3 = web3
        self.timeout = timeout
        self._next_nonce: dict[str, int] = {}
        self._released: dict[str, set[int]] = {}

    async def next_nonce(self, address: str) -> int:
        """
        Reserve the next nonce for address.

        Released nonces are reused lowest first.

        Raises:
            Web3Exception: If the node call fails
        """
        try:
            pending_nonce = await with_timeout(
                self.web3.eth.get_transaction_count(address, "pending"),
                timeout=self.timeout,
                operation_name="Get transaction count",
            )
        except Web3Exception as e:
            logger.error(f"Web3 error getting pending nonce for {mask_address(address)}: {e}")
            raise

        released = self._released.setdefault(address, set())
        # Already taken on the node by some other sender
        released.difference_update({n for n in released if n < pending_nonce})
        if released:
            nonce = min(released)
            released.discard(nonce)
            logger.debug(f"Reusing released nonce {nonce} for {mask_address(address)}")
            return nonce

        nonce = max(pending_nonce, self._next_nonce.get(address, 0))
        self._next_nonce[address] = nonce + 1
        return nonce

    def release(self, address: str, nonce: int) -> None:
        """Give back a nonce whose transaction never reached the node."""
        next_nonce = self._next_nonce.get(address)
        if next_nonce is None or nonce >= next_nonce:
            return

        released = self._released.setdefault(address, set())
        released.add(nonce)

        # Released nonces at the top shrink the counter instead
        while next_nonce - 1 in released:
            next_nonce -= 1
            released.discard(next_nonce)
        self._next_nonce[address] = next_nonce

        logger.debug(f"Released nonce {nonce} for {mask_address(address)}")

    def released_nonces(self, address: str) -> list[int]:
        """Nonces waiting to be reused, lowest first."""
        return sorted(self._released.get(address, ()))
