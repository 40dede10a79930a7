"""
Transaction Sender.

Builds, signs and submits donation transactions and waits for their receipts.
"""

from dataclasses import dataclass
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import ContractLogicError, TimeExhausted

from donation_ledger.config.constants import (
    BLOCKCHAIN_TIMEOUT,
    CONFIRMATION_TIMEOUT,
    GAS_LIMIT_MULTIPLIER,
)
from donation_ledger.utils.security import mask_address, mask_tx_hash

from .nonce_manager import NonceManager
from .rpc_wrapper import with_timeout


@dataclass
class TransactionResult:
    """Outcome of one submitted transaction."""

    success: bool
    status: str  # submitted | confirmed | reverted | pending | rejected
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    error: str | None = None


class TransactionSender:
    """
    Signs and sends transactions from the donor account.

    Features:
    - Nonce allocation through NonceManager
    - Gas estimation with safety buffer
    - Receipt waiting bounded by the confirmation timeout

    No retries: every failure is returned to the caller as a terminal result.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        private_key: str,
        nonce_manager: NonceManager | None = None,
        confirmation_timeout: float = CONFIRMATION_TIMEOUT,
        rpc_timeout: float = BLOCKCHAIN_TIMEOUT,
    ) -> None:
        """
        Initialize transaction sender.

        Args:
            web3: AsyncWeb3 instance
            private_key: Private key for signing
            nonce_manager: Nonce manager (created if not given)
            confirmation_timeout: Seconds to wait for a receipt
            rpc_timeout: Timeout for other RPC calls
        """
        self.web3 = web3
        self._private_key = private_key
        self.nonce_manager = nonce_manager or NonceManager(web3, timeout=rpc_timeout)
        self.confirmation_timeout = confirmation_timeout
        self.rpc_timeout = rpc_timeout

        # SECURITY: Minimize lifetime of Account object
        account = Account.from_key(private_key)
        try:
            self.address: str = account.address
        finally:
            del account

        logger.info(f"TransactionSender initialized with wallet: {mask_address(self.address)}")

    async def send_native(self, to_address: str, value_wei: int) -> TransactionResult:
        """
        Send a plain native-currency transfer.

        Args:
            to_address: Recipient address
            value_wei: Amount in wei

        Returns:
            TransactionResult with status "submitted" or "rejected"
        """
        to_checksum = Web3.to_checksum_address(to_address)
        nonce = None

        try:
            nonce = await self.nonce_manager.next_nonce(self.address)
            gas_price = await with_timeout(
                self.web3.eth.gas_price,
                timeout=self.rpc_timeout,
                operation_name="Get gas price",
            )
            chain_id = await with_timeout(
                self.web3.eth.chain_id,
                timeout=self.rpc_timeout,
                operation_name="Get chain id",
            )

            transaction: dict[str, Any] = {
                "from": self.address,
                "to": to_checksum,
                "value": value_wei,
                "nonce": nonce,
                "gasPrice": gas_price,
                "chainId": chain_id,
            }
            gas_estimate = await with_timeout(
                self.web3.eth.estimate_gas(transaction),
                timeout=self.rpc_timeout,
                operation_name="Estimate gas",
            )
            transaction["gas"] = int(gas_estimate * GAS_LIMIT_MULTIPLIER)

        except Exception as e:
            logger.error(f"[Tx] Could not prepare transfer to {mask_address(to_checksum)}: {e}")
            if nonce is not None:
                self.nonce_manager.release(self.address, nonce)
            return TransactionResult(success=False, status="rejected", error=str(e))

        logger.info(
            f"[Tx] Sending {Web3.from_wei(value_wei, 'ether')} native to "
            f"{mask_address(to_checksum)} (nonce {nonce})"
        )
        return await self._sign_and_submit(transaction)

    async def send_contract_call(
        self,
        function: AsyncContractFunction,
        description: str,
    ) -> TransactionResult:
        """
        Send a state-changing contract call.

        Args:
            function: Bound contract function, e.g. token.functions.approve(...)
            description: Human-readable label for logs

        Returns:
            TransactionResult with status "submitted" or "rejected"
        """
        nonce = None

        try:
            nonce = await self.nonce_manager.next_nonce(self.address)
            gas_price = await with_timeout(
                self.web3.eth.gas_price,
                timeout=self.rpc_timeout,
                operation_name="Get gas price",
            )
            # build_transaction estimates gas and fills chainId
            transaction = await with_timeout(
                function.build_transaction(
                    {
                        "from": self.address,
                        "nonce": nonce,
                        "gasPrice": gas_price,
                    }
                ),
                timeout=self.rpc_timeout,
                operation_name=f"Build {description}",
            )
            transaction["gas"] = int(transaction["gas"] * GAS_LIMIT_MULTIPLIER)

        except ContractLogicError as e:
            logger.error(f"[Tx] {description} would revert: {e}")
            if nonce is not None:
                self.nonce_manager.release(self.address, nonce)
            return TransactionResult(success=False, status="rejected", error=f"Execution reverted: {e}")
        except Exception as e:
            logger.error(f"[Tx] Could not prepare {description}: {e}")
            if nonce is not None:
                self.nonce_manager.release(self.address, nonce)
            return TransactionResult(success=False, status="rejected", error=str(e))

        logger.info(f"[Tx] Sending {description} (nonce {nonce})")
        return await self._sign_and_submit(transaction)

    async def _sign_and_submit(self, transaction: dict[str, Any]) -> TransactionResult:
        """Sign and submit a prepared transaction without waiting for it."""
        # SECURITY: Sign transaction with minimal Account lifetime
        account = None
        try:
            account = Account.from_key(self._private_key)
            signed_tx = account.sign_transaction(transaction)
        except Exception as e:
            logger.error(f"[Tx] Could not sign transaction: {e}")
            self.nonce_manager.release(self.address, transaction["nonce"])
            return TransactionResult(success=False, status="rejected", error=f"Signing failed: {e}")
        finally:
            if account:
                del account

        try:
            tx_hash = await with_timeout(
                self.web3.eth.send_raw_transaction(signed_tx.raw_transaction),
                timeout=self.rpc_timeout,
                operation_name="Send raw transaction",
            )
        except Exception as e:
            logger.error(f"[Tx] Node rejected transaction: {e}")
            self.nonce_manager.release(self.address, transaction["nonce"])
            return TransactionResult(success=False, status="rejected", error=str(e))

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"[Tx] Transaction sent: {mask_tx_hash(tx_hash_hex)}")

        return TransactionResult(success=True, status="submitted", tx_hash=tx_hash_hex)

    async def wait_for_confirmation(self, tx_hash: str) -> TransactionResult:
        """
        Wait until the transaction is included.

        A timeout does not mean the transaction failed, it may still be
        mined later; the result is reported as "pending".
        """
        try:
            receipt = await with_timeout(
                self.web3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.confirmation_timeout
                ),
                timeout=self.confirmation_timeout,
                operation_name=f"Receipt for {mask_tx_hash(tx_hash)}",
            )
        except (TimeoutError, TimeExhausted):
            logger.warning(
                f"[Tx] {mask_tx_hash(tx_hash)} not confirmed within "
                f"{self.confirmation_timeout}s - may still be pending"
            )
            return TransactionResult(
                success=False,
                status="pending",
                tx_hash=tx_hash,
                error="Transaction confirmation timeout",
            )
        except Exception as e:
            logger.error(f"[Tx] Error waiting for {mask_tx_hash(tx_hash)}: {e}")
            return TransactionResult(success=False, status="pending", tx_hash=tx_hash, error=str(e))

        if receipt["status"] == 1:
            logger.success(
                f"[Tx] {mask_tx_hash(tx_hash)} confirmed in block {receipt['blockNumber']}"
            )
            return TransactionResult(
                success=True,
                status="confirmed",
                tx_hash=tx_hash,
                block_number=receipt["blockNumber"],
                gas_used=receipt.get("gasUsed"),
            )

        logger.error(f"[Tx] {mask_tx_hash(tx_hash)} reverted in block {receipt['blockNumber']}")
        return TransactionResult(
            success=False,
            status="reverted",
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt.get("gasUsed"),
            error="Transaction reverted",
        )
