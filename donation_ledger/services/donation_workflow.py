"""
Donation transaction workflow.

Runs user donations to completion:
- native currency: one transfer to the charity wallet
- ERC-20 tokens: approve the donation ledger, then call donate()

Each request moves through Idle -> Validating -> Submitting -> Confirming ->
Succeeded | Failed. Failures are terminal and returned in the outcome; nothing
is retried and a succeeded approval is never rolled back.
"""

from loguru import logger
from web3 import AsyncWeb3, Web3

from donation_ledger.config.constants import BLOCKCHAIN_TIMEOUT, NATIVE_DECIMALS
from donation_ledger.models import (
    DonationKind,
    DonationOutcome,
    DonationRequest,
    RequestState,
)
from donation_ledger.services.blockchain.constants import DONATION_MANAGER_ABI, ERC20_ABI
from donation_ledger.services.blockchain.token_metadata import read_token_decimals
from donation_ledger.services.blockchain.transaction_sender import (
    TransactionResult,
    TransactionSender,
)
from donation_ledger.services.campaign_registry import CampaignRegistry
from donation_ledger.utils.exceptions import (
    ApprovalRejectedError,
    DonationLedgerError,
    DonationRejectedError,
    InvalidAmountError,
    InvalidTokenError,
    SignerUnavailableError,
    TransactionRejectedError,
    is_connection_error,
)
from donation_ledger.utils.security import mask_address
from donation_ledger.utils.validation import (
    to_smallest_unit,
    validate_amount,
    validate_token_address,
)


class DonationWorkflow:
    """
    Transaction workflow engine.

    Requests are independent: several may be in flight at once and no lock is
    taken between them, so a double submit produces two transactions.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        registry: CampaignRegistry,
        donation_manager_address: str,
        charity_wallet_address: str,
        sender: TransactionSender | None = None,
        rpc_timeout: float = BLOCKCHAIN_TIMEOUT,
    ) -> None:
        """
        Initialize workflow engine.

        Args:
            web3: AsyncWeb3 instance
            registry: Campaign registry for resolving campaign ids
            donation_manager_address: Donation ledger contract (approval spender)
            charity_wallet_address: Recipient of native donations
            sender: Transaction sender; donations fail with
                SignerUnavailableError when not configured
            rpc_timeout: Timeout for read calls such as decimals()
        """
        self.web3 = web3
        self.registry = registry
        self.sender = sender
        self.rpc_timeout = rpc_timeout
        self.donation_manager_address = Web3.to_checksum_address(donation_manager_address)
        self.charity_wallet_address = Web3.to_checksum_address(charity_wallet_address)

        self.manager_contract = web3.eth.contract(
            address=self.donation_manager_address,
            abi=DONATION_MANAGER_ABI,
        )

        self._in_flight: dict[str, DonationRequest] = {}

    @property
    def in_flight(self) -> list[DonationRequest]:
        """Requests that have not reached a terminal state yet."""
        return list(self._in_flight.values())

    async def submit_native_donation(
        self,
        amount: str,
        campaign_name: str,
    ) -> DonationOutcome:
        """
        Donate native currency directly to the charity wallet.

        The charity wallet records no campaign id; the donation is attributed
        to the general campaign once it shows up in the event log.

        Args:
            amount: Human-readable amount, e.g. "0.25"
            campaign_name: Campaign selected by the user

        Returns:
            DonationOutcome in state SUCCEEDED or FAILED
        """
        request = DonationRequest(
            kind=DonationKind.NATIVE,
            amount=amount,
            campaign_name=campaign_name,
        )
        self._in_flight[request.request_id] = request
        try:
            return await self._run_native(request)
        finally:
            self._in_flight.pop(request.request_id, None)

    async def submit_token_donation(
        self,
        token_address: str,
        amount: str,
        campaign_name: str,
    ) -> DonationOutcome:
        """
        Donate ERC-20 tokens through the donation ledger contract.

        Args:
            token_address: Token contract address
            amount: Human-readable amount in token units
            campaign_name: Campaign selected by the user

        Returns:
            DonationOutcome in state SUCCEEDED or FAILED; check
            residual_allowance when the donation call failed after approval
        """
        request = DonationRequest(
            kind=DonationKind.TOKEN,
            amount=amount,
            campaign_name=campaign_name,
            token_address=(token_address or "").strip(),
        )
        self._in_flight[request.request_id] = request
        try:
            return await self._run_token(request)
        finally:
            self._in_flight.pop(request.request_id, None)

    async def _run_native(self, request: DonationRequest) -> DonationOutcome:
        outcome = DonationOutcome(request=request)
        request.advance(RequestState.VALIDATING)

        is_valid, value, error = validate_amount(request.amount, NATIVE_DECIMALS)
        if not is_valid:
            return self._fail(outcome, InvalidAmountError(error))
        if self.sender is None:
            return self._fail(outcome, SignerUnavailableError("Wallet private key not configured"))

        value_wei = to_smallest_unit(value, NATIVE_DECIMALS)
        logger.info(
            f"[Donation] {request.request_id[:8]}: {value} native "
            f"for '{request.campaign_name}'"
        )

        request.advance(RequestState.SUBMITTING)
        submitted = await self.sender.send_native(self.charity_wallet_address, value_wei)
        if not submitted.success:
            return self._fail(outcome, TransactionRejectedError(self._describe(submitted)))

        request.advance(RequestState.CONFIRMING)
        outcome.donation_tx_hash = submitted.tx_hash
        confirmed = await self.sender.wait_for_confirmation(submitted.tx_hash)
        if not confirmed.success:
            return self._fail(outcome, TransactionRejectedError(self._describe(confirmed)))

        return self._succeed(outcome)

    async def _run_token(self, request: DonationRequest) -> DonationOutcome:
        outcome = DonationOutcome(request=request)
        request.advance(RequestState.VALIDATING)

        is_valid, error = validate_token_address(request.token_address)
        if not is_valid:
            return self._fail(outcome, InvalidTokenError(error))

        is_valid, value, error = validate_amount(request.amount)
        if not is_valid:
            return self._fail(outcome, InvalidAmountError(error))

        if self.sender is None:
            return self._fail(outcome, SignerUnavailableError("Wallet private key not configured"))

        token_address = Web3.to_checksum_address(request.token_address)

        # Precision always comes from the token itself
        try:
            decimals = await read_token_decimals(self.web3, token_address, self.rpc_timeout)
        except Exception as e:
            if is_connection_error(e):
                return self._fail(
                    outcome, ApprovalRejectedError(f"Could not read token decimals: {e}")
                )
            return self._fail(
                outcome, InvalidTokenError(f"Address does not answer decimals(): {e}")
            )

        is_valid, value, error = validate_amount(value, decimals)
        if not is_valid:
            return self._fail(outcome, InvalidAmountError(error))

        amount_units = to_smallest_unit(value, decimals)
        campaign_id = self.registry.resolve_id(request.campaign_name)
        logger.info(
            f"[Donation] {request.request_id[:8]}: {value} of token "
            f"{mask_address(token_address)} for '{request.campaign_name}' "
            f"(campaign {campaign_id}, {decimals} decimals)"
        )

        # Step 1: approval
        token_contract = self.web3.eth.contract(address=token_address, abi=ERC20_ABI)
        request.advance(RequestState.SUBMITTING)
        submitted = await self.sender.send_contract_call(
            token_contract.functions.approve(self.donation_manager_address, amount_units),
            "approve",
        )
        if not submitted.success:
            return self._fail(outcome, ApprovalRejectedError(self._describe(submitted)))

        request.advance(RequestState.CONFIRMING)
        confirmed = await self.sender.wait_for_confirmation(submitted.tx_hash)
        if not confirmed.success:
            return self._fail(outcome, ApprovalRejectedError(self._describe(confirmed)))
        outcome.approval_tx_hash = confirmed.tx_hash

        # Step 2: donation
        request.advance(RequestState.SUBMITTING)
        submitted = await self.sender.send_contract_call(
            self.manager_contract.functions.donate(token_address, amount_units, campaign_id),
            "donate",
        )
        if not submitted.success:
            return self._fail(outcome, DonationRejectedError(self._describe(submitted)))

        request.advance(RequestState.CONFIRMING)
        outcome.donation_tx_hash = submitted.tx_hash
        confirmed = await self.sender.wait_for_confirmation(submitted.tx_hash)
        if not confirmed.success:
            return self._fail(outcome, DonationRejectedError(self._describe(confirmed)))

        return self._succeed(outcome)

    @staticmethod
    def _describe(result: TransactionResult) -> str:
        if result.tx_hash:
            return f"{result.error or result.status} (tx {result.tx_hash}, {result.status})"
        return result.error or result.status

    @staticmethod
    def _fail(outcome: DonationOutcome, error: DonationLedgerError) -> DonationOutcome:
        request = outcome.request
        request.fail(error)

        if outcome.residual_allowance:
            logger.warning(
                f"[Donation] {request.request_id[:8]} failed after approval "
                f"{outcome.approval_tx_hash}: {error.message}. "
                f"The approved allowance remains on the token."
            )
        else:
            logger.error(f"[Donation] {request.request_id[:8]} failed ({error.code}): {error.message}")
        return outcome

    @staticmethod
    def _succeed(outcome: DonationOutcome) -> DonationOutcome:
        request = outcome.request
        request.advance(RequestState.SUCCEEDED)
        request.amount = ""
        logger.success(
            f"[Donation] {request.request_id[:8]} confirmed: {outcome.donation_tx_hash}"
        )
        return outcome
