"""
Donation event fetching.

This module handles:
- DonationReceived log queries against the donation ledger contract
- ETHDonation log queries against the charity wallet
- Classifying node failures into SourceUnavailable / RangeTooLarge
"""

from dataclasses import dataclass
from typing import Any, Literal

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3, Web3

from donation_ledger.config.constants import (
    BLOCKCHAIN_LONG_TIMEOUT,
    BLOCKCHAIN_TIMEOUT,
    HISTORY_WINDOW_BLOCKS,
)
from donation_ledger.models import (
    BlockRef,
    EventSource,
    LedgerDonationEvent,
    NativeDonationEvent,
    RawEvent,
)
from donation_ledger.utils.exceptions import (
    NODE_ERRORS,
    RangeTooLargeError,
    SourceUnavailableError,
    is_connection_error,
)
from donation_ledger.utils.security import mask_address

from .constants import CHARITY_WALLET_ABI, DONATION_MANAGER_ABI
from .rpc_wrapper import with_timeout


BlockTag = int | Literal["latest"]

# Error texts nodes use when a log query spans too many blocks or results
_RANGE_ERROR_MARKERS = (
    "block range",
    "range too large",
    "range is too large",
    "exceed maximum",
    "exceeds max",
    "query returned more than",
    "too many blocks",
    "response size exceeded",
    "log response size",
)


def is_range_error(exc: Exception) -> bool:
    """Check if a node error means the requested block window was rejected."""
    message = str(exc).lower()
    return any(marker in message for marker in _RANGE_ERROR_MARKERS)


@dataclass(frozen=True)
class FetchedWindow:
    """Both event streams fetched over the same block window."""

    ledger_events: list[LedgerDonationEvent]
    native_events: list[NativeDonationEvent]
    from_block: int
    to_block: int


class EventFetcher:
    """
    Retrieves raw donation events from the two on-chain sources.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        donation_manager_address: str,
        charity_wallet_address: str,
        window_blocks: int = HISTORY_WINDOW_BLOCKS,
        rpc_timeout: float = BLOCKCHAIN_TIMEOUT,
        scan_timeout: float = BLOCKCHAIN_LONG_TIMEOUT,
    ) -> None:
        """
        Initialize event fetcher.

        Args:
            web3: AsyncWeb3 instance
            donation_manager_address: Donation ledger contract address
            charity_wallet_address: Charity wallet contract address
            window_blocks: Blocks refetched back from the head on every resync
            rpc_timeout: Timeout for short RPC calls
            scan_timeout: Timeout for log queries
        """
        if window_blocks <= 0:
            raise ValueError("window_blocks must be positive")

        self.web3 = web3
        self.donation_manager_address = to_checksum_address(donation_manager_address)
        self.charity_wallet_address = to_checksum_address(charity_wallet_address)
        self.window_blocks = window_blocks
        self.rpc_timeout = rpc_timeout
        self.scan_timeout = scan_timeout

        self.manager_contract = web3.eth.contract(
            address=self.donation_manager_address,
            abi=DONATION_MANAGER_ABI,
        )
        self.wallet_contract = web3.eth.contract(
            address=self.charity_wallet_address,
            abi=CHARITY_WALLET_ABI,
        )

    def _contract_for(self, source: EventSource) -> Any:
        if source is EventSource.LEDGER:
            return self.manager_contract
        return self.wallet_contract

    async def get_head_block(self) -> int:
        """
        Get current chain head.

        Raises:
            SourceUnavailableError: If the node cannot be reached
        """
        try:
            return await with_timeout(
                self.web3.eth.block_number,
                timeout=self.rpc_timeout,
                operation_name="Get block number",
            )
        except Exception as e:
            if is_connection_error(e) or isinstance(e, NODE_ERRORS):
                raise SourceUnavailableError(f"Cannot read chain head: {e}") from e
            raise

    def history_window(self, head: int) -> tuple[int, int]:
        """Block window covered by a resync: the last window_blocks up to head."""
        return max(0, head - self.window_blocks), head

    async def fetch_range(
        self,
        source: EventSource,
        from_block: int,
        to_block: BlockTag,
    ) -> list[RawEvent]:
        """
        Query one event source over [from_block, to_block].

        Args:
            source: Event source to query
            from_block: First block (inclusive)
            to_block: Last block (inclusive) or "latest"

        Returns:
            Decoded events in arrival (block, log index) order

        Raises:
            SourceUnavailableError: If the node cannot be reached
            RangeTooLargeError: If the node rejects the block window
        """
        event = getattr(self._contract_for(source).events, source.event_name)

        try:
            logs = await with_timeout(
                event.get_logs(from_block=from_block, to_block=to_block),
                timeout=self.scan_timeout,
                operation_name=f"{source.event_name} logs {from_block}-{to_block}",
            )
        except Exception as e:
            if is_range_error(e):
                logger.warning(
                    f"[Fetch] Node rejected {source.event_name} window "
                    f"{from_block}-{to_block}: {e}"
                )
                raise RangeTooLargeError(
                    f"Block window {from_block}-{to_block} rejected for {source}: {e}"
                ) from e
            if is_connection_error(e) or isinstance(e, NODE_ERRORS):
                logger.error(f"[Fetch] {source.event_name} query failed: {e}")
                raise SourceUnavailableError(
                    f"Cannot fetch {source.event_name} events: {e}"
                ) from e
            raise

        events = [self.parse_log(source, log) for log in logs]
        logger.debug(
            f"[Fetch] {source.event_name} blocks {from_block}-{to_block}: "
            f"{len(events)} events"
        )
        return events

    async def fetch_window(self) -> FetchedWindow:
        """
        Fetch both streams over the default history window.

        Raises:
            SourceUnavailableError: If the node cannot be reached
            RangeTooLargeError: If the node rejects the window
        """
        head = await self.get_head_block()
        from_block, to_block = self.history_window(head)

        ledger_events = await self.fetch_range(EventSource.LEDGER, from_block, to_block)
        native_events = await self.fetch_range(EventSource.NATIVE, from_block, to_block)

        logger.info(
            f"[Fetch] Blocks {from_block}-{to_block}: "
            f"{len(ledger_events)} ledger donations, "
            f"{len(native_events)} native donations "
            f"(manager {mask_address(self.donation_manager_address)}, "
            f"wallet {mask_address(self.charity_wallet_address)})"
        )

        return FetchedWindow(
            ledger_events=ledger_events,
            native_events=native_events,
            from_block=from_block,
            to_block=to_block,
        )

    @staticmethod
    def parse_log(source: EventSource, log: Any) -> RawEvent:
        """
        Decode a web3 event log into a RawEvent.

        Args:
            source: Source the log came from
            log: Decoded log (AttributeDict with "args")

        Returns:
            LedgerDonationEvent or NativeDonationEvent
        """
        args = log["args"]
        tx_hash = log.get("transactionHash")
        block_ref = BlockRef(
            block_number=int(log["blockNumber"]),
            tx_hash=Web3.to_hex(tx_hash) if tx_hash is not None else "",
            log_index=int(log.get("logIndex", 0) or 0),
        )

        if source is EventSource.LEDGER:
            return LedgerDonationEvent(
                donor=args["donor"],
                asset=args["token"],
                amount=int(args["amount"]),
                campaign_id=int(args["campaignId"]),
                timestamp=int(args["timestamp"]),
                block_ref=block_ref,
            )

        return NativeDonationEvent(
            donor=args["donor"],
            amount=int(args["amount"]),
            timestamp=int(args["timestamp"]),
            block_ref=block_ref,
        )
