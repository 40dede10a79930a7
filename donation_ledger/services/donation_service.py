"""
Donation ledger service.

Facade used by the presentation layer. Owns the projection and wires the
event fetcher, reconciler, subscription manager and donation workflow
together.
"""

from collections.abc import Callable

from aiohttp import ClientTimeout
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3

from donation_ledger.config.settings import Settings
from donation_ledger.models import DonationOutcome, EventSource, Projection, RawEvent
from donation_ledger.services.blockchain.event_fetcher import EventFetcher
from donation_ledger.services.blockchain.token_metadata import TokenDecimalsCache
from donation_ledger.services.blockchain.transaction_sender import TransactionSender
from donation_ledger.services.campaign_registry import CampaignRegistry
from donation_ledger.services.donation_workflow import DonationWorkflow
from donation_ledger.services.ledger_reconciler import LedgerReconciler
from donation_ledger.services.subscription_manager import SubscriptionManager
from donation_ledger.utils.exceptions import (
    DonationLedgerError,
    FetchError,
    SourceUnavailableError,
)
from donation_ledger.utils.security import mask_address


ProjectionListener = Callable[[Projection], None]


def create_web3(settings: Settings) -> AsyncWeb3:
    """Create the AsyncWeb3 client for the configured RPC endpoint."""
    provider = AsyncHTTPProvider(
        settings.rpc_url,
        request_kwargs={"timeout": ClientTimeout(total=settings.rpc_timeout)},
    )
    return AsyncWeb3(provider)


class DonationLedgerService:
    """
    Donation ledger facade.

    The projection is replaced by a single assignment of an immutable
    snapshot after each successful resync. When two resyncs overlap, the one
    that finishes last wins; both are full rebuilds, so either result is
    consistent.
    """

    def __init__(
        self,
        settings: Settings,
        web3: AsyncWeb3 | None = None,
        registry: CampaignRegistry | None = None,
    ) -> None:
        """
        Initialize service.

        Args:
            settings: Application settings
            web3: AsyncWeb3 instance (created from settings if None)
            registry: Campaign registry (built from settings if None)
        """
        self.settings = settings
        self._owns_web3 = web3 is None
        self.web3 = web3 if web3 is not None else create_web3(settings)
        self.registry = registry or CampaignRegistry(settings.get_campaigns())

        self.fetcher = EventFetcher(
            web3=self.web3,
            donation_manager_address=settings.donation_manager_address,
            charity_wallet_address=settings.charity_wallet_address,
            window_blocks=settings.history_window_blocks,
            rpc_timeout=settings.rpc_timeout,
        )
        self.decimals_cache = TokenDecimalsCache(self.web3, timeout=settings.rpc_timeout)
        self.reconciler = LedgerReconciler(
            self.registry,
            display_limit=settings.recent_donations_limit,
        )

        sender = None
        if settings.wallet_private_key:
            sender = TransactionSender(
                web3=self.web3,
                private_key=settings.wallet_private_key,
                confirmation_timeout=settings.confirmation_timeout,
                rpc_timeout=settings.rpc_timeout,
            )
        else:
            logger.warning(
                "DonationLedgerService initialized without private key - "
                "donations will not work"
            )

        self.workflow = DonationWorkflow(
            web3=self.web3,
            registry=self.registry,
            donation_manager_address=settings.donation_manager_address,
            charity_wallet_address=settings.charity_wallet_address,
            sender=sender,
            rpc_timeout=settings.rpc_timeout,
        )
        self.subscriptions = SubscriptionManager(
            self.fetcher,
            poll_interval=settings.blockchain_poll_interval,
            on_gap_skipped=self._on_gap_skipped,
        )

        self._projection = Projection()
        self._connected = False
        self._projection_listeners: list[ProjectionListener] = []
        self.last_error: DonationLedgerError | None = None

    @property
    def projection(self) -> Projection:
        """Current projection snapshot."""
        return self._projection

    @property
    def is_connected(self) -> bool:
        """Whether the last contact with the node succeeded."""
        return self._connected

    @property
    def account_address(self) -> str | None:
        """Signing account, or None when donations are disabled."""
        if self.workflow.sender is None:
            return None
        return self.workflow.sender.address

    def add_projection_listener(self, listener: ProjectionListener) -> None:
        """Call listener with every newly installed projection."""
        self._projection_listeners.append(listener)

    async def resync(self) -> bool:
        """
        Refetch the history window and rebuild the projection.

        On failure the previous projection stays in place.

        Returns:
            True if a new projection was installed
        """
        try:
            window = await self.fetcher.fetch_window()
        except FetchError as e:
            self.last_error = e
            if isinstance(e, SourceUnavailableError):
                self._connected = False
            logger.error(f"[Resync] Aborted, keeping previous projection: {e}")
            return False

        token_addresses = {event.asset for event in window.ledger_events}
        token_decimals = await self.decimals_cache.get_many(token_addresses)

        reconciliation = self.reconciler.reconcile(
            window.ledger_events,
            window.native_events,
            token_decimals=token_decimals,
        )
        projection = Projection.from_reconciliation(
            reconciliation,
            from_block=window.from_block,
            to_block=window.to_block,
        )

        self._projection = projection
        self._connected = True
        self.last_error = None

        aggregates = projection.aggregates
        logger.success(
            f"[Resync] Blocks {window.from_block}-{window.to_block}: "
            f"{aggregates.donation_count} donations, "
            f"{aggregates.total_native} native, "
            f"{aggregates.total_ledger_asset} in tokens, "
            f"{aggregates.campaigns_supported} campaigns"
        )

        for listener in list(self._projection_listeners):
            try:
                listener(projection)
            except Exception as e:
                logger.exception(f"[Resync] Projection listener failed: {e}")

        return True

    async def _on_new_event(self, source: EventSource, event: RawEvent) -> None:
        logger.info(
            f"[Resync] New {source.event_name} from {mask_address(event.donor)} "
            f"in block {event.block_ref.block_number}"
        )
        await self.resync()

    async def _on_gap_skipped(self, source: EventSource, first_block: int, last_block: int) -> None:
        logger.warning(
            f"[Resync] {source.event_name} blocks {first_block}-{last_block} were not polled, "
            f"rebuilding from the history window"
        )
        await self.resync()

    async def start(self) -> bool:
        """
        Load the initial projection and start watching for new events.

        Returns:
            Result of the initial resync
        """
        synced = await self.resync()
        self.subscriptions.subscribe(
            (EventSource.LEDGER, EventSource.NATIVE),
            self._on_new_event,
        )
        # Poll from the end of the loaded window so nothing mined meanwhile is missed
        await self.subscriptions.start(from_block=self._projection.to_block)
        return synced

    async def stop(self) -> None:
        """Stop watchers and close the RPC session."""
        await self.subscriptions.stop()
        if self._owns_web3:
            await self.web3.provider.disconnect()

    async def submit_native_donation(self, amount: str, campaign_name: str) -> DonationOutcome:
        """Donate native currency; see DonationWorkflow.submit_native_donation."""
        return await self.workflow.submit_native_donation(amount, campaign_name)

    async def submit_token_donation(
        self,
        token_address: str,
        amount: str,
        campaign_name: str,
    ) -> DonationOutcome:
        """Donate ERC-20 tokens; see DonationWorkflow.submit_token_donation."""
        return await self.workflow.submit_token_donation(token_address, amount, campaign_name)


# Forward declaration for the singleton
_donation_service: DonationLedgerService | None = None


def get_donation_service() -> DonationLedgerService:
    """
    Get the singleton donation service instance.

    Raises:
        RuntimeError: If service not initialized
    """
    if _donation_service is None:
        raise RuntimeError("DonationLedgerService not initialized")
    return _donation_service


def init_donation_service(
    settings: Settings,
    web3: AsyncWeb3 | None = None,
) -> DonationLedgerService:
    """
    Initialize the singleton donation service instance.

    Args:
        settings: Application settings
        web3: Optional AsyncWeb3 instance
    """
    global _donation_service
    _donation_service = DonationLedgerService(settings, web3=web3)
    return _donation_service
