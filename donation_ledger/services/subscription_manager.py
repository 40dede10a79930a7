"""
Live subscription manager.

Watches both donation event sources for new logs and notifies the registered
listener. The registry holds at most one listener per source: subscribing
again replaces the previous listener in a single step, so repeated
subscription can never produce duplicate notifications.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger

from donation_ledger.config.constants import BLOCKCHAIN_POLL_INTERVAL
from donation_ledger.models import EventSource, RawEvent
from donation_ledger.services.blockchain.event_fetcher import EventFetcher
from donation_ledger.utils.exceptions import FetchError, RangeTooLargeError


EventListener = Callable[[EventSource, RawEvent], Awaitable[None]]
GapListener = Callable[[EventSource, int, int], Awaitable[None]]


class SubscriptionManager:
    """
    Subscription registry keyed by event source.

    Features:
    - One listener per source, replaced atomically on re-subscription
    - Per-source polling watcher tracking the last seen block
    - Gap hook called when a block range had to be skipped
    """

    def __init__(
        self,
        fetcher: EventFetcher,
        poll_interval: float = BLOCKCHAIN_POLL_INTERVAL,
        on_gap_skipped: GapListener | None = None,
    ) -> None:
        """
        Initialize subscription manager.

        Args:
            fetcher: Event fetcher used to poll for new logs
            poll_interval: Seconds between polls
            on_gap_skipped: Called with (source, first, last) after blocks were
                skipped because the node rejected the range
        """
        self.fetcher = fetcher
        self.poll_interval = poll_interval
        self.on_gap_skipped = on_gap_skipped

        self._listeners: dict[EventSource, EventListener] = {}
        self._last_seen_block: dict[EventSource, int] = {}
        self._watchers: dict[EventSource, asyncio.Task] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(
        self,
        sources: Iterable[EventSource],
        on_new_event: EventListener,
    ) -> None:
        """
        Register on_new_event for every source, replacing existing listeners.

        No await happens between clearing and registering, so no
        notification can observe a source with zero or two listeners.
        """
        for source in sources:
            replaced = self._listeners.pop(source, None)
            self._listeners[source] = on_new_event

            if replaced is not None:
                logger.debug(f"[Subscriptions] Replaced listener for {source.event_name}")
            else:
                logger.info(f"[Subscriptions] Subscribed to {source.event_name}")

            if self._running:
                self._ensure_watcher(source)

    resubscribe = subscribe

    def unsubscribe(self, source: EventSource) -> None:
        """Remove the listener and watcher for source."""
        self._listeners.pop(source, None)
        self._last_seen_block.pop(source, None)
        watcher = self._watchers.pop(source, None)
        if watcher is not None:
            watcher.cancel()
        logger.info(f"[Subscriptions] Unsubscribed from {source.event_name}")

    def listener_count(self, source: EventSource) -> int:
        return 1 if source in self._listeners else 0

    async def dispatch(self, source: EventSource, event: RawEvent) -> bool:
        """
        Deliver one new event to the listener of its source.

        Returns:
            True if a listener was notified
        """
        listener = self._listeners.get(source)
        if listener is None:
            return False

        try:
            await listener(source, event)
        except Exception as e:
            logger.exception(f"[Subscriptions] {source.event_name} listener failed: {e}")
        return True

    async def poll_once(self, source: EventSource) -> int:
        """
        Fetch logs added since the last poll and dispatch them.

        Without a starting block (see start()) the first poll only records
        the chain head.

        When the node rejects the gap since the last poll, the watcher moves
        on to the head and calls on_gap_skipped once so the owner can rebuild
        from its own window.

        Returns:
            Number of events dispatched

        Raises:
            FetchError: If the node cannot serve the query
        """
        head = await self.fetcher.get_head_block()
        last_seen = self._last_seen_block.get(source)

        if last_seen is None:
            self._last_seen_block[source] = head
            return 0
        if head <= last_seen:
            return 0

        try:
            events = await self.fetcher.fetch_range(source, last_seen + 1, head)
        except RangeTooLargeError as e:
            logger.warning(
                f"[Subscriptions] {source.event_name} gap {last_seen + 1}-{head} too large, "
                f"skipping to head: {e}"
            )
            self._last_seen_block[source] = head
            await self._notify_gap(source, last_seen + 1, head)
            return 0

        self._last_seen_block[source] = head

        for event in events:
            await self.dispatch(source, event)

        if events:
            logger.info(
                f"[Subscriptions] {len(events)} new {source.event_name} "
                f"event(s) up to block {head}"
            )
        return len(events)

    async def _notify_gap(self, source: EventSource, first_block: int, last_block: int) -> None:
        if self.on_gap_skipped is None:
            return
        try:
            await self.on_gap_skipped(source, first_block, last_block)
        except Exception as e:
            logger.exception(f"[Subscriptions] Gap handler for {source.event_name} failed: {e}")

    async def start(self, from_block: int | None = None) -> None:
        """
        Start a watcher for every subscribed source.

        Args:
            from_block: Last block already covered by the caller (usually the
                installed projection's to_block); the first poll then picks
                up everything after it
        """
        if self._running:
            return
        self._running = True
        for source in list(self._listeners):
            if from_block is not None:
                self._last_seen_block[source] = from_block
            self._ensure_watcher(source)

    async def stop(self) -> None:
        """Cancel all watchers and wait for them to finish."""
        self._running = False
        watchers = list(self._watchers.values())
        self._watchers.clear()

        for watcher in watchers:
            watcher.cancel()
        await asyncio.gather(*watchers, return_exceptions=True)

        logger.info("[Subscriptions] Watchers stopped")

    def _ensure_watcher(self, source: EventSource) -> None:
        watcher = self._watchers.get(source)
        if watcher is not None and not watcher.done():
            return
        self._watchers[source] = asyncio.create_task(
            self._watch(source), name=f"watch-{source.value}"
        )

    async def _watch(self, source: EventSource) -> None:
        logger.debug(f"[Subscriptions] Watching {source.event_name} every {self.poll_interval}s")
        while source in self._listeners:
            try:
                await self.poll_once(source)
            except FetchError as e:
                logger.warning(f"[Subscriptions] Poll of {source.event_name} failed: {e}")
            except Exception as e:
                logger.exception(f"[Subscriptions] Unexpected poll error for {source.event_name}: {e}")
            await asyncio.sleep(self.poll_interval)
