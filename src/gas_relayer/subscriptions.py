"""
Whisper subscription fan-out.

Every registered contract topic gets two message filters on the node: a
public one keyed by the shared symmetric key and a private one keyed by the
relay key pair. Each filter is polled in its own task; every message it
yields is handled in a task of its own, so messages are never queued
behind each other.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .config import WhisperConfig
from .models import ChannelKind, IncomingMessage, Subscription, SubscriptionOptions
from .registry import ContractRegistry
from .utils.whisper_utility import WhisperUtility

logger = logging.getLogger(__name__)

MessageHandler = Callable[[IncomingMessage], Awaitable[None]]


class SubscriptionManager:
    """Opens, polls and removes the relay's Whisper subscriptions."""

    def __init__(self, whisper: WhisperUtility, config: WhisperConfig) -> None:
        """
        Initialize the subscription manager.

        Args:
            whisper: Whisper RPC client
            config: Whisper settings (minimum PoW, polling interval)
        """
        self.whisper = whisper
        self.config = config
        self.subscriptions: list[Subscription] = []
        self._pollers: dict[str, asyncio.Task] = {}
        self._handlers: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self.subscriptions)

    async def open(self, options: SubscriptionOptions) -> Subscription:
        filter_id = await self.whisper.new_message_filter(options.to_filter_params())
        subscription = Subscription(options=options, filter_id=filter_id)
        self.subscriptions.append(subscription)
        logger.debug(f"Opened {options.kind.value} subscription on {options.topic}: {filter_id}")
        return subscription

    async def open_all(
        self,
        registry: ContractRegistry,
        sym_key_id: str,
        key_pair_id: str,
        handler: MessageHandler,
    ) -> list[Subscription]:
        """
        Open the public and private subscription of every registered topic
        and start delivering their messages to the handler.

        Raises:
            WhisperError: If the node refuses a filter
        """
        opened: list[Subscription] = []
        for topic in registry.topics:
            # Public channel - availability probes
            opened.append(await self.open(SubscriptionOptions(
                topic=topic,
                kind=ChannelKind.PUBLIC,
                key_id=sym_key_id,
                min_pow=self.config.min_pow,
            )))
            # Private channel - individual transactions
            opened.append(await self.open(SubscriptionOptions(
                topic=topic,
                kind=ChannelKind.PRIVATE,
                key_id=key_pair_id,
                min_pow=self.config.min_pow,
            )))

        for subscription in opened:
            self._pollers[subscription.filter_id] = asyncio.create_task(
                self._poll(subscription, handler)
            )

        logger.info(f"Listening on {len(opened)} subscriptions for {len(registry)} topics")
        return opened

    async def _poll(self, subscription: Subscription, handler: MessageHandler) -> None:
        while True:
            try:
                messages = await self.whisper.get_filter_messages(subscription.filter_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    f"Error polling {subscription.kind.value} subscription "
                    f"on {subscription.topic}: {e}"
                )
                messages = []

            for raw in messages:
                try:
                    message = IncomingMessage.from_rpc(raw)
                except Exception as e:
                    logger.error(f"Discarding malformed envelope on {subscription.topic}: {e}")
                    continue
                task = asyncio.create_task(handler(message))
                self._handlers.add(task)
                task.add_done_callback(self._handlers.discard)

            await asyncio.sleep(self.config.polling_interval)

    async def _cancel_pollers(self) -> None:
        pollers, self._pollers = list(self._pollers.values()), {}
        current = asyncio.current_task()
        for task in pollers:
            if task is not current and not task.done():
                task.cancel()
        for task in pollers:
            if task is current:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass  # Expected when cancelling

    async def clear(self) -> None:
        """Stop polling and remove every filter from the node."""
        subscriptions, self.subscriptions = self.subscriptions, []
        await self._cancel_pollers()

        for subscription in subscriptions:
            try:
                await self.whisper.delete_message_filter(subscription.filter_id)
            except Exception as e:
                logger.error(f"Failed to remove subscription {subscription.filter_id}: {e}")

        if subscriptions:
            logger.info(f"Cleared {len(subscriptions)} subscriptions")

    async def drain(self) -> None:
        """Wait for in-flight handlers to finish, so their replies go out."""
        current = asyncio.current_task()
        handlers = [task for task in self._handlers if task is not current]
        if handlers:
            logger.info(f"Waiting for {len(handlers)} messages in flight")
            await asyncio.gather(*handlers, return_exceptions=True)

    async def stop(self) -> None:
        """Stop polling and in-flight handlers, leaving the filters on the node."""
        await self._cancel_pollers()

        handlers = list(self._handlers)
        for task in handlers:
            task.cancel()
        await asyncio.gather(*handlers, return_exceptions=True)
