"""
Process lifecycle: shutdown paths, signal handlers and the last-resort
fault handler of the event loop.
"""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

# Every planned stop (no node, no funds, shutdown, SIGTERM) exits successfully
EXIT_SUCCESS = 0


class Lifecycle:
    """Tracks whether the relayer should stop and with which exit status."""

    def __init__(self, subscriptions: "SubscriptionManager") -> None:
        self.subscriptions = subscriptions
        self.shutdown_event = asyncio.Event()
        self.exit_code: int | None = None
        self._signal_tasks: set[asyncio.Task] = set()
        self.closing = False

    @property
    def stopping(self) -> bool:
        return self.shutdown_event.is_set()

    @property
    def interrupted(self) -> bool:
        """True once any stop was requested, including a shutdown still clearing."""
        return self.closing or self.stopping

    def exit(self, code: int = EXIT_SUCCESS) -> None:
        """Stop the run loop. The first requested exit code wins."""
        if self.exit_code is None:
            self.exit_code = code
        self.shutdown_event.set()

    async def wait(self) -> int:
        await self.shutdown_event.wait()
        return self.exit_code if self.exit_code is not None else EXIT_SUCCESS

    async def shutdown(self) -> None:
        """
        Explicit shutdown: remove every subscription, let the messages
        being handled send their replies, then stop.
        """
        self.closing = True
        await self.subscriptions.clear()
        await self.subscriptions.drain()
        logger.info("Closing service...")
        self.exit(EXIT_SUCCESS)

    def terminate(self) -> None:
        """
        SIGTERM: stop the run loop.

        Whisper filters are left installed on the node, unlike shutdown().
        """
        logger.info("Stopping...")
        self.exit(EXIT_SUCCESS)

    def request_shutdown(self) -> None:
        task = asyncio.ensure_future(self.shutdown())
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    def handle_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        """Log faults nothing else caught. The relayer keeps running."""
        exception = context.get("exception")
        logger.error(
            f"Uncaught fault: {context.get('message', 'unhandled exception')}",
            exc_info=exception,
        )

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.add_signal_handler(signal.SIGTERM, self.terminate)
        loop.add_signal_handler(signal.SIGINT, self.request_shutdown)
        loop.set_exception_handler(self.handle_exception)

    def uninstall(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.remove_signal_handler(signal.SIGTERM)
        loop.remove_signal_handler(signal.SIGINT)
        loop.set_exception_handler(None)
