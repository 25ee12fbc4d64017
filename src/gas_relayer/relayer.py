"""
Gas Relayer implementation.

This module contains the relayer service: it bootstraps the node connection,
opens the Whisper subscriptions of every registered contract and answers
each inbound message, forwarding transaction requests to the executor.
"""

import asyncio
import logging

from web3 import AsyncWeb3

from .balance import BalanceGuard
from .config import RelayerConfig
from .connection import NodeConnection
from .decoder import decode
from .dispatcher import Dispatcher
from .executor import TransactionExecutor
from .lifecycle import EXIT_SUCCESS, Lifecycle
from .models import IncomingMessage
from .registry import ContractRegistry
from .reply import ReplyChannel
from .subscriptions import SubscriptionManager
from .utils.contract_utility import ContractUtility
from .utils.rofl_utility import RoflUtility
from .utils.whisper_utility import WhisperUtility

logger = logging.getLogger(__name__)


class GasRelayer:
    """
    Relay service that pays gas for requests received over Whisper.

    Startup is a straight sequence of steps; each inbound message is then
    handled independently behind its own error boundary.
    """

    def __init__(
        self,
        config: RelayerConfig,
        w3: AsyncWeb3 | None = None,
        whisper: WhisperUtility | None = None,
    ) -> None:
        """
        Initialize the Gas Relayer.

        Args:
            config: Relayer configuration
            w3: Web3 instance to use instead of one built from the config
            whisper: Whisper client to use instead of one built on w3
        """
        self.config = config
        self.local_mode = config.local_mode

        if w3 is None:
            contract_util = ContractUtility(
                rpc_url=config.node.url,
                secret=config.local_private_key if self.local_mode else "",
            )
            w3 = contract_util.w3
        self.w3 = w3
        self.whisper = whisper or WhisperUtility(self.w3)
        self.rofl_util = None if self.local_mode else RoflUtility()

        self.connection = NodeConnection(config.node.url, self.w3)
        self.subscriptions = SubscriptionManager(self.whisper, config.whisper)
        self.lifecycle = Lifecycle(self.subscriptions)
        self.balance_guard = BalanceGuard(
            w3=self.w3,
            account=config.blockchain.account,
            min_balance=config.blockchain.min_balance,
            subscriptions=self.subscriptions,
            lifecycle=self.lifecycle,
        )
        self.dispatcher = Dispatcher(TransactionExecutor(
            w3=self.w3,
            account=config.blockchain.account,
            rofl_util=self.rofl_util,
            gas_limit=config.blockchain.gas_limit,
            receipt_timeout=config.blockchain.receipt_timeout,
        ))

        # Set during startup, read-only afterwards
        self.registry: ContractRegistry | None = None
        self.reply_channel: ReplyChannel | None = None

    @classmethod
    def from_env(cls, local_mode: bool = False) -> "GasRelayer":
        """
        Create a GasRelayer instance from environment variables.

        Raises:
            ValueError: If required environment variables are missing
        """
        config = RelayerConfig.from_env(local_mode=local_mode)
        config.log_config()
        return cls(config)

    async def setup_identity(self) -> tuple[str, str]:
        """
        Create the relay key pair and register the shared symmetric key.

        Returns:
            Tuple of (symmetric key id, key pair id)
        """
        key_pair_id = await self.whisper.new_key_pair()
        sym_key_id = await self.whisper.add_sym_key(self.config.whisper.sym_key)
        public_key = await self.whisper.get_public_key(key_pair_id)

        logger.info("Sym Key: [CONFIGURED]")
        logger.info(f"Relayer Public Key: {public_key}")

        self.reply_channel = ReplyChannel(self.whisper, self.config.whisper, key_pair_id)
        return sym_key_id, key_pair_id

    async def handle_message(self, message: IncomingMessage) -> None:
        """Answer one inbound message. Never raises."""
        if self.lifecycle.stopping:
            return

        try:
            if not await self.balance_guard.check_balance(halt_subscriptions_on_failure=True):
                return

            request = decode(message.payload)
            reply = self.reply_channel.bind(message)
            await self.dispatcher.dispatch(self.registry.get(message.topic), request, reply)
        except Exception as e:
            logger.error(f"Error handling {message}: {e}", exc_info=True)

    async def _start(self) -> int | None:
        if not await self.connection.connect():
            self.lifecycle.exit(EXIT_SUCCESS)
            return self.lifecycle.exit_code

        self.registry = ContractRegistry.from_file(self.config.contracts_file)
        logger.info(f"Loaded {len(self.registry)} contracts from {self.config.contracts_file}")

        if not await self.balance_guard.check_balance():
            return self.lifecycle.exit_code
        if self.lifecycle.interrupted:
            return await self.lifecycle.wait()

        sym_key_id, key_pair_id = await self.setup_identity()
        if self.lifecycle.interrupted:
            return await self.lifecycle.wait()
        self.registry.log_contracts()

        try:
            await self.subscriptions.open_all(
                self.registry, sym_key_id, key_pair_id, self.handle_message
            )
        except Exception:
            await self.subscriptions.clear()
            raise

        # Stop requested while the filters were being opened
        if self.lifecycle.interrupted:
            if self.lifecycle.closing:
                await self.subscriptions.clear()
            return await self.lifecycle.wait()

        return None

    async def run(self) -> int:
        """
        Run the relayer until it is stopped.

        Returns:
            Process exit status
        """
        logger.info("Starting...")
        loop = asyncio.get_running_loop()
        self.lifecycle.install(loop)

        try:
            if (exit_code := await self._start()) is not None:
                return exit_code

            logger.info("Waiting for messages...")
            return await self.lifecycle.wait()
        finally:
            await self.subscriptions.stop()
            self.lifecycle.uninstall(loop)
            logger.info("Gas Relayer stopped")

    async def shutdown(self) -> None:
        """Stop the relayer, removing its subscriptions from the node."""
        await self.lifecycle.shutdown()
