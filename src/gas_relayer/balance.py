"""
Relayer funding guard.
"""

import logging
from typing import TYPE_CHECKING

from web3 import AsyncWeb3

from .lifecycle import EXIT_SUCCESS

if TYPE_CHECKING:
    from .lifecycle import Lifecycle
    from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)


class BalanceGuard:
    """Stops the relayer once its account can no longer pay for gas.

    The balance is read from the node on every check and never cached.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        account: str,
        min_balance: int,
        subscriptions: "SubscriptionManager",
        lifecycle: "Lifecycle",
    ) -> None:
        """
        Initialize the balance guard.

        Args:
            w3: Web3 instance connected to the node
            account: Relayer account address
            min_balance: Threshold in wei; a balance at or below it is insufficient
            subscriptions: Subscriptions to tear down on a mid-operation halt
            lifecycle: Lifecycle controller used to stop the relayer
        """
        self.w3 = w3
        self.account = account
        self.min_balance = min_balance
        self.subscriptions = subscriptions
        self.lifecycle = lifecycle

    async def get_balance(self) -> int:
        return int(await self.w3.eth.get_balance(self.account))

    async def check_balance(self, halt_subscriptions_on_failure: bool = False) -> bool:
        """
        Verify the relayer account is funded, stopping the relayer if not.

        Args:
            halt_subscriptions_on_failure: Clear all subscriptions before
                stopping (used once the relayer is listening)

        Returns:
            True if the balance is above the threshold
        """
        balance = await self.get_balance()
        if balance > self.min_balance:
            return True

        logger.warning("Not enough balance available for processing transactions")
        logger.warning(f"> Account: {self.account}")
        logger.warning(f"> Balance: {balance}")

        if halt_subscriptions_on_failure:
            await self.subscriptions.clear()

        self.lifecycle.exit(EXIT_SUCCESS)
        return False
