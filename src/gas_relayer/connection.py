"""
Node connection bootstrap.
"""

import logging

from web3 import AsyncWeb3

logger = logging.getLogger(__name__)


class NodeConnection:
    """Liveness of the node the relayer talks to."""

    def __init__(self, url: str, w3: AsyncWeb3) -> None:
        self.url = url
        self.w3 = w3
        self.connected = False

    async def connect(self) -> bool:
        """
        Probe the node once. A failure is not retried.

        Returns:
            True if the node is listening
        """
        try:
            self.connected = bool(await self.w3.net.listening)
        except Exception as e:
            logger.error(f"Failed to connect to node at {self.url}: {e}")
            self.connected = False
            return False

        if not self.connected:
            logger.error(f"Node at {self.url} is not listening")
            return False

        logger.info(f"Connected to '{self.url}'")
        return True
