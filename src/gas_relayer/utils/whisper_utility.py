"""
Whisper (shh) JSON-RPC utility.

Whisper was removed from web3.py, so the shh_* methods are called directly
through the node provider.
"""

import logging
from typing import Any

from web3 import AsyncWeb3
from web3.types import RPCEndpoint

logger = logging.getLogger(__name__)


class WhisperError(RuntimeError):
    """Raised when the node answers a shh_* call with an error."""


class WhisperUtility:
    """Thin async client for the node's Whisper API."""

    def __init__(self, w3: AsyncWeb3) -> None:
        """
        Initialize the Whisper utility.

        Args:
            w3: Web3 instance connected to a node with the shh API enabled
        """
        self.w3 = w3

    async def _request(self, method: str, params: list[Any]) -> Any:
        logger.debug(f"Calling {method}")
        response = await self.w3.provider.make_request(RPCEndpoint(method), params)

        match response:
            case {"error": {"message": message}}:
                raise WhisperError(f"{method} failed: {message}")
            case {"error": error}:
                raise WhisperError(f"{method} failed: {error}")
            case {"result": result}:
                return result
            case _:
                raise WhisperError(f"{method} returned an unexpected response: {response}")

    async def new_key_pair(self) -> str:
        """Generate a key pair on the node and return its id."""
        return await self._request("shh_newKeyPair", [])

    async def add_sym_key(self, sym_key: str) -> str:
        """Store a raw symmetric key on the node and return its id."""
        return await self._request("shh_addSymKey", [sym_key])

    async def get_public_key(self, key_id: str) -> str:
        return await self._request("shh_getPublicKey", [key_id])

    async def new_message_filter(self, criteria: dict[str, Any]) -> str:
        """
        Install a message filter on the node.

        Args:
            criteria: Filter criteria (symKeyID or privateKeyID, topics, minPow)

        Returns:
            The filter id
        """
        return await self._request("shh_newMessageFilter", [criteria])

    async def get_filter_messages(self, filter_id: str) -> list[dict[str, Any]]:
        """Return the messages received by a filter since the last poll."""
        return await self._request("shh_getFilterMessages", [filter_id]) or []

    async def delete_message_filter(self, filter_id: str) -> bool:
        return await self._request("shh_deleteMessageFilter", [filter_id])

    async def post(self, message: dict[str, Any]) -> str:
        """
        Post an envelope on the Whisper network.

        Args:
            message: Envelope parameters (pubKey or symKeyID, sig, ttl, topic,
                payload, powTime, powTarget)

        Returns:
            Hash of the posted envelope
        """
        return await self._request("shh_post", [message])
