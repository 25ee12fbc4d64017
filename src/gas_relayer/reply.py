"""
Reply channel: answers a request on the topic it arrived on, encrypted to
the public key the sender attached to its message.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from web3 import Web3

from .config import WhisperConfig
from .models import IncomingMessage, ReplyContext
from .utils.whisper_utility import WhisperUtility

logger = logging.getLogger(__name__)

Reply = Callable[..., Awaitable[None]]


def build_reply_payload(text: str, receipt: Any = None) -> str:
    """Serialize a reply envelope as hex encoded, 1-space indented JSON."""
    receipt_data = json.loads(Web3.to_json(receipt)) if receipt is not None else None
    body = json.dumps({"message": text, "receipt": receipt_data}, indent=1)
    return Web3.to_hex(text=body)


class ReplyChannel:
    """Publishes replies signed with the relay key pair."""

    def __init__(self, whisper: WhisperUtility, config: WhisperConfig, key_pair_id: str) -> None:
        """
        Initialize the reply channel.

        Args:
            whisper: Whisper RPC client
            config: Whisper settings (ttl and proof-of-work)
            key_pair_id: Node id of the relay key pair used to sign replies
        """
        self.whisper = whisper
        self.config = config
        self.key_pair_id = key_pair_id

    def context_for(self, message: IncomingMessage) -> ReplyContext:
        return ReplyContext(
            recipient_key=message.sig,
            topic=message.topic,
            sig_key_id=self.key_pair_id,
            ttl=self.config.ttl,
            pow_target=self.config.min_pow,
            pow_time=self.config.pow_time,
        )

    def bind(self, message: IncomingMessage) -> Reply:
        """Return a reply callable answering the sender of a message."""
        context = self.context_for(message)

        async def reply(text: str, receipt: Any = None) -> None:
            await self.send(context, text, receipt)

        return reply

    async def send(self, context: ReplyContext, text: str, receipt: Any = None) -> None:
        """
        Publish a reply. Best effort: failures are logged, never raised.

        Messages without a sender key cannot be answered and are dropped.
        """
        if context.recipient_key is None:
            logger.debug(f"No sender key on topic {context.topic}, dropping reply '{text}'")
            return

        logger.info(f"Reply to {context.recipient_key[:10]}... on {context.topic}: {text}")
        try:
            await self.whisper.post({
                "pubKey": context.recipient_key,
                "sig": context.sig_key_id,
                "ttl": context.ttl,
                "powTarget": context.pow_target,
                "powTime": context.pow_time,
                "topic": context.topic,
                "payload": build_reply_payload(text, receipt),
            })
        except Exception as e:
            logger.error(f"Failed to publish reply on {context.topic}: {e}")
