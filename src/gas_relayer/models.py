"""
Shared data models for the Gas Relayer.

This module contains data classes and types used across the relayer components.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ACTION_TRANSACTION = "transaction"
ACTION_AVAILABILITY = "availability"


def normalize_topic(topic: str) -> str:
    """Return a topic as lowercase hex with a 0x prefix."""
    return "0x" + topic.lower().removeprefix("0x")


@dataclass(frozen=True, slots=True)
class ContractDescriptor:
    """A contract the relayer pays gas for.

    Attributes:
        name: Contract name, also the source of its topic
        address: Checksummed contract address
        topic: 4-byte Whisper topic (0x-prefixed hex)
        allowed_functions: Mapping of function selector to solidity signature
    """
    name: str
    address: str
    topic: str
    allowed_functions: Mapping[str, str] = field(default_factory=dict)

    def allows(self, selector: str | None) -> bool:
        return selector is not None and selector.lower() in self.allowed_functions


class ChannelKind(Enum):
    """Kind of Whisper channel a subscription listens on."""
    PUBLIC = "public"  # shared symmetric key, availability probes
    PRIVATE = "private"  # relay key pair, transaction requests


@dataclass(frozen=True, slots=True)
class SubscriptionOptions:
    """Immutable filter options for a single Whisper subscription."""
    topic: str
    kind: ChannelKind
    key_id: str
    min_pow: float

    def to_filter_params(self) -> dict[str, Any]:
        """Build the shh_newMessageFilter criteria for this subscription."""
        params: dict[str, Any] = {
            "topics": [self.topic],
            "minPow": self.min_pow,
            "allowP2P": True,
        }
        match self.kind:
            case ChannelKind.PUBLIC:
                params["symKeyID"] = self.key_id
            case ChannelKind.PRIVATE:
                params["privateKeyID"] = self.key_id
        return params


@dataclass(frozen=True, slots=True)
class Subscription:
    """An open Whisper message filter bound to one topic and channel."""
    options: SubscriptionOptions
    filter_id: str

    @property
    def topic(self) -> str:
        return self.options.topic

    @property
    def kind(self) -> ChannelKind:
        return self.options.kind


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    """A Whisper envelope received on one of the relay subscriptions.

    Attributes:
        payload: Hex encoded, already decrypted payload
        sig: Public key of the sender, None for anonymous messages
        topic: Topic the message was posted on
        timestamp: Envelope timestamp (Unix seconds)
        hash: Envelope hash
    """
    payload: str
    sig: str | None
    topic: str
    timestamp: int = 0
    hash: str = ""

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any]) -> "IncomingMessage":
        return cls(
            payload=data.get("payload") or "0x",
            sig=data.get("sig") or None,
            topic=normalize_topic(data.get("topic") or "0x"),
            timestamp=int(data.get("timestamp") or 0),
            hash=data.get("hash") or "",
        )

    def __str__(self) -> str:
        sender = f"{self.sig[:10]}..." if self.sig else "anonymous"
        return f"IncomingMessage(topic={self.topic}, sender={sender}, hash={self.hash[:10]})"


@dataclass(frozen=True, slots=True)
class DecodedRequest:
    """Structured view of an inbound relay request.

    Fields that do not belong to the declared action stay None. A request
    that failed to decode has every field set to None.
    """
    contract: str | None = None
    address: str | None = None
    action: str | None = None
    # transaction
    function_name: str | None = None
    function_parameters: str | None = None
    encoded_function_call: str | None = None
    # availability
    token: str | None = None
    gas_price: str | None = None


@dataclass(frozen=True, slots=True)
class ReplyContext:
    """What is needed to answer a message. Never persisted."""
    recipient_key: str | None
    topic: str
    sig_key_id: str
    ttl: int
    pow_target: float
    pow_time: int
