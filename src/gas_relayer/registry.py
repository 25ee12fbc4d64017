"""
Contract registry.

Maps Whisper topics to the contracts the relayer is willing to pay gas for.
The registry is loaded once at startup and never modified afterwards.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from web3 import Web3

from .models import ContractDescriptor, normalize_topic
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class UnknownTopicError(KeyError):
    """Raised when no contract is registered for a topic."""


class ContractRegistry:
    """Read-only topic -> ContractDescriptor mapping."""

    def __init__(self, contracts: Iterable[ContractDescriptor]) -> None:
        self._contracts: dict[str, ContractDescriptor] = {}
        for contract in contracts:
            topic = normalize_topic(contract.topic)
            if topic in self._contracts:
                raise ValueError(
                    f"Topic {topic} of {contract.name} already used by "
                    f"{self._contracts[topic].name}"
                )
            self._contracts[topic] = contract

    @classmethod
    def from_file(cls, contracts_file: str | Path) -> "ContractRegistry":
        """
        Load the registry from a contracts JSON file.

        Args:
            contracts_file: Path of the file

        Returns:
            Populated ContractRegistry

        Raises:
            ValueError: If an entry is missing fields or has an invalid address
        """
        entries = ContractUtility.load_contracts(contracts_file)
        return cls(cls._descriptor_from_entry(entry) for entry in entries)

    @staticmethod
    def _descriptor_from_entry(entry: Mapping[str, Any]) -> ContractDescriptor:
        name = entry.get("name")
        address = entry.get("address")
        if not name:
            raise ValueError(f"Contract entry without a name: {entry}")
        if not address or not Web3.is_address(address):
            raise ValueError(f"Invalid address for contract {name}: {address}")

        signatures = entry.get("allowedFunctions", [])
        allowed = {
            ContractUtility.function_selector(signature): signature
            for signature in signatures
        }

        return ContractDescriptor(
            name=name,
            address=Web3.to_checksum_address(address),
            topic=ContractUtility.topic_for(name),
            allowed_functions=MappingProxyType(allowed),
        )

    def get(self, topic: str) -> ContractDescriptor | None:
        return self._contracts.get(normalize_topic(topic))

    def __getitem__(self, topic: str) -> ContractDescriptor:
        try:
            return self._contracts[normalize_topic(topic)]
        except KeyError:
            raise UnknownTopicError(topic) from None

    def __contains__(self, topic: object) -> bool:
        return isinstance(topic, str) and normalize_topic(topic) in self._contracts

    def __iter__(self) -> Iterator[ContractDescriptor]:
        return iter(self._contracts.values())

    def __len__(self) -> int:
        return len(self._contracts)

    @property
    def topics(self) -> list[str]:
        return list(self._contracts)

    def log_contracts(self) -> None:
        logger.info("Topics Available:")
        for topic, contract in self._contracts.items():
            logger.info(
                f"- {contract.name}: {topic} "
                f"[{', '.join(contract.allowed_functions.values())}]"
            )
