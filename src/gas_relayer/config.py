#!/usr/bin/env python3
"""Configuration management for the Gas Relayer.

This module provides type-safe configuration dataclasses with validation
for the relayer. Configuration is loaded from environment variables with
sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass
from typing import ClassVar

from eth_account import Account
from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """Configuration for the Ethereum node exposing the shh and eth APIs.

    Attributes:
        protocol: RPC protocol (http or https)
        host: Node host name
        port: Node RPC port
    """

    protocol: str = "http"
    host: str = "localhost"
    port: int = 8545

    SUPPORTED_PROTOCOLS: ClassVar[set[str]] = {"http", "https"}

    def __post_init__(self) -> None:
        """Validate node configuration."""
        if self.protocol not in self.SUPPORTED_PROTOCOLS:
            raise ValueError(
                f"Invalid node protocol: {self.protocol}. "
                f"Expected one of: {', '.join(sorted(self.SUPPORTED_PROTOCOLS))}"
            )

        if not self.host:
            raise ValueError("Node host is required (NODE_HOST)")

        if not 0 < self.port < 65536:
            raise ValueError(f"Node port must be between 1 and 65535, got {self.port}")

    @property
    def url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class BlockchainConfig:
    """Configuration for the relayer account paying the gas.

    Attributes:
        account: Checksummed address of the relayer account
        min_balance: Balance threshold in wei; at or below it the relay stops
        gas_limit: Fixed gas limit for relayed calls (None to estimate)
        receipt_timeout: Seconds to wait for a transaction receipt
    """

    account: str
    min_balance: int = 100000
    gas_limit: int | None = None
    receipt_timeout: int = 120

    def __post_init__(self) -> None:
        """Validate blockchain configuration."""
        if not self.account:
            raise ValueError("Relayer account is required (RELAYER_ACCOUNT)")

        if not Web3.is_address(self.account):
            raise ValueError(f"Invalid relayer account: {self.account}")

        checksummed = Web3.to_checksum_address(self.account)
        if checksummed != self.account:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'account', checksummed)

        if self.min_balance < 0:
            raise ValueError(f"Minimum balance must be non-negative, got {self.min_balance}")

        if self.gas_limit is not None and self.gas_limit <= 0:
            raise ValueError(f"Gas limit must be positive, got {self.gas_limit}")

        if self.receipt_timeout <= 0:
            raise ValueError(f"Receipt timeout must be positive, got {self.receipt_timeout}")


@dataclass(frozen=True, slots=True)
class WhisperConfig:
    """Configuration for the Whisper transport.

    Attributes:
        sym_key: Shared symmetric key (32 bytes, hex) of the public channel
        ttl: Time-to-live of outbound envelopes in seconds
        min_pow: Proof-of-work target of outbound envelopes and subscriptions
        pow_time: Maximum time in seconds spent on proof-of-work
        polling_interval: Seconds between message filter polls
    """

    sym_key: str
    ttl: int = 10
    min_pow: float = 0.002
    pow_time: int = 1
    polling_interval: float = 1.0

    def __post_init__(self) -> None:
        """Validate Whisper configuration."""
        if not self.sym_key:
            raise ValueError("Whisper symmetric key is required (WHISPER_SYM_KEY)")

        key = self.sym_key.removeprefix('0x')
        if len(key) != 64:
            raise ValueError(
                f"Invalid symmetric key length. Expected 64 hex characters, got {len(key)}"
            )
        try:
            int(key, 16)
        except ValueError:
            raise ValueError("Invalid symmetric key format. Must be hexadecimal") from None

        if not self.sym_key.startswith('0x'):
            object.__setattr__(self, 'sym_key', '0x' + key)

        if self.ttl <= 0:
            raise ValueError(f"Whisper TTL must be positive, got {self.ttl}")
        if self.min_pow < 0:
            raise ValueError(f"Whisper PoW target must be non-negative, got {self.min_pow}")
        if self.pow_time <= 0:
            raise ValueError(f"Whisper PoW time must be positive, got {self.pow_time}")
        if self.polling_interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {self.polling_interval}")


@dataclass(frozen=True, slots=True)
class RelayerConfig:
    """Main configuration for the Gas Relayer.

    Attributes:
        node: Node connection settings
        blockchain: Relayer account settings
        whisper: Whisper transport settings
        contracts_file: Path of the JSON file listing the relayed contracts
        local_mode: Sign transactions locally instead of through ROFL
        local_private_key: Private key for local mode (optional)
    """

    node: NodeConfig
    blockchain: BlockchainConfig
    whisper: WhisperConfig
    contracts_file: str = "contracts/contracts.json"
    local_mode: bool = False
    local_private_key: str | None = None

    def __post_init__(self) -> None:
        """Validate relayer configuration."""
        if self.local_mode and not self.local_private_key:
            raise ValueError(
                "Local mode requires LOCAL_PRIVATE_KEY environment variable"
            )

        if self.local_private_key:
            _validate_private_key(self.local_private_key)

        if not self.contracts_file:
            raise ValueError("Contracts file is required (CONTRACTS_FILE)")

    @classmethod
    def from_env(cls, local_mode: bool = False) -> "RelayerConfig":
        """Load configuration from environment variables.

        Args:
            local_mode: Whether to sign transactions with a local key

        Returns:
            RelayerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        node_config = NodeConfig(
            protocol=os.environ.get("NODE_PROTOCOL", "http"),
            host=os.environ.get("NODE_HOST", "localhost"),
            port=int(os.environ.get("NODE_PORT", "8545")),
        )

        local_private_key = os.environ.get("LOCAL_PRIVATE_KEY") if local_mode else None

        account = os.environ.get("RELAYER_ACCOUNT", "")
        if local_private_key:
            _validate_private_key(local_private_key)
            signer = Account.from_key(local_private_key).address
            if not account:
                account = signer
            elif account.lower() != signer.lower():
                # Local mode pays gas from the key it signs with
                raise ValueError(
                    f"RELAYER_ACCOUNT {account} does not match the address "
                    f"of LOCAL_PRIVATE_KEY ({signer})"
                )
        if not account:
            raise ValueError(
                "RELAYER_ACCOUNT environment variable is required. "
                "This is the account paying gas for relayed transactions."
            )

        gas_limit = os.environ.get("GAS_LIMIT")
        blockchain_config = BlockchainConfig(
            account=account,
            min_balance=int(os.environ.get("MIN_BALANCE", "100000")),
            gas_limit=int(gas_limit) if gas_limit else None,
            receipt_timeout=int(os.environ.get("RECEIPT_TIMEOUT", "120")),
        )

        sym_key = os.environ.get("WHISPER_SYM_KEY", "")
        if not sym_key:
            raise ValueError(
                "WHISPER_SYM_KEY environment variable is required. "
                "This is the shared key clients use to probe availability."
            )

        whisper_config = WhisperConfig(
            sym_key=sym_key,
            ttl=int(os.environ.get("WHISPER_TTL", "10")),
            min_pow=float(os.environ.get("WHISPER_MIN_POW", "0.002")),
            pow_time=int(os.environ.get("WHISPER_POW_TIME", "1")),
            polling_interval=float(os.environ.get("WHISPER_POLLING_INTERVAL", "1.0")),
        )

        return cls(
            node=node_config,
            blockchain=blockchain_config,
            whisper=whisper_config,
            contracts_file=os.environ.get("CONTRACTS_FILE", "contracts/contracts.json"),
            local_mode=local_mode,
            local_private_key=local_private_key,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format (hiding sensitive data)."""
        logger.info("=" * 60)
        logger.info("Gas Relayer Configuration")
        logger.info("=" * 60)

        logger.info("Node:")
        logger.info(f"  URL: {self.node.url}")

        logger.info("Relayer Account:")
        logger.info(f"  Address: {self.blockchain.account}")
        logger.info(f"  Minimum Balance: {self.blockchain.min_balance} wei")
        logger.info(f"  Gas Limit: {self.blockchain.gas_limit or 'estimated'}")

        logger.info("Whisper:")
        logger.info(f"  TTL: {self.whisper.ttl}s")
        logger.info(f"  PoW Target: {self.whisper.min_pow}")
        logger.info(f"  PoW Time: {self.whisper.pow_time}s")
        logger.info(f"  Polling Interval: {self.whisper.polling_interval}s")
        logger.info("  Symmetric Key: [CONFIGURED]")

        logger.info(f"Contracts File: {self.contracts_file}")
        logger.info(f"Mode: {'LOCAL' if self.local_mode else 'ROFL'}")
        if self.local_mode:
            logger.info("  Local Key: [CONFIGURED]")

        logger.info("=" * 60)


def _validate_private_key(private_key: str) -> None:
    # 64 hex chars, optionally with 0x prefix
    key = private_key.removeprefix('0x')
    if len(key) != 64:
        raise ValueError(
            f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
        )
    try:
        int(key, 16)
    except ValueError:
        raise ValueError("Invalid private key format. Must be hexadecimal") from None
