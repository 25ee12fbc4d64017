import json
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder


class ContractUtility:
    """
    Utility for node access and contract metadata.
    
    Can be used in two modes:
    1. Signing mode: Initialize with RPC URL and secret to send transactions
       signed by a local key
    2. Read-only mode: Initialize with RPC URL only (balance queries, Whisper,
       building unsigned transactions)
    """

    def __init__(self, rpc_url: str, secret: str = "") -> None:
        """
        Initialize the ContractUtility.
        
        Args:
            rpc_url: RPC URL of the node (required)
            secret: Private key for signing transactions (optional)
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))

        if secret:
            self._add_signing_middleware(secret)

    def _add_signing_middleware(self, secret: str) -> None:
        """
        Add signing middleware to the existing Web3 instance.
        
        Args:
            secret: Private key for signing transactions
        """
        account: LocalAccount = Account.from_key(secret)
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
        self.w3.eth.default_account = account.address

    @staticmethod
    def function_selector(signature: str) -> str:
        """Return the 4-byte selector of a solidity function signature."""
        return Web3.to_hex(Web3.keccak(text=signature)[:4])

    @staticmethod
    def topic_for(contract_name: str) -> str:
        """Return the 4-byte Whisper topic of a contract name."""
        return Web3.to_hex(Web3.keccak(text=contract_name)[:4])

    @staticmethod
    def load_contracts(contracts_file: str | Path) -> list[dict[str, Any]]:
        """Reads the list of relayed contracts from a JSON file.
        
        Args:
            contracts_file: Path of the contracts file
            
        Returns:
            List of contract entries
            
        Raises:
            FileNotFoundError: If the contracts file doesn't exist
            json.JSONDecodeError: If the contracts file is invalid JSON
            ValueError: If the file has no contracts list
        """
        contract_path: Path = Path(contracts_file).resolve()

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        contracts = contract_data.get("contracts") if isinstance(contract_data, dict) else None
        if not isinstance(contracts, list):
            raise ValueError(f"{contract_path} must contain a 'contracts' list")

        return contracts
