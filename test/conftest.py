"""Shared fixtures for the Gas Relayer tests."""

import itertools
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3
from web3.types import HexBytes

from gas_relayer.config import BlockchainConfig, NodeConfig, RelayerConfig, WhisperConfig
from gas_relayer.utils.whisper_utility import WhisperUtility

RELAYER_ACCOUNT = "0x" + "1" * 40
TOKEN_ADDRESS = "0x" + "2" * 40
CONTROLLER_ADDRESS = "0x" + "3" * 40
SENDER_KEY = "0x04" + "ab" * 64
SYM_KEY = "0x" + "cd" * 32
LOCAL_KEY = "0x" + "01" * 32

CONTRACTS = {
    "contracts": [
        {
            "name": "TestToken",
            "address": TOKEN_ADDRESS,
            "allowedFunctions": ["transfer(address,uint256)"],
        },
        {
            "name": "TestController",
            "address": CONTROLLER_ADDRESS,
            "allowedFunctions": ["executeGasRelayed(address,bytes,uint256,uint256,uint256,bytes)"],
        },
    ]
}


class AwaitableValue:
    """Stands in for web3 awaitable properties such as eth.gas_price."""

    def __init__(self, value=None, exc: Exception | None = None):
        self.value = value
        self.exc = exc

    def __await__(self):
        if False:  # pragma: no cover - makes this a generator
            yield
        if self.exc is not None:
            raise self.exc
        return self.value


def encode_payload(data) -> str:
    """Hex encode a request the way clients post it."""
    return Web3.to_hex(text=json.dumps(data))


def decode_reply(payload: str) -> dict:
    return json.loads(Web3.to_text(hexstr=payload))


@pytest.fixture
def contracts_file(tmp_path):
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps(CONTRACTS))
    return path


@pytest.fixture
def whisper_config():
    return WhisperConfig(sym_key=SYM_KEY, polling_interval=0.01)


@pytest.fixture
def relayer_config(contracts_file, whisper_config):
    return RelayerConfig(
        node=NodeConfig(),
        blockchain=BlockchainConfig(account=RELAYER_ACCOUNT, min_balance=100000),
        whisper=whisper_config,
        contracts_file=str(contracts_file),
        local_mode=True,
        local_private_key=LOCAL_KEY,
    )


@pytest.fixture
def mock_w3():
    """Create a mock AsyncWeb3 instance for a funded, listening node."""
    w3 = MagicMock()
    w3.net.listening = AwaitableValue(True)
    w3.eth.get_balance = AsyncMock(return_value=10**18)
    w3.eth.gas_price = AwaitableValue(1000000000)
    w3.eth.estimate_gas = AsyncMock(return_value=60000)
    w3.eth.send_transaction = AsyncMock(return_value=HexBytes("0x1234"))
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={
        'status': 1,
        'blockNumber': 4242,
        'transactionHash': HexBytes("0x1234"),
    })
    return w3


@pytest.fixture
def mock_whisper():
    """Create a mock WhisperUtility handing out sequential filter ids."""
    whisper = AsyncMock(spec=WhisperUtility)
    filter_ids = itertools.count()
    whisper.new_key_pair.return_value = "relay-key-pair"
    whisper.add_sym_key.return_value = "shared-sym-key"
    whisper.get_public_key.return_value = "0x04" + "ef" * 64
    whisper.new_message_filter.side_effect = lambda criteria: f"filter-{next(filter_ids)}"
    whisper.get_filter_messages.return_value = []
    whisper.delete_message_filter.return_value = True
    whisper.post.return_value = "0xenvelope"
    return whisper
