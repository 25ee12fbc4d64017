"""
Gas Relayer package.

Pays gas for contract calls requested over the Whisper transport.
"""

from .config import RelayerConfig
from .decoder import decode
from .dispatcher import Dispatcher
from .models import ContractDescriptor, DecodedRequest, IncomingMessage
from .registry import ContractRegistry
from .relayer import GasRelayer

__all__ = [
    "ContractDescriptor",
    "ContractRegistry",
    "DecodedRequest",
    "Dispatcher",
    "GasRelayer",
    "IncomingMessage",
    "RelayerConfig",
    "decode",
]
__version__ = "0.1.0"
