"""
Decoding of inbound relay requests.

A request is a JSON object carried hex encoded in the Whisper payload:

    {"contract": ..., "address": ..., "action": "transaction",
     "encodedFunctionCall": "0x<selector><arguments>"}
    {"contract": ..., "address": ..., "action": "availability",
     "token": ..., "gasPrice": ...}

Malformed input never raises: it decodes to an empty DecodedRequest, which
the dispatcher answers like an unknown action.
"""

import json
import logging
from typing import Any

from web3 import Web3

from .models import ACTION_AVAILABILITY, ACTION_TRANSACTION, DecodedRequest

logger = logging.getLogger(__name__)

# "0x" + 4-byte function selector
SELECTOR_LENGTH = 10


def decode(raw_payload: str) -> DecodedRequest:
    """
    Decode a raw Whisper payload into a relay request.

    Args:
        raw_payload: Hex encoded payload of the envelope

    Returns:
        The decoded request, or an empty request if the payload is malformed
    """
    try:
        text = Web3.to_text(hexstr=raw_payload)
        parsed: Any = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        return _build_request(parsed)
    except Exception as e:
        logger.error(f"Couldn't parse payload {str(raw_payload)[:66]}: {e}")
        return DecodedRequest()


def _build_request(parsed: dict[str, Any]) -> DecodedRequest:
    contract = parsed.get("contract")
    address = parsed.get("address")
    action = parsed.get("action")

    match action:
        case "transaction":
            call = parsed.get("encodedFunctionCall")
            if not isinstance(call, str) or not call.startswith("0x") or len(call) < SELECTOR_LENGTH:
                raise ValueError(f"invalid encodedFunctionCall: {call!r}")
            return DecodedRequest(
                contract=contract,
                address=address,
                action=ACTION_TRANSACTION,
                function_name=call[:SELECTOR_LENGTH],
                function_parameters="0x" + call[SELECTOR_LENGTH:],
                encoded_function_call=call,
            )
        case "availability":
            return DecodedRequest(
                contract=contract,
                address=address,
                action=ACTION_AVAILABILITY,
                token=parsed.get("token"),
                gas_price=parsed.get("gasPrice"),
            )
        case _:
            return DecodedRequest(contract=contract, address=address, action=action)
