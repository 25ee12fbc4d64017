import codecs
import json
import logging
from typing import Any

import cbor2
import httpx
from web3.types import TxParams

logger = logging.getLogger(__name__)


class RoflSubmissionError(Exception):
    """Raised when the ROFL app daemon rejects a transaction."""


class RoflUtility:
    """Utility for submitting relayed transactions through the ROFL app daemon.

    In ROFL mode the relayer key never leaves the TEE: transactions are
    handed to the daemon, which signs them with the app key and submits them.
    """

    ROFL_SOCKET_PATH: str = "/run/rofl-appd.sock"
    SIGN_SUBMIT_PATH: str = "/rofl/v1/tx/sign-submit"

    def __init__(self, url: str = '', timeout: float = 30.0) -> None:
        """Initialize ROFL utility.

        Args:
            url: Optional URL (http) or socket path; defaults to the appd socket
            timeout: Request timeout in seconds
        """
        self.url: str = url
        self.timeout: float = timeout

    def _transport(self) -> httpx.AsyncHTTPTransport | None:
        if self.url.startswith('http'):
            return None
        socket_path = self.url or self.ROFL_SOCKET_PATH
        logger.debug(f"Using unix domain socket: {socket_path}")
        return httpx.AsyncHTTPTransport(uds=socket_path)

    async def _appd_post(self, path: str, payload: Any) -> Any:
        """Post request to the ROFL application daemon.

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        async with httpx.AsyncClient(transport=self._transport()) as client:
            base_url: str = self.url if self.url.startswith('http') else "http://localhost"
            logger.debug(f"Posting to {base_url + path}: {json.dumps(payload)}")
            response: httpx.Response = await client.post(
                base_url + path, json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _decode_cbor_response(response_hex: str) -> dict[str, Any]:
        """Decode the hex-encoded CBOR call result returned by sign-submit."""
        try:
            cbor_result: Any = cbor2.loads(codecs.decode(response_hex, "hex"))
        except Exception as decode_error:
            logger.error(f"CBOR decode error: {decode_error}")
            return {"error": "decode_failed", "raw": response_hex}
        logger.debug(f"Decoded CBOR: {cbor_result}")
        return cbor_result if isinstance(cbor_result, dict) else {"data": cbor_result}

    async def submit_tx(self, tx: TxParams) -> dict[str, Any]:
        """
        Sign and submit a relayed transaction via ROFL.

        Args:
            tx: Transaction parameters (to, data, gas, value)

        Returns:
            The decoded call result reported by the daemon

        Raises:
            RoflSubmissionError: If ROFL reports a failed call
        """
        payload: dict[str, Any] = {
            "tx": {
                "kind": "eth",
                "data": {
                    "gas_limit": tx["gas"],
                    "to": str(tx["to"]).removeprefix("0x"),
                    "value": tx.get("value", 0),
                    "data": str(tx["data"]).removeprefix("0x"),
                },
            },
            "encrypt": False,
        }

        response: dict[str, Any] = await self._appd_post(self.SIGN_SUBMIT_PATH, payload)
        decoded: dict[str, Any] = self._decode_cbor_response(response["data"])

        match decoded:
            case {"ok": _}:
                logger.info(f"Relayed call to {tx['to']} accepted by ROFL")
            case {"error": error_msg} | {"fail": error_msg}:
                raise RoflSubmissionError(f"ROFL transaction failed: {error_msg}")
            case _:
                logger.warning(f"Unknown ROFL response format: {decoded}")
        return decoded
