#!/usr/bin/env python3
"""Transaction execution for relayed calls.

This module submits the calls clients ask the relayer to pay for,
supporting both local (key held by the process) and production (ROFL
sign-submit) modes, and answers the client with the outcome.
"""

import logging
from typing import TYPE_CHECKING

from web3 import AsyncWeb3, Web3
from web3.types import HexBytes, TxParams, TxReceipt, Wei

from .models import ContractDescriptor, DecodedRequest
from .reply import Reply

if TYPE_CHECKING:
    from .utils.rofl_utility import RoflUtility

logger = logging.getLogger(__name__)

UNKNOWN_CONTRACT = "unknown-contract"
INVALID_CONTRACT_ADDRESS = "invalid-contract-address"
FUNCTION_NOT_ALLOWED = "function-not-allowed"
TRANSACTION_MINED = "transaction-mined"
TRANSACTION_REVERTED = "transaction-reverted"
TRANSACTION_SUBMITTED = "transaction-submitted"
TRANSACTION_FAILED = "transaction-failed"


class TransactionExecutor:
    """Validates relayed calls against the registry and submits them."""

    def __init__(
        self,
        w3: AsyncWeb3,
        account: str,
        rofl_util: "RoflUtility | None" = None,
        gas_limit: int | None = None,
        receipt_timeout: int = 120,
    ) -> None:
        """
        Initialize the TransactionExecutor.

        Args:
            w3: Web3 instance (with signing middleware in local mode)
            account: Relayer account paying the gas
            rofl_util: ROFL utility for transaction submission (None for local mode)
            gas_limit: Fixed gas limit, estimated per call when None
            receipt_timeout: Seconds to wait for a receipt in local mode
        """
        self.w3 = w3
        self.account: str = account
        self.rofl_util: RoflUtility | None = rofl_util
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout

        mode = "ROFL production" if rofl_util else "local signing"
        logger.info(f"TransactionExecutor initialized in {mode} mode")

    def _rejection(self, contract: ContractDescriptor | None, request: DecodedRequest) -> str | None:
        """Return the reply for a request that must not be relayed, else None."""
        if contract is None:
            return UNKNOWN_CONTRACT

        if request.address and (
            not Web3.is_address(request.address)
            or Web3.to_checksum_address(request.address) != contract.address
        ):
            return INVALID_CONTRACT_ADDRESS

        if not contract.allows(request.function_name):
            return FUNCTION_NOT_ALLOWED

        return None

    async def build_transaction(self, contract: ContractDescriptor, request: DecodedRequest) -> TxParams:
        tx: TxParams = {
            'from': self.account,
            'to': contract.address,
            'data': request.encoded_function_call,
            'value': Wei(0),
            'gasPrice': await self.w3.eth.gas_price,
        }
        tx['gas'] = self.gas_limit or await self.w3.eth.estimate_gas(tx)
        return tx

    async def process(
        self,
        contract: ContractDescriptor | None,
        request: DecodedRequest,
        reply: Reply,
    ) -> None:
        """
        Relay a transaction request and reply with its outcome.

        Args:
            contract: Descriptor of the contract registered on the message topic
            request: Decoded transaction request
            reply: Callable answering the requesting client
        """
        if rejection := self._rejection(contract, request):
            logger.warning(
                f"Rejected call {request.function_name} to "
                f"{request.address or (contract.name if contract else '?')}: {rejection}"
            )
            await reply(rejection)
            return

        try:
            tx = await self.build_transaction(contract, request)
            logger.info(
                f"Relaying {contract.allowed_functions[request.function_name.lower()]} "
                f"on {contract.name} (gas={tx['gas']}, gasPrice={tx['gasPrice']})"
            )

            match self.rofl_util:
                case None:
                    tx_hash: HexBytes = await self.w3.eth.send_transaction(tx)
                    logger.info(f"✓ Transaction submitted: {Web3.to_hex(tx_hash)}")

                    receipt: TxReceipt = await self.w3.eth.wait_for_transaction_receipt(
                        tx_hash, timeout=self.receipt_timeout
                    )

                    if (status := receipt.get('status', 0)) == 1:
                        logger.info(f"✓ Transaction mined in block {receipt['blockNumber']}")
                        await reply(TRANSACTION_MINED, receipt)
                    else:
                        logger.error(f"✗ Transaction reverted with status={status}")
                        await reply(TRANSACTION_REVERTED, receipt)

                case rofl_util:
                    await rofl_util.submit_tx(tx)
                    await reply(TRANSACTION_SUBMITTED)

        except Exception as e:
            logger.error(f"Error relaying call to {contract.name}: {e}", exc_info=True)
            await reply(TRANSACTION_FAILED)
