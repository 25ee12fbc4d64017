"""
Routing of decoded requests by action.
"""

import logging
from typing import Protocol

from . import models
from .models import ContractDescriptor, DecodedRequest
from .reply import Reply

logger = logging.getLogger(__name__)

AVAILABLE = "available"
UNKNOWN_ACTION = "unknown-action"


class Executor(Protocol):
    async def process(
        self,
        contract: ContractDescriptor | None,
        request: DecodedRequest,
        reply: Reply,
    ) -> None: ...


class Dispatcher:
    """Stateless routing table from request action to handler."""

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    async def dispatch(
        self,
        contract: ContractDescriptor | None,
        request: DecodedRequest,
        reply: Reply,
    ) -> None:
        """
        Route a request.

        Transactions go to the executor, which owns the reply content.
        Availability probes are answered directly. Anything else, including
        requests that failed to decode, gets the unknown-action reply.
        """
        match request.action:
            case models.ACTION_TRANSACTION:
                await self.executor.process(contract, request, reply)
            case models.ACTION_AVAILABILITY:
                await reply(AVAILABLE)
            case _:
                logger.debug(f"Unknown action: {request.action!r}")
                await reply(UNKNOWN_ACTION)
