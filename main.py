#!/usr/bin/env python3
"""Entry point for the Gas Relayer service.

Relays gas-subsidized transactions requested over Whisper, either signing
with a local key (--local) or through the ROFL application daemon.
"""

import argparse
import asyncio
import logging
import os
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.
    
    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from gas_relayer.relayer import GasRelayer


async def main() -> int:
    """Main entry point for the Gas Relayer.
    
    Returns:
        Process exit status
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Gas Relayer - pay gas for contract calls requested over Whisper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  NODE_PROTOCOL / NODE_HOST / NODE_PORT - Node RPC endpoint (default http://localhost:8545)
  RELAYER_ACCOUNT      - Account paying the gas
  MIN_BALANCE          - Stop once the balance is at or below this (wei, default 100000)
  WHISPER_SYM_KEY      - Shared symmetric key of the availability channel
  WHISPER_TTL          - Reply time-to-live (default 10)
  WHISPER_MIN_POW      - Proof-of-work target (default 0.002)
  WHISPER_POW_TIME     - Proof-of-work time (default 1)
  CONTRACTS_FILE       - Relayed contracts (default contracts/contracts.json)
  LOCAL_PRIVATE_KEY    - Private key for local mode (required with --local)
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--local",
        action="store_true",
        default=False,
        help="Sign transactions with LOCAL_PRIVATE_KEY instead of ROFL"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info(f"Starting in {'LOCAL' if args.local else 'ROFL'} mode")

    try:
        relayer: GasRelayer = GasRelayer.from_env(local_mode=args.local)
        return await relayer.run()

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Required environment variables:")
        logger.error("  - RELAYER_ACCOUNT: Account paying the gas")
        logger.error("  - WHISPER_SYM_KEY: Shared symmetric key (32 bytes hex)")
        logger.error("  - CONTRACTS_FILE: Relayed contracts file")
        if args.local:
            logger.error("  - LOCAL_PRIVATE_KEY: Required for local mode")
        return 1

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
