#!/usr/bin/env python3
"""Entry point for the Gasless Relayer.

Relays one signed transaction from the command line or stdin and prints the
JSON response body. An HTTP front end wraps GaslessRelayer.handle() the
same way.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from gasless_relayer.relayer import GaslessRelayer


# Configure logging before any other loggers are used
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

# Get logger for this module
logger = logging.getLogger(__name__)


async def main() -> int:
    """Main entry point for the Gasless Relayer.

    Returns:
        Process exit code: 0 relayed, 1 relay error, 2 configuration error
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Gasless Relayer - rebroadcast a signed transaction with relayer-paid gas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL               - RPC endpoint (default: https://mainnet.base.org)
  CHAIN_ID              - Target chain id (default: 8453)
  RELAYER_PRIVATE_KEY   - Relayer key (required with --local)
  RELAYER_KEY_ID        - ROFL key store id (default: gasless-relayer)
  CONFIRMATION_TIMEOUT  - Seconds to wait for inclusion (default: 120)
  LOG_LEVEL             - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--local",
        action="store_true",
        default=False,
        help="Use RELAYER_PRIVATE_KEY instead of the ROFL key store"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    parser.add_argument(
        "--signed-tx",
        help="Signed transaction as 0x-prefixed hex (read from stdin if omitted)"
    )
    parser.add_argument(
        "--type",
        dest="transaction_type",
        help="Optional transaction type label echoed in the response"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    signed_tx = args.signed_tx if args.signed_tx is not None else sys.stdin.read().strip()

    try:
        relayer = GaslessRelayer.from_env(local_mode=args.local)
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - RPC_URL: RPC endpoint of the target chain")
        logger.error("  - CHAIN_ID: Chain id the RPC must serve")
        if args.local:
            logger.error("  - RELAYER_PRIVATE_KEY: Required for local mode")
        return 2

    try:
        async with relayer:
            status, body = await relayer.handle({
                "signedTransaction": signed_tx,
                "transactionType": args.transaction_type,
            })
    except ValueError as e:
        logger.error(f"Startup Error: {e}")
        return 2
    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        return 1

    print(json.dumps(body, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
