"""Command line entry point: override the refund address of a Stargate transfer."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from .config import RefundRouterConfig
from .exceptions import RefundRouterError
from .ledger import Web3LedgerClient
from .orchestrator import execute
from .quotes import StargateQuoteClient

logger = logging.getLogger("stargate_refund")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_CONFIRMED = 2


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send a Stargate transfer with an overridden refund address"
    )
    parser.add_argument("--refund-address", help="Refund address override (REFUND_ADDRESS)")
    parser.add_argument("--src-amount", type=int, help="Source amount in token units (SRC_AMOUNT)")
    parser.add_argument(
        "--dst-amount-min",
        type=int,
        help="Minimum destination amount in token units (DST_AMOUNT_MIN)",
    )
    parser.add_argument(
        "--receipt-timeout", type=float, help="Seconds to wait for each receipt (RECEIPT_TIMEOUT)"
    )
    return parser.parse_args(argv)


def _environment(args: argparse.Namespace) -> dict[str, str]:
    env = dict(os.environ)
    overrides = {
        "REFUND_ADDRESS": args.refund_address,
        "SRC_AMOUNT": args.src_amount,
        "DST_AMOUNT_MIN": args.dst_amount_min,
        "RECEIPT_TIMEOUT": args.receipt_timeout,
    }
    for name, value in overrides.items():
        if value is not None:
            env[name] = str(value)
    return env


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOGLEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args = _parse_args(argv)
    try:
        config = RefundRouterConfig.from_env(_environment(args))
        ledger = Web3LedgerClient(
            config.rpc_url,
            config.private_key,
            request_timeout=config.request_timeout,
            receipt_timeout=config.receipt_timeout,
            expected_chain_id=config.chain_id,
            explorer_url=config.explorer_url,
        )
        ledger.connect()
        quote_client = StargateQuoteClient(
            config.api_url, request_timeout=config.request_timeout
        )
        result = execute(config, quote_client, ledger)
    except RefundRouterError as exc:
        logger.error("Run aborted: %s", exc.message)
        if exc.details:
            logger.debug("  details: %s", exc.details)
        return EXIT_ERROR

    for outcome in result.outcomes:
        logger.info(
            "Route %s: %s%s",
            outcome.route_id,
            outcome.state.value,
            f" ({outcome.error})" if outcome.error else "",
        )

    if result.confirmed is None:
        logger.error("No route was confirmed after %s attempt(s)", len(result.outcomes))
        return EXIT_NOT_CONFIRMED

    logger.info(
        "Transfer confirmed on route %s: %s",
        result.confirmed.route_id,
        result.confirmed.transfer_tx_hash,
    )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
