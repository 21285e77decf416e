"""Example: send a Base -> Arbitrum USDC transfer with a custom refund address."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from stargate_refund import (
    LoggingEventSink,
    RecordingEventSink,
    RefundRouterConfig,
    StargateQuoteClient,
    Web3LedgerClient,
    execute,
)
from stargate_refund.events import FanOutEventSink

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("override_refund")


def main() -> None:
    config = RefundRouterConfig.from_env()

    ledger = Web3LedgerClient(
        config.rpc_url,
        config.private_key,
        request_timeout=config.request_timeout,
        receipt_timeout=config.receipt_timeout,
        expected_chain_id=config.chain_id,
        explorer_url=config.explorer_url,
    )
    ledger.connect()
    quotes = StargateQuoteClient(config.api_url, request_timeout=config.request_timeout)

    recorder = RecordingEventSink()
    result = execute(config, quotes, ledger, events=FanOutEventSink(LoggingEventSink(), recorder))

    for outcome in result.outcomes:
        logger.info("%s -> %s", outcome.route_id, outcome.state.value)
        if outcome.error is not None:
            logger.info("  error: %s", outcome.error)

    if result.confirmed is None:
        logger.warning("No route confirmed (%s events recorded)", len(recorder.events))
    else:
        logger.info("Confirmed transfer %s", result.confirmed.transfer_tx_hash)


if __name__ == "__main__":
    main()
