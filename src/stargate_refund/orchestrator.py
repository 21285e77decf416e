"""Route-by-route execution of Stargate transfers with an overridden refund address."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from web3 import Web3

from .classifier import StepClassification, classify_steps
from .codec import decode_transfer_call, encode_call, selector_of
from .config import RefundRouterConfig
from .events import EventKind, EventSink, LoggingEventSink, RouteEvent
from .exceptions import (
    ApprovalSubmissionError,
    CodecError,
    ConfirmationError,
    EncodeVerificationError,
    RouteError,
    TransferSubmissionError,
)
from .ledger import LedgerClient
from .quotes import StargateQuoteClient, select_routes
from .types import Confirmation, Route, RouteOutcome, RouteState, RunResult, TransferCall

logger = logging.getLogger(__name__)


class TransferOrchestrator:
    """Attempt quoted routes in order until one transfer is confirmed.

    Submission and confirmation failures only fail the current route and the
    next route is tried. Decode and verification failures abort the run.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        refund_address: str,
        *,
        receipt_timeout: float | None = None,
        events: EventSink | None = None,
    ) -> None:
        self._ledger = ledger
        self._refund_address = Web3.to_checksum_address(refund_address)
        self._receipt_timeout = receipt_timeout
        self._events = events or LoggingEventSink(logger)

    @property
    def refund_address(self) -> str:
        return self._refund_address

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------
    def run(self, routes: Sequence[Route]) -> RunResult:
        result = RunResult()

        for route in routes:
            outcome = self.process_route(route, result)
            if outcome.state is RouteState.CONFIRMED:
                remaining = len(routes) - len(result.outcomes)
                if remaining:
                    logger.info(
                        "Skipping %s remaining route(s); transfer already confirmed", remaining
                    )
                break

        self._emit(
            EventKind.RUN_COMPLETED,
            None,
            attempted=len(result.outcomes),
            confirmed=result.confirmed.route_id if result.confirmed else None,
        )
        return result

    def process_route(self, route: Route, result: RunResult | None = None) -> RouteOutcome:
        """Drive a single route to a terminal state.

        The outcome is appended to ``result`` as soon as the route starts so an
        aborted route is still recorded when the error propagates.
        """

        outcome = RouteOutcome(route_id=route.route_id, state=RouteState.START)
        if result is not None:
            result.outcomes.append(outcome)
        self._emit(EventKind.ROUTE_STARTED, route.route_id, steps=len(route.steps))

        classification = classify_steps(route.steps)
        self._emit(
            EventKind.STEPS_CLASSIFIED,
            route.route_id,
            approval=classification.approval_index,
            transfer=classification.transfer_index,
        )

        if not classification.has_transfer:
            self._advance(outcome, RouteState.SKIPPED_NO_TRANSFER)
            self._emit(
                EventKind.ROUTE_SKIPPED,
                route.route_id,
                reason="no send() step",
                steps=[
                    (summary.index, summary.type, summary.selector)
                    for summary in classification.summaries
                ],
            )
            return outcome

        outcome.transfer_step_index = classification.transfer_index

        try:
            if classification.approval is not None:
                self._approve(route, classification, outcome)
            call_data = self._prepare_transfer_call(route, classification, outcome)
            self._transfer(route, classification, call_data, outcome)
        except RouteError as exc:
            outcome.error = exc
            self._advance(outcome, RouteState.ROUTE_FAILED)
            self._emit(
                EventKind.ROUTE_FAILED,
                route.route_id,
                exc.step_index,
                error_type=type(exc).__name__,
                error=exc.message,
            )
        except CodecError as exc:
            outcome.error = exc
            self._advance(outcome, RouteState.ABORTED)
            logger.error("Aborting run on route %s: %s", route.route_id, exc.message)
            raise

        return outcome

    # ------------------------------------------------------------------
    # Route stages
    # ------------------------------------------------------------------
    def _approve(
        self, route: Route, classification: StepClassification, outcome: RouteOutcome
    ) -> None:
        step = classification.approval
        index = classification.approval_index
        assert step is not None and step.transaction is not None
        tx = step.transaction

        self._advance(outcome, RouteState.APPROVAL_PENDING)
        try:
            tx_hash = self._ledger.submit(tx.to, tx.data, tx.value)
        except Exception as exc:
            raise ApprovalSubmissionError(
                f"Failed to submit approval: {exc}",
                route_id=route.route_id,
                step_index=index,
                details={"to": tx.to, "error": str(exc)},
            ) from exc

        outcome.approval_tx_hash = tx_hash
        self._emit(EventKind.APPROVAL_SUBMITTED, route.route_id, index, to=tx.to, tx_hash=tx_hash)

        self._confirm(route, index, tx_hash, label="approval")
        self._advance(outcome, RouteState.APPROVAL_CONFIRMED)
        self._emit(EventKind.APPROVAL_CONFIRMED, route.route_id, index, tx_hash=tx_hash)

    def _prepare_transfer_call(
        self, route: Route, classification: StepClassification, outcome: RouteOutcome
    ) -> bytes:
        step = classification.transfer
        index = classification.transfer_index
        assert step is not None

        self._advance(outcome, RouteState.DECODING)
        original = decode_transfer_call(step.call_data)
        self._emit(
            EventKind.CALL_DECODED,
            route.route_id,
            index,
            dst_eid=original.send_param.dst_eid,
            to="0x" + original.send_param.to.hex(),
            amount_ld=original.send_param.amount_ld,
            min_amount_ld=original.send_param.min_amount_ld,
            native_fee=original.fee.native_fee,
            lz_token_fee=original.fee.lz_token_fee,
            refund=original.refund_address,
        )

        self._advance(outcome, RouteState.OVERRIDING)
        noop = original.refund_address.lower() == self._refund_address.lower()
        if noop:
            logger.warning(
                "Route %s: refund address %s is already the override",
                route.route_id,
                self._refund_address,
            )
        updated = original.with_refund(self._refund_address)
        self._emit(
            EventKind.OVERRIDE_APPLIED,
            route.route_id,
            index,
            original=original.refund_address,
            refund=updated.refund_address,
            noop=noop,
        )

        self._advance(outcome, RouteState.VERIFYING)
        call_data = encode_call(updated)
        self._verify(route, index, original, call_data)
        return call_data

    def _verify(
        self, route: Route, index: int | None, original: TransferCall, call_data: bytes
    ) -> None:
        decoded = decode_transfer_call(call_data)
        mismatched = [
            name
            for name, matches in (
                ("refund_address", decoded.refund_address.lower() == self._refund_address.lower()),
                ("send_param", decoded.send_param == original.send_param),
                ("fee", decoded.fee == original.fee),
            )
            if not matches
        ]
        self._emit(
            EventKind.VERIFICATION,
            route.route_id,
            index,
            match=not mismatched,
            refund=decoded.refund_address,
            selector=selector_of(call_data),
            length=len(call_data),
        )
        if mismatched:
            raise EncodeVerificationError(
                f"Re-encoded send() call does not round trip ({', '.join(mismatched)})",
                details={"route_id": route.route_id, "fields": mismatched},
            )

    def _transfer(
        self,
        route: Route,
        classification: StepClassification,
        call_data: bytes,
        outcome: RouteOutcome,
    ) -> None:
        step = classification.transfer
        index = classification.transfer_index
        assert step is not None and step.transaction is not None
        tx = step.transaction

        self._advance(outcome, RouteState.SUBMITTING)
        try:
            tx_hash = self._ledger.submit(tx.to, call_data, tx.value)
        except Exception as exc:
            raise TransferSubmissionError(
                f"Failed to submit transfer: {exc}",
                route_id=route.route_id,
                step_index=index,
                details={"to": tx.to, "value": tx.value, "error": str(exc)},
            ) from exc

        outcome.transfer_tx_hash = tx_hash
        self._emit(
            EventKind.TRANSFER_SUBMITTED,
            route.route_id,
            index,
            to=tx.to,
            value=tx.value,
            tx_hash=tx_hash,
        )

        outcome.confirmation = self._confirm(route, index, tx_hash, label="transfer")
        self._advance(outcome, RouteState.CONFIRMED)
        self._emit(
            EventKind.TRANSFER_CONFIRMED,
            route.route_id,
            index,
            tx_hash=tx_hash,
            block=outcome.confirmation.block_number,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _confirm(
        self, route: Route, index: int | None, tx_hash: str, *, label: str
    ) -> Confirmation:
        try:
            confirmation = self._ledger.await_confirmation(tx_hash, self._receipt_timeout)
        except Exception as exc:
            raise ConfirmationError(
                f"Failed waiting for {label} confirmation: {exc}",
                route_id=route.route_id,
                step_index=index,
                details={"tx_hash": tx_hash, "error": str(exc)},
            ) from exc

        if not confirmation.success:
            raise ConfirmationError(
                f"{label.capitalize()} transaction {tx_hash} reverted",
                route_id=route.route_id,
                step_index=index,
                details={"tx_hash": tx_hash, "block_number": confirmation.block_number},
            )
        return confirmation

    def _advance(self, outcome: RouteOutcome, state: RouteState) -> None:
        logger.debug("Route %s: %s -> %s", outcome.route_id, outcome.state.value, state.value)
        outcome.state = state

    def _emit(
        self, kind: EventKind, route_id: str | None, step_index: int | None = None, **data
    ) -> None:
        self._events.emit(
            RouteEvent(kind=kind, route_id=route_id, step_index=step_index, data=data)
        )


def execute(
    config: RefundRouterConfig,
    quote_client: StargateQuoteClient,
    ledger: LedgerClient,
    *,
    events: EventSink | None = None,
) -> RunResult:
    """Fetch a quote, keep the matching routes and run them through the orchestrator."""

    request = config.transfer.quote_request(ledger.address)
    routes = select_routes(quote_client.fetch_routes(request), config.route_prefix)

    orchestrator = TransferOrchestrator(
        ledger,
        config.refund_address,
        receipt_timeout=config.receipt_timeout,
        events=events,
    )
    logger.info("Refund address override: %s", orchestrator.refund_address)
    return orchestrator.run(routes)
