from __future__ import annotations

from typing import Any

import pytest
from web3 import Web3

from stargate_refund.codec import decode_transfer_call, encode_call
from stargate_refund.config import RefundRouterConfig
from stargate_refund.events import EventKind, RecordingEventSink
from stargate_refund.exceptions import (
    ApprovalSubmissionError,
    ConfirmationError,
    EncodeVerificationError,
    MalformedCallDataError,
    NetworkError,
    NoMatchingRouteError,
    TransferSubmissionError,
)
from stargate_refund.orchestrator import TransferOrchestrator, execute
from stargate_refund.quotes import QuoteRequest
from stargate_refund.types import (
    Confirmation,
    MessagingFee,
    Route,
    RouteState,
    RunResult,
    SendParam,
    Step,
    StepTransaction,
    TransferCall,
)

TOKEN = Web3.to_checksum_address("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913")
POOL = Web3.to_checksum_address("0x27a16dc786820b16e5c9028b75b99f6f604b5d26")
ORIGINAL_REFUND = Web3.to_checksum_address("0x" + "11" * 20)
OVERRIDE = Web3.to_checksum_address("0x" + "dead" * 10)
APPROVE_DATA = bytes.fromhex("095ea7b3") + bytes(12) + bytes.fromhex(POOL[2:]) + bytes(32)


class DummyLedger:
    """Ledger double that records calls and fails on request."""

    def __init__(
        self,
        *,
        fail_submit: set[int] | None = None,
        fail_confirm: set[int] | None = None,
        revert: set[int] | None = None,
    ) -> None:
        self.address = Web3.to_checksum_address("0x" + "ab" * 20)
        self.submitted: list[tuple[str, bytes, int]] = []
        self.confirmed: list[tuple[str, float | None]] = []
        self._fail_submit = fail_submit or set()
        self._fail_confirm = fail_confirm or set()
        self._revert = revert or set()

    def submit(self, to: str, data: bytes, value: int = 0) -> str:
        call_number = len(self.submitted)
        self.submitted.append((to, data, value))
        if call_number in self._fail_submit:
            raise NetworkError("connection reset", endpoint="https://rpc")
        return f"0x{call_number:064x}"

    def await_confirmation(self, tx_hash: str, timeout: float | None = None) -> Confirmation:
        self.confirmed.append((tx_hash, timeout))
        call_number = int(tx_hash, 16)
        if call_number in self._fail_confirm:
            raise NetworkError("receipt timeout", endpoint="https://rpc")
        return Confirmation(
            tx_hash=tx_hash, success=call_number not in self._revert, block_number=100
        )


def _transfer_call(refund: str = ORIGINAL_REFUND) -> TransferCall:
    return TransferCall(
        send_param=SendParam(
            dst_eid=30110,
            to=bytes(12) + bytes.fromhex("ab" * 20),
            amount_ld=1_000_000,
            min_amount_ld=950_000,
            extra_options=b"",
            compose_msg=b"",
            oft_cmd=b"\x01",
        ),
        fee=MessagingFee(native_fee=42_000_000_000_000, lz_token_fee=0),
        refund_address=refund,
    )


def _approve_step() -> Step:
    return Step(type="approve", transaction=StepTransaction(to=TOKEN, data=APPROVE_DATA))


def _transfer_step(data: bytes | None = None, value: int = 42_000_000_000_000) -> Step:
    call_data = encode_call(_transfer_call()) if data is None else data
    return Step(type="bridge", transaction=StepTransaction(to=POOL, data=call_data, value=value))


def _route(route_id: str, *steps: Step) -> Route:
    return Route(
        route_id=route_id,
        src_token=TOKEN,
        dst_token=TOKEN,
        src_chain_key="base",
        dst_chain_key="arbitrum",
        src_address=ORIGINAL_REFUND,
        dst_address=ORIGINAL_REFUND,
        src_amount=1_000_000,
        dst_amount=999_000,
        steps=tuple(steps),
    )


def _orchestrator(
    ledger: DummyLedger, sink: RecordingEventSink | None = None, **kwargs: Any
) -> TransferOrchestrator:
    return TransferOrchestrator(ledger, OVERRIDE.lower(), events=sink, **kwargs)


def test_end_to_end_failover_to_second_route() -> None:
    # route 1: approval (0), transfer (1) fails on submit; route 2: transfer (2) succeeds
    ledger = DummyLedger(fail_submit={1})
    sink = RecordingEventSink()
    routes = [
        _route("stargate/v2/taxi", _approve_step(), _transfer_step()),
        _route("stargate/v2/bus", _transfer_step()),
        _route("stargate/v2/other", _transfer_step()),
    ]

    result = _orchestrator(ledger, sink).run(routes)

    assert [outcome.state for outcome in result.outcomes] == [
        RouteState.ROUTE_FAILED,
        RouteState.CONFIRMED,
    ]
    failed, confirmed = result.outcomes
    assert isinstance(failed.error, TransferSubmissionError)
    assert failed.error.route_id == "stargate/v2/taxi"
    assert failed.error.step_index == 1
    assert failed.approval_tx_hash == f"0x{0:064x}"
    assert confirmed.transfer_tx_hash == f"0x{2:064x}"
    assert result.succeeded
    assert result.confirmed is confirmed

    # approval went out unchanged, both transfers carried the override
    assert ledger.submitted[0] == (TOKEN, APPROVE_DATA, 0)
    for to, data, value in ledger.submitted[1:]:
        decoded = decode_transfer_call(data)
        assert to == POOL
        assert value == 42_000_000_000_000
        assert decoded == _transfer_call(OVERRIDE)
    assert len(ledger.submitted) == 3
    assert "stargate/v2/other" not in {event.route_id for event in sink.events}


def test_approval_confirmed_before_transfer_submission() -> None:
    ledger = DummyLedger()
    sink = RecordingEventSink()

    route = _route("stargate/a", _approve_step(), _transfer_step())

    result = _orchestrator(ledger, sink).run([route])

    assert result.succeeded
    assert sink.kinds("stargate/a") == [
        EventKind.ROUTE_STARTED,
        EventKind.STEPS_CLASSIFIED,
        EventKind.APPROVAL_SUBMITTED,
        EventKind.APPROVAL_CONFIRMED,
        EventKind.CALL_DECODED,
        EventKind.OVERRIDE_APPLIED,
        EventKind.VERIFICATION,
        EventKind.TRANSFER_SUBMITTED,
        EventKind.TRANSFER_CONFIRMED,
    ]
    assert [tx_hash for tx_hash, _ in ledger.confirmed] == [f"0x{0:064x}", f"0x{1:064x}"]
    assert sink.events[-1].kind is EventKind.RUN_COMPLETED


def test_route_without_transfer_is_skipped() -> None:
    ledger = DummyLedger()
    sink = RecordingEventSink()
    routes = [
        _route("stargate/approve-only", _approve_step()),
        _route("stargate/ok", _transfer_step()),
    ]

    result = _orchestrator(ledger, sink).run(routes)

    skipped = result.outcomes[0]
    assert skipped.state is RouteState.SKIPPED_NO_TRANSFER
    assert skipped.transfer_step_index is None
    assert result.outcomes[1].confirmed
    # the approval of the skipped route is never sent
    assert len(ledger.submitted) == 1
    skip_event = next(event for event in sink.events if event.kind is EventKind.ROUTE_SKIPPED)
    assert skip_event.data["steps"] == [(0, "approve", "0x095ea7b3")]


def test_all_routes_exhausted_is_not_an_error() -> None:
    ledger = DummyLedger(fail_submit={0, 1})
    routes = [_route("stargate/a", _transfer_step()), _route("stargate/b", _transfer_step())]

    result = _orchestrator(ledger).run(routes)

    assert not result.succeeded
    assert result.confirmed is None
    assert [outcome.state for outcome in result.outcomes] == [RouteState.ROUTE_FAILED] * 2


def test_approval_failure_fails_only_that_route() -> None:
    ledger = DummyLedger(fail_submit={0})
    routes = [
        _route("stargate/a", _approve_step(), _transfer_step()),
        _route("stargate/b", _transfer_step()),
    ]

    result = _orchestrator(ledger).run(routes)

    failed = result.outcomes[0]
    assert failed.state is RouteState.ROUTE_FAILED
    assert isinstance(failed.error, ApprovalSubmissionError)
    assert failed.error.step_index == 0
    assert failed.transfer_tx_hash is None
    assert result.outcomes[1].confirmed
    # no transfer was attempted on the failed route
    assert [data[:4].hex() for _, data, _ in ledger.submitted] == ["095ea7b3", "c7c7f5b3"]


def test_reverted_approval_fails_route() -> None:
    ledger = DummyLedger(revert={0})

    outcome = _orchestrator(ledger).process_route(
        _route("stargate/a", _approve_step(), _transfer_step())
    )

    assert outcome.state is RouteState.ROUTE_FAILED
    assert isinstance(outcome.error, ConfirmationError)
    assert len(ledger.submitted) == 1


def test_transfer_confirmation_failure_moves_on() -> None:
    ledger = DummyLedger(fail_confirm={0})
    routes = [_route("stargate/a", _transfer_step()), _route("stargate/b", _transfer_step())]

    result = _orchestrator(ledger).run(routes)

    assert isinstance(result.outcomes[0].error, ConfirmationError)
    assert result.outcomes[0].transfer_tx_hash == f"0x{0:064x}"
    assert result.outcomes[1].confirmed


def test_reverted_transfer_is_route_failure() -> None:
    ledger = DummyLedger(revert={0})

    outcome = _orchestrator(ledger).process_route(_route("stargate/a", _transfer_step()))

    assert outcome.state is RouteState.ROUTE_FAILED
    assert isinstance(outcome.error, ConfirmationError)


def test_override_equal_to_original_still_submits(caplog: pytest.LogCaptureFixture) -> None:
    ledger = DummyLedger()
    sink = RecordingEventSink()
    step = _transfer_step(encode_call(_transfer_call(OVERRIDE)))

    with caplog.at_level("WARNING", logger="stargate_refund.orchestrator"):
        result = _orchestrator(ledger, sink).run([_route("stargate/a", step)])

    assert result.succeeded
    assert "already the override" in caplog.text
    override = next(event for event in sink.events if event.kind is EventKind.OVERRIDE_APPLIED)
    assert override.data["noop"] is True
    assert decode_transfer_call(ledger.submitted[0][1]).refund_address == OVERRIDE


def test_decode_failure_aborts_run() -> None:
    ledger = DummyLedger()
    broken = _transfer_step(bytes.fromhex("c7c7f5b3") + b"\x00" * 5)
    routes = [_route("stargate/a", _approve_step(), broken), _route("stargate/b", _transfer_step())]
    result = RunResult()
    orchestrator = _orchestrator(ledger)

    with pytest.raises(MalformedCallDataError):
        orchestrator.process_route(routes[0], result)

    assert result.outcomes[0].state is RouteState.ABORTED
    # the approval had already been confirmed; nothing else was sent
    assert len(ledger.submitted) == 1

    with pytest.raises(MalformedCallDataError):
        orchestrator.run(routes)
    assert all(data[:4].hex() != "c7c7f5b3" for _, data, _ in ledger.submitted)


def test_verification_mismatch_aborts_run(monkeypatch: pytest.MonkeyPatch) -> None:
    ledger = DummyLedger()
    other = Web3.to_checksum_address("0x" + "99" * 20)
    monkeypatch.setattr(
        "stargate_refund.orchestrator.encode_call",
        lambda call: encode_call(call.with_refund(other)),
    )

    with pytest.raises(EncodeVerificationError) as excinfo:
        _orchestrator(ledger).run([_route("stargate/a", _transfer_step())])

    assert excinfo.value.details["fields"] == ["refund_address"]
    assert ledger.submitted == []


def test_receipt_timeout_is_forwarded() -> None:
    ledger = DummyLedger()

    _orchestrator(ledger, receipt_timeout=7.5).run([_route("stargate/a", _transfer_step())])

    assert ledger.confirmed == [(f"0x{0:064x}", 7.5)]


class DummyQuoteClient:
    def __init__(self, routes: list[Route]) -> None:
        self._routes = routes
        self.requests: list[QuoteRequest] = []

    def fetch_routes(self, request: QuoteRequest) -> list[Route]:
        self.requests.append(request)
        return self._routes


def _config() -> RefundRouterConfig:
    return RefundRouterConfig(
        private_key="0x" + "01" * 32,
        rpc_url="https://rpc.test",
        refund_address=OVERRIDE,
        receipt_timeout=9.0,
    )


def test_execute_filters_routes_and_runs() -> None:
    ledger = DummyLedger()
    quotes = DummyQuoteClient(
        [_route("aori/v1", _transfer_step()), _route("stargate/v2/taxi", _transfer_step())]
    )

    result = execute(_config(), quotes, ledger)  # type: ignore[arg-type]

    assert [outcome.route_id for outcome in result.outcomes] == ["stargate/v2/taxi"]
    assert result.succeeded
    assert quotes.requests[0].src_address == ledger.address
    assert ledger.confirmed[0][1] == 9.0


def test_execute_without_matching_routes() -> None:
    ledger = DummyLedger()
    quotes = DummyQuoteClient([_route("aori/v1", _transfer_step())])

    with pytest.raises(NoMatchingRouteError):
        execute(_config(), quotes, ledger)  # type: ignore[arg-type]

    assert ledger.submitted == []
