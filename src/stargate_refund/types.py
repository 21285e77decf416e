"""Type definitions and data models for the Stargate refund router."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from hexbytes import HexBytes
from web3 import Web3

from .exceptions import ValidationError

Address = str  # Checksum EVM address
Wei = int


@dataclass(frozen=True)
class SendParam:
    """The ``_sendParam`` tuple of a Stargate ``send()`` call."""

    dst_eid: int
    to: bytes
    amount_ld: int
    min_amount_ld: int
    extra_options: bytes = b""
    compose_msg: bytes = b""
    oft_cmd: bytes = b""

    def as_tuple(self) -> tuple[int, bytes, int, int, bytes, bytes, bytes]:
        return (
            self.dst_eid,
            self.to,
            self.amount_ld,
            self.min_amount_ld,
            self.extra_options,
            self.compose_msg,
            self.oft_cmd,
        )


@dataclass(frozen=True)
class MessagingFee:
    """The ``_fee`` tuple of a Stargate ``send()`` call."""

    native_fee: int
    lz_token_fee: int = 0

    def as_tuple(self) -> tuple[int, int]:
        return (self.native_fee, self.lz_token_fee)


@dataclass(frozen=True)
class TransferCall:
    """Decoded arguments of a Stargate ``send()`` call."""

    send_param: SendParam
    fee: MessagingFee
    refund_address: Address

    def with_refund(self, refund_address: str) -> TransferCall:
        """Return a copy with only the refund address replaced."""

        return replace(self, refund_address=Web3.to_checksum_address(refund_address))


@dataclass(frozen=True)
class StepTransaction:
    """Transaction skeleton proposed by a route step."""

    to: Address
    data: bytes = b""
    value: Wei = 0
    from_address: Address | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> StepTransaction | None:
        if not data:
            return None
        if not isinstance(data, Mapping):
            raise ValidationError(
                "Step transaction must be an object", field="transaction", value=data
            )

        target = data.get("to")
        if not target:
            raise ValidationError("Step transaction is missing a target", field="to", value=data)

        sender = data.get("from")
        return cls(
            to=_checksum(target, field_name="to"),
            data=_hex_to_bytes(data.get("data"), field_name="data"),
            value=_parse_int(data.get("value"), field_name="value"),
            from_address=_checksum(sender, field_name="from") if sender else None,
        )


@dataclass(frozen=True)
class Step:
    """One proposed on-chain call within a route."""

    type: str
    sender: str | None = None
    chain_key: str | None = None
    transaction: StepTransaction | None = None

    @property
    def call_data(self) -> bytes:
        if self.transaction is None:
            return b""
        return self.transaction.data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        return cls(
            type=str(data.get("type", "")),
            sender=data.get("sender"),
            chain_key=data.get("chainKey"),
            transaction=StepTransaction.from_dict(data.get("transaction")),
        )


@dataclass(frozen=True)
class FeeItem:
    """Fee line item attached to a quoted route."""

    token: str
    chain_key: str
    amount: int
    type: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FeeItem:
        return cls(
            token=str(data.get("token", "")),
            chain_key=str(data.get("chainKey", "")),
            amount=_parse_int(data.get("amount"), field_name="fees.amount"),
            type=str(data.get("type", "")),
        )


@dataclass(frozen=True)
class Route:
    """A candidate path for the transfer, as quoted by the Stargate API."""

    route_id: str
    src_token: str
    dst_token: str
    src_chain_key: str
    dst_chain_key: str
    src_address: str
    dst_address: str
    src_amount: int
    dst_amount: int
    fees: tuple[FeeItem, ...] = ()
    steps: tuple[Step, ...] = ()
    error: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Route:
        """Construct a route from one entry of the quote response ``quotes`` list."""

        return cls(
            route_id=str(data.get("route", "")),
            src_token=str(data.get("srcToken", "")),
            dst_token=str(data.get("dstToken", "")),
            src_chain_key=str(data.get("srcChainKey", "")),
            dst_chain_key=str(data.get("dstChainKey", "")),
            src_address=str(data.get("srcAddress", "")),
            dst_address=str(data.get("dstAddress", "")),
            src_amount=_parse_int(data.get("srcAmount"), field_name="srcAmount"),
            dst_amount=_parse_int(data.get("dstAmount"), field_name="dstAmount"),
            fees=tuple(
                FeeItem.from_dict(item) for item in _mappings(data.get("fees"), field_name="fees")
            ),
            steps=tuple(
                Step.from_dict(item) for item in _mappings(data.get("steps"), field_name="steps")
            ),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class Confirmation:
    """Receipt summary returned by a ledger client."""

    tx_hash: str
    success: bool
    block_number: int | None = None
    gas_used: int | None = None


class RouteState(Enum):
    """States of a single route attempt."""

    START = "start"
    APPROVAL_PENDING = "approval_pending"
    APPROVAL_CONFIRMED = "approval_confirmed"
    DECODING = "decoding"
    OVERRIDING = "overriding"
    VERIFYING = "verifying"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    SKIPPED_NO_TRANSFER = "skipped_no_transfer"
    ROUTE_FAILED = "route_failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        RouteState.CONFIRMED,
        RouteState.SKIPPED_NO_TRANSFER,
        RouteState.ROUTE_FAILED,
        RouteState.ABORTED,
    }
)


@dataclass
class RouteOutcome:
    """Result of attempting one route."""

    route_id: str
    state: RouteState
    transfer_step_index: int | None = None
    approval_tx_hash: str | None = None
    transfer_tx_hash: str | None = None
    confirmation: Confirmation | None = None
    error: Exception | None = None

    @property
    def confirmed(self) -> bool:
        return self.state is RouteState.CONFIRMED


@dataclass
class RunResult:
    """Outcomes of every route attempted during a run, in order."""

    outcomes: list[RouteOutcome] = field(default_factory=list)

    @property
    def confirmed(self) -> RouteOutcome | None:
        return next((outcome for outcome in self.outcomes if outcome.confirmed), None)

    @property
    def succeeded(self) -> bool:
        return self.confirmed is not None


def _mappings(value: Any, *, field_name: str) -> Iterable[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list | tuple):
        raise ValidationError("Expected a list", field=field_name, value=value)
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise ValidationError(
                "Expected an object", field=f"{field_name}[{index}]", value=item
            )
    return value


def _checksum(value: Any, *, field_name: str) -> Address:
    if not Web3.is_address(value):
        raise ValidationError("Value is not a valid address", field=field_name, value=value)
    return Web3.to_checksum_address(value)


def _hex_to_bytes(value: Any, *, field_name: str) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes | bytearray):
        return bytes(value)
    try:
        return bytes(HexBytes(str(value)))
    except ValueError as exc:
        raise ValidationError(
            "Value is not valid hex", field=field_name, value=value, details={"error": str(exc)}
        ) from exc


def _parse_int(value: Any, *, field_name: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    except ValueError as exc:
        raise ValidationError(
            "Value is not a valid integer", field=field_name, value=value
        ) from exc
