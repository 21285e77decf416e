"""Encoding and decoding of Stargate ``send()`` call data."""

from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from hexbytes import HexBytes
from web3 import Web3

from .constants import (
    SELECTOR_SIZE,
    SEND_ARG_TYPES,
    SEND_SELECTOR,
    UINT32_MAX,
    UINT256_MAX,
)
from .exceptions import MalformedCallDataError, SelectorMismatchError, ValidationError
from .types import MessagingFee, SendParam, TransferCall


WORD_SIZE = 32


def selector_of(call_data: bytes | str) -> str | None:
    """Return the ``0x``-prefixed selector of ``call_data`` or ``None`` when too short."""

    raw = _as_bytes(call_data)
    if len(raw) < SELECTOR_SIZE:
        return None
    return "0x" + raw[:SELECTOR_SIZE].hex()


def decode_transfer_call(call_data: bytes | str) -> TransferCall:
    """Decode ``send()`` call data into its parameter, fee and refund address."""

    raw = _as_bytes(call_data)
    selector = raw[:SELECTOR_SIZE]
    details = {"selector": "0x" + selector.hex(), "length": len(raw)}

    if selector != SEND_SELECTOR:
        raise SelectorMismatchError(
            f"Call data selector 0x{selector.hex()} is not send() (0x{SEND_SELECTOR.hex()})",
            details=details,
        )

    body = raw[SELECTOR_SIZE:]
    if len(body) % WORD_SIZE != 0:
        raise MalformedCallDataError(
            f"send() arguments are not word aligned ({len(body)} bytes)", details=details
        )

    try:
        send_param_raw, fee_raw, refund_raw = abi_decode(list(SEND_ARG_TYPES), body)
    except Exception as exc:
        raise MalformedCallDataError(
            f"Failed to decode send() arguments: {exc}",
            details={**details, "error": str(exc)},
        ) from exc

    dst_eid, to, amount_ld, min_amount_ld, extra_options, compose_msg, oft_cmd = send_param_raw
    native_fee, lz_token_fee = fee_raw

    return TransferCall(
        send_param=SendParam(
            dst_eid=dst_eid,
            to=bytes(to),
            amount_ld=amount_ld,
            min_amount_ld=min_amount_ld,
            extra_options=bytes(extra_options),
            compose_msg=bytes(compose_msg),
            oft_cmd=bytes(oft_cmd),
        ),
        fee=MessagingFee(native_fee=native_fee, lz_token_fee=lz_token_fee),
        refund_address=Web3.to_checksum_address(refund_raw),
    )


def encode_transfer_call(send_param: SendParam, fee: MessagingFee, refund_address: str) -> bytes:
    """Encode ``send()`` call data, selector included."""

    _validate_send_param(send_param)
    _validate_uint256(fee.native_fee, "fee.native_fee")
    _validate_uint256(fee.lz_token_fee, "fee.lz_token_fee")

    if not Web3.is_address(refund_address):
        raise ValidationError(
            "Refund address is not a valid address", field="refund_address", value=refund_address
        )

    body = abi_encode(
        list(SEND_ARG_TYPES),
        [send_param.as_tuple(), fee.as_tuple(), Web3.to_checksum_address(refund_address)],
    )
    return SEND_SELECTOR + body


def encode_call(call: TransferCall) -> bytes:
    return encode_transfer_call(call.send_param, call.fee, call.refund_address)


def _validate_send_param(send_param: SendParam) -> None:
    if not 0 <= send_param.dst_eid <= UINT32_MAX:
        raise ValidationError(
            "dst_eid exceeds uint32 range", field="send_param.dst_eid", value=send_param.dst_eid
        )
    if len(send_param.to) != WORD_SIZE:
        raise ValidationError(
            "Recipient must be exactly 32 bytes", field="send_param.to", value=send_param.to
        )
    _validate_uint256(send_param.amount_ld, "send_param.amount_ld")
    _validate_uint256(send_param.min_amount_ld, "send_param.min_amount_ld")
    for name in ("extra_options", "compose_msg", "oft_cmd"):
        value = getattr(send_param, name)
        if not isinstance(value, bytes | bytearray):
            raise ValidationError(
                f"{name} must be bytes", field=f"send_param.{name}", value=value
            )


def _validate_uint256(value: int, field_name: str) -> None:
    if not 0 <= value <= UINT256_MAX:
        raise ValidationError(f"{field_name} exceeds uint256 range", field=field_name, value=value)


def _as_bytes(call_data: bytes | str) -> bytes:
    if isinstance(call_data, bytes | bytearray):
        return bytes(call_data)
    try:
        return bytes(HexBytes(call_data))
    except ValueError as exc:
        raise MalformedCallDataError(
            "Call data is not valid hex", details={"error": str(exc)}
        ) from exc
