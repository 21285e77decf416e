"""Configuration for the Stargate refund router."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from web3 import Web3

from .constants import (
    BASESCAN_URL,
    DEFAULT_DST_AMOUNT_MIN,
    DEFAULT_REFUND_ADDRESS,
    DEFAULT_SRC_AMOUNT,
    STARGATE_API_URL,
    STARGATE_ROUTE_PREFIX,
    ChainKey,
    Token,
)
from .exceptions import ConfigError
from .quotes import QuoteRequest

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0


@dataclass(frozen=True)
class TransferSettings:
    """What to transfer and between which chains."""

    src_token: str = Token.BASE_USDC.value
    src_chain_key: str = ChainKey.BASE.value
    dst_token: str = Token.ARBITRUM_USDC.value
    dst_chain_key: str = ChainKey.ARBITRUM.value
    src_amount: int = DEFAULT_SRC_AMOUNT
    dst_amount_min: int = DEFAULT_DST_AMOUNT_MIN
    src_address: str | None = None
    dst_address: str | None = None

    def quote_request(self, signer_address: str) -> QuoteRequest:
        """Build the quote request, defaulting both accounts to ``signer_address``."""

        return QuoteRequest(
            src_token=self.src_token,
            src_chain_key=self.src_chain_key,
            dst_token=self.dst_token,
            dst_chain_key=self.dst_chain_key,
            src_address=self.src_address or signer_address,
            dst_address=self.dst_address or signer_address,
            src_amount=self.src_amount,
            dst_amount_min=self.dst_amount_min,
        )


@dataclass(frozen=True)
class RefundRouterConfig:
    """Aggregated configuration for a refund-override run."""

    private_key: str
    rpc_url: str
    refund_address: str = DEFAULT_REFUND_ADDRESS
    api_url: str = STARGATE_API_URL
    route_prefix: str = STARGATE_ROUTE_PREFIX
    chain_id: int | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    explorer_url: str | None = BASESCAN_URL
    transfer: TransferSettings = TransferSettings()

    def __post_init__(self) -> None:
        if not self.private_key:
            raise ConfigError("Private key is required", field="private_key")
        if not self.rpc_url:
            raise ConfigError("RPC URL is required", field="rpc_url")
        if not Web3.is_address(self.refund_address):
            raise ConfigError(
                "Refund address is not a valid address",
                field="refund_address",
                value=self.refund_address,
            )
        if self.request_timeout <= 0:
            raise ConfigError(
                "Request timeout must be positive",
                field="request_timeout",
                value=self.request_timeout,
            )
        if self.receipt_timeout <= 0:
            raise ConfigError(
                "Receipt timeout must be positive",
                field="receipt_timeout",
                value=self.receipt_timeout,
            )
        if self.transfer.src_amount <= 0:
            raise ConfigError(
                "Source amount must be positive", field="src_amount", value=self.transfer.src_amount
            )
        if self.transfer.dst_amount_min < 0:
            raise ConfigError(
                "Minimum destination amount cannot be negative",
                field="dst_amount_min",
                value=self.transfer.dst_amount_min,
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RefundRouterConfig:
        """Build a configuration from environment variables."""

        env = os.environ if environ is None else environ
        defaults = TransferSettings()

        private_key = _get(env, "PRIVATE_KEY")
        if not private_key:
            raise ConfigError("PRIVATE_KEY not found in environment variables", field="PRIVATE_KEY")

        transfer = TransferSettings(
            src_token=_get(env, "SRC_TOKEN") or defaults.src_token,
            src_chain_key=_get(env, "SRC_CHAIN_KEY") or defaults.src_chain_key,
            dst_token=_get(env, "DST_TOKEN") or defaults.dst_token,
            dst_chain_key=_get(env, "DST_CHAIN_KEY") or defaults.dst_chain_key,
            src_amount=_int(env, "SRC_AMOUNT", defaults.src_amount),
            dst_amount_min=_int(env, "DST_AMOUNT_MIN", defaults.dst_amount_min),
            src_address=_get(env, "SRC_ADDRESS"),
            dst_address=_get(env, "DST_ADDRESS"),
        )

        chain_id = _get(env, "CHAIN_ID")
        return cls(
            private_key=private_key,
            rpc_url=_get(env, "RPC_URL") or "https://mainnet.base.org",
            refund_address=_get(env, "REFUND_ADDRESS") or DEFAULT_REFUND_ADDRESS,
            api_url=_get(env, "STARGATE_API_URL") or STARGATE_API_URL,
            route_prefix=_get(env, "ROUTE_PREFIX") or STARGATE_ROUTE_PREFIX,
            chain_id=_int(env, "CHAIN_ID", 0) if chain_id else None,
            request_timeout=_float(env, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            receipt_timeout=_float(env, "RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
            explorer_url=_get(env, "EXPLORER_URL") or BASESCAN_URL,
            transfer=transfer,
        )


def _get(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    value = _get(env, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer", field=name, value=value) from exc


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    value = _get(env, name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number", field=name, value=value) from exc
