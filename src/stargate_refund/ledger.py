"""Ledger client used to broadcast and confirm transactions."""

from __future__ import annotations

import logging
from typing import Any, Protocol, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import HTTPProvider, Web3
from web3.exceptions import TimeExhausted
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .exceptions import NetworkError, SubmissionError, ValidationError
from .types import Confirmation

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """Submit transactions and wait for their receipts."""

    @property
    def address(self) -> str: ...

    def submit(self, to: str, data: bytes, value: int = 0) -> str: ...

    def await_confirmation(self, tx_hash: str, timeout: float | None = None) -> Confirmation: ...


class Web3LedgerClient:
    """Ledger client backed by a Web3 HTTP provider and a local signer."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        *,
        request_timeout: float = 10.0,
        receipt_timeout: float = 120.0,
        expected_chain_id: int | None = None,
        explorer_url: str | None = None,
        web3: Web3 | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._request_timeout = request_timeout
        self._receipt_timeout = receipt_timeout
        self._expected_chain_id = expected_chain_id
        self._explorer_url = explorer_url.rstrip("/") if explorer_url else None

        try:
            self._account = cast(LocalAccount, Account.from_key(private_key))  # type: ignore[arg-type]
        except Exception as exc:
            raise ValidationError(
                "Failed to derive signer account from provided private key",
                field="private_key",
                details={"error": str(exc)},
            ) from exc

        self._web3 = web3
        self._connected = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self) -> None:
        """Initialise the provider and signing middleware."""

        if self._connected:
            return

        if self._web3 is None:
            provider = HTTPProvider(
                self._rpc_url, request_kwargs={"timeout": self._request_timeout}
            )
            self._web3 = Web3(provider)

        web3 = self._web3
        if not web3.is_connected():
            raise NetworkError("Unable to connect to RPC", endpoint=self._rpc_url)

        if self._expected_chain_id is not None:
            chain_id = web3.eth.chain_id
            if chain_id != self._expected_chain_id:
                raise ValidationError(
                    f"RPC chain ID mismatch: expected {self._expected_chain_id}, got {chain_id}",
                    field="chain_id",
                    value=chain_id,
                )

        web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
        web3.eth.default_account = self._account.address
        self._connected = True
        logger.info("Connected to RPC at %s as %s", self._rpc_url, self._account.address)

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def web3(self) -> Web3:
        if self._web3 is None or not self._connected:
            raise NetworkError(
                "Ledger client not connected; call connect() first", endpoint=self._rpc_url
            )
        return self._web3

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def submit(self, to: str, data: bytes, value: int = 0) -> str:
        web3 = self.web3
        tx: dict[str, Any] = {
            "from": self._account.address,
            "to": Web3.to_checksum_address(to),
            "data": HexBytes(data),
            "value": value,
        }

        try:
            tx_hash = web3.eth.send_transaction(tx)  # type: ignore[arg-type]
        except Exception as exc:
            raise SubmissionError(
                f"Failed to submit transaction to {to}: {exc}",
                endpoint=self._rpc_url,
                details={"to": to, "value": value, "error": str(exc)},
            ) from exc

        tx_hex = HexBytes(tx_hash).to_0x_hex()
        logger.info("Transaction sent hash=%s", tx_hex)
        explorer = self.explorer_link(tx_hex)
        if explorer:
            logger.info("Explorer: %s", explorer)
        return tx_hex

    def await_confirmation(self, tx_hash: str, timeout: float | None = None) -> Confirmation:
        web3 = self.web3
        wait = self._receipt_timeout if timeout is None else timeout

        try:
            receipt = web3.eth.wait_for_transaction_receipt(HexBytes(tx_hash), timeout=wait)
        except TimeExhausted as exc:
            raise NetworkError(
                f"Timed out after {wait:.0f}s waiting for receipt of {tx_hash}",
                endpoint=self._rpc_url,
                details={"tx_hash": tx_hash, "timeout": wait},
            ) from exc
        except Exception as exc:
            raise NetworkError(
                f"Failed to fetch receipt for {tx_hash}: {exc}",
                endpoint=self._rpc_url,
                details={"tx_hash": tx_hash, "error": str(exc)},
            ) from exc

        confirmation = Confirmation(
            tx_hash=tx_hash,
            success=receipt.get("status") == 1,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )
        logger.info(
            "Receipt for %s: status=%s block=%s gasUsed=%s",
            tx_hash,
            "success" if confirmation.success else "failed",
            confirmation.block_number,
            confirmation.gas_used,
        )
        return confirmation

    def explorer_link(self, tx_hash: str) -> str | None:
        if not self._explorer_url:
            return None
        return f"{self._explorer_url}/tx/{tx_hash}"
