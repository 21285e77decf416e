import pytest

from stargate_refund.config import RefundRouterConfig, TransferSettings
from stargate_refund.constants import DEFAULT_REFUND_ADDRESS, STARGATE_ROUTE_PREFIX
from stargate_refund.exceptions import ConfigError

KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SIGNER = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


def test_from_env_defaults() -> None:
    config = RefundRouterConfig.from_env({"PRIVATE_KEY": KEY})

    assert config.refund_address == DEFAULT_REFUND_ADDRESS
    assert config.route_prefix == STARGATE_ROUTE_PREFIX
    assert config.chain_id is None
    assert config.receipt_timeout == 120.0
    assert config.transfer == TransferSettings()


def test_from_env_overrides() -> None:
    config = RefundRouterConfig.from_env(
        {
            "PRIVATE_KEY": KEY,
            "RPC_URL": "https://rpc.test",
            "REFUND_ADDRESS": "0x" + "12" * 20,
            "SRC_AMOUNT": "5000000",
            "DST_AMOUNT_MIN": " 4900000 ",
            "RECEIPT_TIMEOUT": "30",
            "CHAIN_ID": "8453",
            "DST_CHAIN_KEY": "optimism",
        }
    )

    assert config.rpc_url == "https://rpc.test"
    assert config.transfer.src_amount == 5_000_000
    assert config.transfer.dst_amount_min == 4_900_000
    assert config.transfer.dst_chain_key == "optimism"
    assert config.receipt_timeout == 30.0
    assert config.chain_id == 8453


def test_missing_private_key() -> None:
    with pytest.raises(ConfigError) as excinfo:
        RefundRouterConfig.from_env({"PRIVATE_KEY": "  "})
    assert excinfo.value.field == "PRIVATE_KEY"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SRC_AMOUNT", "1.5"),
        ("RECEIPT_TIMEOUT", "soon"),
        ("REFUND_ADDRESS", "0x1234"),
        ("SRC_AMOUNT", "0"),
        ("RECEIPT_TIMEOUT", "-1"),
    ],
)
def test_invalid_values(name: str, value: str) -> None:
    with pytest.raises(ConfigError):
        RefundRouterConfig.from_env({"PRIVATE_KEY": KEY, name: value})


def test_quote_request_defaults_to_signer() -> None:
    request = TransferSettings().quote_request(SIGNER)

    assert request.src_address == SIGNER
    assert request.dst_address == SIGNER
    assert request.as_params()["srcToken"] == "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


def test_quote_request_uses_explicit_accounts() -> None:
    settings = TransferSettings(dst_address="0x" + "34" * 20)

    request = settings.quote_request(SIGNER)

    assert request.src_address == SIGNER
    assert request.dst_address == "0x" + "34" * 20
