"""Constants for the Stargate refund router."""

from enum import Enum

# send((uint32,bytes32,uint256,uint256,bytes,bytes,bytes),(uint256,uint256),address)
SEND_SELECTOR = bytes.fromhex("c7c7f5b3")
# approve(address,uint256)
APPROVE_SELECTOR = bytes.fromhex("095ea7b3")

SELECTOR_SIZE = 4

SEND_PARAM_TYPE = "(uint32,bytes32,uint256,uint256,bytes,bytes,bytes)"
MESSAGING_FEE_TYPE = "(uint256,uint256)"
SEND_ARG_TYPES = (SEND_PARAM_TYPE, MESSAGING_FEE_TYPE, "address")
SEND_SIGNATURE = f"send({','.join(SEND_ARG_TYPES)})"

UINT32_MAX = 2**32 - 1
UINT256_MAX = 2**256 - 1

STARGATE_API_URL = "https://stargate.finance/api/v1"
STARGATE_ROUTE_PREFIX = "stargate/"
BASESCAN_URL = "https://basescan.org"

DEFAULT_REFUND_ADDRESS = "0xdeadbeefdeadbeefdeadbeefdeadbeefdeadbeef"


class Token(str, Enum):
    """Token addresses used by the default transfer."""

    BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    ARBITRUM_USDC = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"


class ChainKey(str, Enum):
    """Stargate chain keys used by the default transfer."""

    BASE = "base"
    ARBITRUM = "arbitrum"


# 1 USDC in, at least 0.95 USDC out (6 decimals)
DEFAULT_SRC_AMOUNT = 1_000_000
DEFAULT_DST_AMOUNT_MIN = 950_000
