"""Stargate refund router.

Fetch Stargate routes for a cross-chain transfer, rewrite the refund address
of each route's ``send()`` call and submit routes in order until one is
confirmed.
"""

from .classifier import StepClassification, classify_steps
from .codec import decode_transfer_call, encode_call, encode_transfer_call, selector_of
from .config import RefundRouterConfig, TransferSettings
from .events import EventKind, LoggingEventSink, RecordingEventSink, RouteEvent
from .exceptions import (
    ApprovalSubmissionError,
    CodecError,
    ConfigError,
    ConfirmationError,
    DecodeError,
    EncodeVerificationError,
    MalformedCallDataError,
    NetworkError,
    NoMatchingRouteError,
    QuoteFetchError,
    RefundRouterError,
    RouteError,
    SelectorMismatchError,
    SubmissionError,
    TransferSubmissionError,
    ValidationError,
)
from .ledger import LedgerClient, Web3LedgerClient
from .orchestrator import TransferOrchestrator, execute
from .quotes import QuoteRequest, StargateQuoteClient, select_routes
from .types import (
    Confirmation,
    FeeItem,
    MessagingFee,
    Route,
    RouteOutcome,
    RouteState,
    RunResult,
    SendParam,
    Step,
    StepTransaction,
    TransferCall,
)

__version__ = "0.1.0"

__all__ = [
    # Codec and classification
    "decode_transfer_call",
    "encode_transfer_call",
    "encode_call",
    "selector_of",
    "classify_steps",
    "StepClassification",
    # Orchestration
    "TransferOrchestrator",
    "execute",
    "EventKind",
    "RouteEvent",
    "LoggingEventSink",
    "RecordingEventSink",
    # Collaborators
    "LedgerClient",
    "Web3LedgerClient",
    "QuoteRequest",
    "StargateQuoteClient",
    "select_routes",
    "RefundRouterConfig",
    "TransferSettings",
    # Types
    "SendParam",
    "MessagingFee",
    "TransferCall",
    "Step",
    "StepTransaction",
    "FeeItem",
    "Route",
    "RouteState",
    "RouteOutcome",
    "RunResult",
    "Confirmation",
    # Exceptions
    "RefundRouterError",
    "ValidationError",
    "ConfigError",
    "NetworkError",
    "QuoteFetchError",
    "NoMatchingRouteError",
    "CodecError",
    "DecodeError",
    "SelectorMismatchError",
    "MalformedCallDataError",
    "EncodeVerificationError",
    "SubmissionError",
    "RouteError",
    "ApprovalSubmissionError",
    "TransferSubmissionError",
    "ConfirmationError",
]
