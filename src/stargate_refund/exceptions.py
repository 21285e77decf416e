"""Exception hierarchy for the Stargate refund router."""

from typing import Any


class RefundRouterError(Exception):
    """Base exception for all refund router errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RefundRouterError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigError(ValidationError):
    """Raised when configuration data is invalid or missing."""

    pass


class NetworkError(RefundRouterError):
    """Raised when network/connection issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class QuoteFetchError(NetworkError):
    """Raised when the quote API cannot be reached or answers with an error."""

    pass


class NoMatchingRouteError(RefundRouterError):
    """Raised when a quote contains no route the router can handle."""

    pass


class CodecError(RefundRouterError):
    """Base class for call data encoding and decoding failures."""

    pass


class DecodeError(CodecError):
    """Raised when call data cannot be decoded as a ``send()`` call."""

    pass


class SelectorMismatchError(DecodeError):
    """Raised when the leading selector is not the ``send()`` selector."""

    pass


class MalformedCallDataError(DecodeError):
    """Raised when the call data body does not match the ``send()`` layout."""

    pass


class EncodeVerificationError(CodecError):
    """Raised when re-encoded call data does not decode back to the intended call."""

    pass


class SubmissionError(NetworkError):
    """Raised by ledger clients when a transaction cannot be broadcast."""

    pass


class RouteError(RefundRouterError):
    """Base class for failures scoped to a single route attempt."""

    def __init__(
        self,
        message: str,
        route_id: str | None = None,
        step_index: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.route_id = route_id
        self.step_index = step_index


class ApprovalSubmissionError(RouteError):
    """Raised when the approval transaction cannot be submitted."""

    pass


class TransferSubmissionError(RouteError):
    """Raised when the transfer transaction cannot be submitted."""

    pass


class ConfirmationError(RouteError):
    """Raised when a submitted transaction is not confirmed successfully."""

    pass
