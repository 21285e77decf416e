"""Stargate quote API client."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import requests

from .constants import STARGATE_API_URL, STARGATE_ROUTE_PREFIX
from .exceptions import NoMatchingRouteError, QuoteFetchError, ValidationError
from .types import Route

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteRequest:
    """Parameters of a Stargate quote request."""

    src_token: str
    src_chain_key: str
    dst_token: str
    dst_chain_key: str
    src_address: str
    dst_address: str
    src_amount: int
    dst_amount_min: int

    def as_params(self) -> dict[str, str]:
        return {
            "srcToken": self.src_token,
            "srcChainKey": self.src_chain_key,
            "dstToken": self.dst_token,
            "dstChainKey": self.dst_chain_key,
            "srcAddress": self.src_address,
            "dstAddress": self.dst_address,
            "srcAmount": str(self.src_amount),
            "dstAmountMin": str(self.dst_amount_min),
        }


class StargateQuoteClient:
    """Fetch candidate routes from the Stargate quote endpoint."""

    def __init__(
        self,
        base_url: str = STARGATE_API_URL,
        *,
        session: requests.Session | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._request_timeout = request_timeout

    @property
    def quotes_url(self) -> str:
        return f"{self._base_url}/quotes"

    def fetch_routes(self, request: QuoteRequest) -> list[Route]:
        url = self.quotes_url
        params = request.as_params()
        logger.info("Fetching Stargate quote from %s", url)
        logger.debug("Quote parameters: %s", params)

        try:
            response = self._session.get(url, params=params, timeout=self._request_timeout)
        except requests.RequestException as exc:
            raise QuoteFetchError(
                f"Failed to fetch Stargate quote: {exc}",
                endpoint=url,
                details={"error": str(exc)},
            ) from exc

        if not 200 <= response.status_code < 300:
            raise QuoteFetchError(
                f"Failed to fetch Stargate quote: HTTP {response.status_code}",
                endpoint=url,
                status_code=response.status_code,
                details={"body": response.text},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise QuoteFetchError(
                "Stargate quote response is not valid JSON",
                endpoint=url,
                status_code=response.status_code,
            ) from exc

        routes = self._parse_routes(payload, url)
        logger.info("Quote received with %s route(s)", len(routes))
        return routes

    def _parse_routes(self, payload: Any, url: str) -> list[Route]:
        quotes = payload.get("quotes") if isinstance(payload, Mapping) else None
        if not isinstance(quotes, list):
            raise QuoteFetchError(
                "Stargate quote response is missing the quotes list",
                endpoint=url,
                details={"payload": payload},
            )

        try:
            return [Route.from_dict(entry) for entry in quotes if isinstance(entry, Mapping)]
        except ValidationError as exc:
            raise QuoteFetchError(
                f"Stargate quote response contains an invalid route: {exc}",
                endpoint=url,
                details={"field": exc.field, "value": exc.value},
            ) from exc


def select_routes(routes: Sequence[Route], prefix: str = STARGATE_ROUTE_PREFIX) -> list[Route]:
    """Keep routes whose identifier starts with ``prefix``, preserving order."""

    selected = [route for route in routes if route.route_id.startswith(prefix)]
    if not selected:
        raise NoMatchingRouteError(
            f"No routes matching '{prefix}' in quote response",
            details={"routes": [route.route_id for route in routes]},
        )

    ignored = [route.route_id for route in routes if not route.route_id.startswith(prefix)]
    if ignored:
        logger.debug("Ignoring non-matching routes: %s", ignored)
    logger.info("Found %s route(s) matching '%s'", len(selected), prefix)
    return selected
