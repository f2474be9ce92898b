"""HermesClient: Fetch signed price updates from the Pyth Hermes API.

Endpoint: {HERMES}/v2/updates/price/latest?ids[]={FEED_ID}&encoding=hex
Rate Limit: Public endpoint, no key required

The response carries both the parsed price (for the decision engine and
logging) and the binary VAA that the relay contract verifies on-chain:

.. code-block:: json

    {
        "binary": {"encoding": "hex", "data": ["504e4155..."]},
        "parsed": [{"id": "4ea5...", "price": {"price": "52340000",
                    "conf": "41000", "expo": -8, "publish_time": 1717000000}}]
    }

A shared :class:`httpx.AsyncClient` is reused across requests.
"""

from __future__ import annotations

import logging
import time
from typing import Any, ClassVar

import httpx

from .errors import sanitize_http_error
from .metrics import hermes_fetch_duration
from .PriceQuote import PriceQuote

logger = logging.getLogger(__name__)

# Public Hermes API endpoint
HERMES_API = "https://hermes.pyth.network"


class HermesError(Exception):
    """Base exception for Hermes API errors."""

    pass


class HermesHTTPError(HermesError):
    """Raised when the Hermes API answers with a non-2xx status.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int):
        """Initialize the HTTP error.

        The response body is deliberately not kept.

        :param status_code: HTTP status code.
        """
        self.status_code = status_code
        super().__init__(
            f"Failed to fetch from Hermes (HTTP {status_code}): price data unavailable"
        )


class HermesClient:
    """Quote source backed by the Pyth Hermes API.

    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar endpoint: Hermes API base URL.
    :ivar timeout: Request timeout in seconds.
    """

    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        endpoint: str = HERMES_API,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Hermes client.

        :param endpoint: Hermes API base URL.
        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional HTTP client; the shared client is used if None.
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._client = client

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        :returns: Shared httpx.AsyncClient instance.
        """
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if cls._shared_client is not None and not cls._shared_client.is_closed:
            await cls._shared_client.aclose()
            cls._shared_client = None

    async def _get(self, url: str, *, params: Any = None) -> httpx.Response:
        """Make an HTTP GET request.

        :param url: Request URL.
        :param params: Optional query parameters.
        :returns: httpx.Response object.
        :raises HermesHTTPError: On non-2xx response.
        :raises HermesError: On network/timeout errors.
        """
        client = self._client or self.get_shared_client()
        try:
            response = await client.get(url, params=params, timeout=self.timeout)
        except httpx.RequestError as e:
            raise HermesError(sanitize_http_error(e)) from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s", url, response.status_code
            )
            raise HermesHTTPError(response.status_code)
        return response

    async def fetch_latest(self, feed_id: str) -> PriceQuote:
        """Fetch the latest price and signed update for a feed.

        :param feed_id: Hex price feed identifier, with or without ``0x``.
        :returns: PriceQuote including the VAA as ``update_data``.
        :raises HermesError: If the request fails or the payload is malformed.
        """
        if not feed_id:
            raise HermesError("Price feed ID not loaded")

        feed_hex = feed_id[2:] if feed_id.startswith("0x") else feed_id
        url = f"{self.endpoint}/v2/updates/price/latest"
        params = {"ids[]": [feed_hex], "encoding": "hex"}

        started = time.perf_counter()
        try:
            response = await self._get(url, params=params)
        finally:
            hermes_fetch_duration.observe(time.perf_counter() - started)

        try:
            data = response.json()
        except ValueError as e:
            raise HermesError("Invalid JSON returned from Hermes") from e

        quote = self._parse_response(data, feed_hex)
        logger.info(
            f"Fetched price from Hermes: {quote.price} (expo: {quote.expo})"
        )
        logger.info(
            f"  Confidence: {quote.conf}, Publish time: {quote.publish_time}"
        )
        logger.debug(f"  VAA size: {len(quote.update_data)} bytes")
        return quote

    @staticmethod
    def _parse_response(data: Any, feed_hex: str) -> PriceQuote:
        """Build a PriceQuote from a Hermes response body.

        :param data: Decoded JSON body.
        :param feed_hex: Requested feed ID without ``0x``.
        :returns: Parsed quote.
        :raises HermesError: If price or VAA data is missing or malformed.
        """
        if not isinstance(data, dict):
            raise HermesError("Unexpected response from Hermes")

        parsed = data.get("parsed") or []
        if not parsed:
            raise HermesError("No price data returned from Hermes")

        binary = data.get("binary") or {}
        vaas = binary.get("data") or []
        if not vaas:
            raise HermesError("No VAA binary data returned from Hermes")

        entry = parsed[0]
        returned_id = str(entry.get("id", "")).lower().removeprefix("0x")
        if returned_id and returned_id != feed_hex.lower():
            raise HermesError("Hermes returned data for an unexpected price feed")

        try:
            price = entry["price"]
            return PriceQuote(
                price=price["price"],
                conf=price["conf"],
                expo=int(price["expo"]),
                publish_time=int(price["publish_time"]),
                feed_id=f"0x{feed_hex.lower()}",
                update_data=bytes.fromhex(vaas[0]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise HermesError(f"Malformed price data from Hermes: {type(e).__name__}") from e
