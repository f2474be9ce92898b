"""Unit tests for HermesClient."""

from typing import Any, Callable

import httpx
import pytest

from relayer.src.HermesClient import HermesClient, HermesError, HermesHTTPError

FEED_HEX = "4ea5bb4d2f5900cc2e97ba534240950740b4d3b89fe712a94a7304fd2fd92702"
VAA_HEX = "504e41550100000003b801000000040d00"


def hermes_body(
    feed_hex: str = FEED_HEX,
    price: str = "52340000",
    conf: str = "41000",
    expo: int = -8,
    publish_time: int = 1717000000,
) -> dict[str, Any]:
    """Create a Hermes latest-update response body."""
    return {
        "binary": {"encoding": "hex", "data": [VAA_HEX]},
        "parsed": [
            {
                "id": feed_hex,
                "price": {
                    "price": price,
                    "conf": conf,
                    "expo": expo,
                    "publish_time": publish_time,
                },
                "ema_price": {
                    "price": price,
                    "conf": conf,
                    "expo": expo,
                    "publish_time": publish_time,
                },
            }
        ],
    }


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> HermesClient:
    """Create a client backed by a mock transport."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HermesClient("https://hermes.example.com/", client=http_client)


class TestFetchLatest:
    """Test fetching the latest price update."""

    @pytest.mark.asyncio
    async def test_parses_quote(self) -> None:
        """Price fields and VAA are parsed into a quote."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=hermes_body())

        client = make_client(handler)
        quote = await client.fetch_latest(f"0x{FEED_HEX}")

        assert quote.price == "52340000"
        assert quote.conf == "41000"
        assert quote.expo == -8
        assert quote.publish_time == 1717000000
        assert quote.feed_id == f"0x{FEED_HEX}"
        assert quote.update_data == bytes.fromhex(VAA_HEX)

        assert len(requests) == 1
        url = requests[0].url
        assert url.path == "/v2/updates/price/latest"
        assert url.params.get_list("ids[]") == [FEED_HEX]
        assert url.params["encoding"] == "hex"

    @pytest.mark.asyncio
    async def test_feed_id_without_prefix(self) -> None:
        """Feed IDs are accepted without 0x."""
        client = make_client(lambda request: httpx.Response(200, json=hermes_body()))
        quote = await client.fetch_latest(FEED_HEX)
        assert quote.feed_id == f"0x{FEED_HEX}"

    @pytest.mark.asyncio
    async def test_missing_feed_id(self) -> None:
        """An empty feed ID fails before any request."""
        client = make_client(lambda request: pytest.fail("no request expected"))
        with pytest.raises(HermesError, match="Price feed ID not loaded"):
            await client.fetch_latest("")


class TestFetchLatestErrors:
    """Test error handling of the Hermes client."""

    @pytest.mark.asyncio
    async def test_http_error_hides_body(self) -> None:
        """Non-2xx responses raise without the response body."""
        client = make_client(
            lambda request: httpx.Response(500, text="internal stack trace at /srv/hermes")
        )
        with pytest.raises(HermesHTTPError) as exc_info:
            await client.fetch_latest(FEED_HEX)

        assert exc_info.value.status_code == 500
        assert "/srv/hermes" not in str(exc_info.value)
        assert "HTTP 500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        """Transport errors become HermesError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(HermesError, match="no response"):
            await client.fetch_latest(FEED_HEX)

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        """Non-JSON bodies are rejected."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(HermesError, match="Invalid JSON"):
            await client.fetch_latest(FEED_HEX)

    @pytest.mark.asyncio
    async def test_empty_parsed(self) -> None:
        """Missing price data is rejected."""
        body = hermes_body()
        body["parsed"] = []
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(HermesError, match="No price data"):
            await client.fetch_latest(FEED_HEX)

    @pytest.mark.asyncio
    async def test_missing_vaa(self) -> None:
        """Missing binary data is rejected."""
        body = hermes_body()
        body["binary"]["data"] = []
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(HermesError, match="No VAA binary data"):
            await client.fetch_latest(FEED_HEX)

    @pytest.mark.asyncio
    async def test_unexpected_feed(self) -> None:
        """Data for another feed is rejected."""
        body = hermes_body(feed_hex="ff" * 32)
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(HermesError, match="unexpected price feed"):
            await client.fetch_latest(FEED_HEX)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["-5", "1.5", "abc"])
    async def test_malformed_price(self, price: str) -> None:
        """Non-integer price mantissas are rejected."""
        body = hermes_body(price=price)
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(HermesError, match="Malformed price data"):
            await client.fetch_latest(FEED_HEX)


class TestSharedClient:
    """Test the shared HTTP client."""

    @pytest.mark.asyncio
    async def test_shared_client_reused_and_closed(self) -> None:
        """The shared client is created once and can be closed."""
        first = HermesClient.get_shared_client()
        second = HermesClient.get_shared_client()
        assert first is second

        await HermesClient.close_shared_client()
        assert first.is_closed
        assert HermesClient._shared_client is None
