import json
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio

from cryptotracker.coincap import (
    CoinCapDataSource,
    CoinDto,
    CoinPriceDto,
    NetworkError,
    NetworkErrorKind,
)
from cryptotracker.models import Coin

BASE_URL = "https://api.test/v2"

Handler = Callable[[httpx.Request], httpx.Response]

COINS_PAYLOAD = {
    "data": [
        {
            "id": "ethereum",
            "rank": "2",
            "symbol": "ETH",
            "name": "Ethereum",
            "marketCapUsd": "300000000000.5",
            "priceUsd": "2659.41",
            "changePercent24Hr": "-1.25",
        },
        {
            "id": "bitcoin",
            "rank": "1",
            "symbol": "BTC",
            "name": "Bitcoin",
            "marketCapUsd": "1300000000000",
            "priceUsd": "67000.12",
            "changePercent24Hr": "0.5",
        },
    ],
    "timestamp": 1760659200000,
}

HISTORY_PAYLOAD = {
    "data": [
        {"priceUsd": "67100.5", "time": 1760724000000},
        {"priceUsd": "67000.1", "time": 1760702400000},
    ],
}


class RecordingTransport:
    """Wraps a handler and records every request that reaches it."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def json_response(payload: object, status_code: int = 200) -> Handler:
    return lambda request: httpx.Response(status_code, json=payload)


@pytest_asyncio.fixture()
async def make_source() -> AsyncIterator[
    Callable[..., tuple[CoinCapDataSource, RecordingTransport]]
]:
    """Factory fixture building a data source on top of a mock transport."""
    clients: list[httpx.AsyncClient] = []

    def _make(
        handler: Handler, api_key: str | None = None
    ) -> tuple[CoinCapDataSource, RecordingTransport]:
        transport = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        clients.append(client)
        return CoinCapDataSource(client, base_url=BASE_URL, api_key=api_key), transport

    yield _make
    for client in clients:
        await client.aclose()


@pytest.mark.asyncio
async def test_get_coins_parses_and_sorts_by_rank(make_source) -> None:
    """Tests that string-encoded numbers are parsed and coins ordered by rank."""
    source, transport = make_source(json_response(COINS_PAYLOAD))

    coins = await source.get_coins()

    assert [c.id for c in coins] == ["bitcoin", "ethereum"]
    assert coins[1] == Coin(
        id="ethereum",
        rank=2,
        name="Ethereum",
        symbol="ETH",
        market_cap_usd=300000000000.5,
        price_usd=2659.41,
        change_percent_24hr=-1.25,
    )
    assert str(transport.requests[0].url) == f"{BASE_URL}/assets"


@pytest.mark.asyncio
async def test_get_coin_history_sends_range_and_sorts(make_source) -> None:
    """Tests the query parameters and the ascending time order of the result."""
    source, transport = make_source(json_response(HISTORY_PAYLOAD))
    start = datetime(2025, 10, 12, tzinfo=timezone.utc)
    end = datetime(2025, 10, 17, tzinfo=timezone.utc)

    prices = await source.get_coin_history("bitcoin", start, end, interval="h1")

    request = transport.requests[0]
    assert request.url.path == "/v2/assets/bitcoin/history"
    assert request.url.params["interval"] == "h1"
    assert request.url.params["start"] == str(int(start.timestamp() * 1000))
    assert request.url.params["end"] == str(int(end.timestamp() * 1000))

    assert [p.price_usd for p in prices] == [67000.1, 67100.5]
    assert prices[0].date_time == datetime(2025, 10, 17, 12, tzinfo=timezone.utc)
    assert prices[1].date_time.tzinfo is not None


@pytest.mark.asyncio
async def test_default_history_interval(make_source) -> None:
    source, transport = make_source(json_response({"data": []}))
    now = datetime.now(timezone.utc)

    assert await source.get_coin_history("bitcoin", now, now) == []
    assert transport.requests[0].url.params["interval"] == "h6"


@pytest.mark.asyncio
async def test_api_key_is_sent_as_bearer_token(make_source) -> None:
    source, transport = make_source(json_response({"data": []}), api_key="secret")

    await source.get_coins()

    assert transport.requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_no_authorization_header_without_key(make_source) -> None:
    source, transport = make_source(json_response({"data": []}))

    await source.get_coins()

    assert "Authorization" not in transport.requests[0].headers


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "kind"),
    [
        (408, NetworkErrorKind.REQUEST_TIMEOUT),
        (429, NetworkErrorKind.TOO_MANY_REQUESTS),
        (500, NetworkErrorKind.SERVER_ERROR),
        (503, NetworkErrorKind.SERVER_ERROR),
        (404, NetworkErrorKind.UNKNOWN),
        (401, NetworkErrorKind.UNKNOWN),
    ],
)
async def test_http_status_maps_to_error_kind(
    make_source, status_code: int, kind: NetworkErrorKind
) -> None:
    """Tests that unsuccessful responses raise a NetworkError of the right kind."""
    source, _ = make_source(json_response({"error": "nope"}, status_code))

    with pytest.raises(NetworkError) as exc_info:
        await source.get_coins()

    assert exc_info.value.kind is kind
    assert str(status_code) in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_json_is_a_serialization_error(make_source) -> None:
    source, _ = make_source(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(NetworkError) as exc_info:
        await source.get_coins()

    assert exc_info.value.kind is NetworkErrorKind.SERIALIZATION


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"items": []},
        {"data": None},
        {"data": [{"id": "bitcoin"}]},
        {"data": [dict(COINS_PAYLOAD["data"][0], priceUsd="not a number")]},
        [1, 2, 3],
    ],
)
async def test_unexpected_shape_is_a_serialization_error(
    make_source, payload: object
) -> None:
    """Tests that missing or malformed fields are reported, not raised raw."""
    body = json.dumps(payload)
    source, _ = make_source(lambda request: httpx.Response(200, text=body))

    with pytest.raises(NetworkError) as exc_info:
        await source.get_coins()

    assert exc_info.value.kind is NetworkErrorKind.SERIALIZATION


@pytest.mark.asyncio
async def test_connection_failure_is_no_internet(make_source) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    source, _ = make_source(handler)

    with pytest.raises(NetworkError) as exc_info:
        await source.get_coins()

    assert exc_info.value.kind is NetworkErrorKind.NO_INTERNET
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_timeout_is_request_timeout(make_source) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    source, _ = make_source(handler)

    with pytest.raises(NetworkError) as exc_info:
        await source.get_coin_history(
            "bitcoin", datetime.now(timezone.utc), datetime.now(timezone.utc)
        )

    assert exc_info.value.kind is NetworkErrorKind.REQUEST_TIMEOUT


def test_coin_dto_accepts_plain_numbers() -> None:
    """Tests that JSON numbers are accepted as well as numeric strings."""
    dto = CoinDto.from_json(
        {
            "id": "tether",
            "rank": 3,
            "name": "Tether",
            "symbol": "USDT",
            "marketCapUsd": 1,
            "priceUsd": 1.0001,
            "changePercent24Hr": 0,
        }
    )

    assert dto.rank == 3
    assert dto.to_domain().price_usd == 1.0001


def test_coin_price_dto_converts_millisecond_time() -> None:
    dto = CoinPriceDto.from_json({"priceUsd": "1.5", "time": 1760659200000})

    price = dto.to_domain()
    assert price.price_usd == 1.5
    assert price.date_time == datetime(2025, 10, 17, tzinfo=timezone.utc)
