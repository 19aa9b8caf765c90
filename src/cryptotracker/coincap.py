from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

import httpx
from loguru import logger

from cryptotracker.models import Coin, CoinPrice
from cryptotracker.utils.time import parse_timestamp, to_unix_ms

DEFAULT_BASE_URL = "https://api.coincap.io/v2"
DEFAULT_HISTORY_INTERVAL = "h6"

T = TypeVar("T")


class NetworkErrorKind(Enum):
    """The reasons a request to the price API can fail."""

    REQUEST_TIMEOUT = "request_timeout"
    TOO_MANY_REQUESTS = "too_many_requests"
    NO_INTERNET = "no_internet"
    SERVER_ERROR = "server_error"
    SERIALIZATION = "serialization"
    UNKNOWN = "unknown"


class NetworkError(Exception):
    """Raised by the data source when a request cannot be completed."""

    def __init__(self, kind: NetworkErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


def _error_kind_for_status(status_code: int) -> NetworkErrorKind:
    if status_code == httpx.codes.REQUEST_TIMEOUT:
        return NetworkErrorKind.REQUEST_TIMEOUT
    if status_code == httpx.codes.TOO_MANY_REQUESTS:
        return NetworkErrorKind.TOO_MANY_REQUESTS
    if 500 <= status_code < 600:
        return NetworkErrorKind.SERVER_ERROR
    return NetworkErrorKind.UNKNOWN


@dataclass(frozen=True)
class CoinDto:
    """The JSON shape of a coin returned by `GET /assets`.

    CoinCap encodes numbers as strings; plain JSON numbers are accepted too.
    """

    id: str
    rank: int
    name: str
    symbol: str
    market_cap_usd: float
    price_usd: float
    change_percent_24hr: float

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "CoinDto":
        """Builds a DTO from a decoded JSON object.

        Raises:
            KeyError, TypeError, ValueError: If a field is missing or malformed.
        """
        return cls(
            id=str(data["id"]),
            rank=int(data["rank"]),
            name=str(data["name"]),
            symbol=str(data["symbol"]),
            market_cap_usd=float(data["marketCapUsd"]),
            price_usd=float(data["priceUsd"]),
            change_percent_24hr=float(data["changePercent24Hr"]),
        )

    def to_domain(self) -> Coin:
        return Coin(
            id=self.id,
            rank=self.rank,
            name=self.name,
            symbol=self.symbol,
            market_cap_usd=self.market_cap_usd,
            price_usd=self.price_usd,
            change_percent_24hr=self.change_percent_24hr,
        )


@dataclass(frozen=True)
class CoinPriceDto:
    """The JSON shape of one entry returned by `GET /assets/{id}/history`."""

    price_usd: float
    time: int

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "CoinPriceDto":
        return cls(price_usd=float(data["priceUsd"]), time=int(data["time"]))

    def to_domain(self) -> CoinPrice:
        return CoinPrice(
            price_usd=self.price_usd, date_time=parse_timestamp(self.time)
        )


class CoinCapDataSource:
    """Fetches coins and their price history from the CoinCap REST API.

    Every failure is reported as a `NetworkError` whose `kind` tells the
    caller what went wrong. Retrying is left to the caller.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
    ) -> None:
        """Initializes the data source.

        Args:
            http_client: A shared httpx.AsyncClient for making REST API calls.
            base_url: The API root, without a trailing slash.
            api_key: Optional bearer token for higher rate limits.
        """
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key

    async def get_coins(self) -> list[Coin]:
        """Returns all listed coins, ordered by rank."""
        payload = await self._get_json("/assets")
        coins = [
            dto.to_domain()
            for dto in self._parse_items(payload, CoinDto.from_json, "/assets")
        ]
        logger.info(f"Fetched {len(coins)} coins.")
        return sorted(coins, key=lambda c: c.rank)

    async def get_coin_history(
        self,
        coin_id: str,
        start: datetime,
        end: datetime,
        interval: str = DEFAULT_HISTORY_INTERVAL,
    ) -> list[CoinPrice]:
        """Returns the price history of `coin_id` between `start` and `end`.

        Args:
            coin_id: The CoinCap asset id, e.g. 'bitcoin'.
            start: The start of the range. Naive datetimes are treated as UTC.
            end: The end of the range.
            interval: The CoinCap sampling interval, e.g. 'h6' or 'd1'.

        Returns:
            The prices in ascending time order.
        """
        path = f"/assets/{coin_id}/history"
        params = {
            "interval": interval,
            "start": to_unix_ms(start),
            "end": to_unix_ms(end),
        }
        logger.info(
            f"Fetching {interval} history for '{coin_id}' from {start} to {end}."
        )
        payload = await self._get_json(path, params)
        prices = [
            dto.to_domain()
            for dto in self._parse_items(payload, CoinPriceDto.from_json, path)
        ]
        prices.sort(key=lambda p: p.date_time)
        logger.success(f"Fetched {len(prices)} prices for '{coin_id}'.")
        return prices

    def _headers(self) -> dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.get(
                url, params=params, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Request to '{url}' timed out: {e}")
            raise NetworkError(NetworkErrorKind.REQUEST_TIMEOUT, str(e)) from e
        except httpx.NetworkError as e:
            logger.warning(f"Could not reach '{url}': {e}")
            raise NetworkError(NetworkErrorKind.NO_INTERNET, str(e)) from e
        except httpx.HTTPError as e:
            logger.error(f"Request to '{url}' failed: {e}")
            raise NetworkError(NetworkErrorKind.UNKNOWN, str(e)) from e

        if not response.is_success:
            kind = _error_kind_for_status(response.status_code)
            err_msg = f"'{url}' returned HTTP {response.status_code}."
            logger.error(err_msg)
            raise NetworkError(kind, err_msg)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Response from '{url}' is not valid JSON: {e}")
            raise NetworkError(NetworkErrorKind.SERIALIZATION, str(e)) from e

    @staticmethod
    def _parse_items(
        payload: Any, parse: Callable[[dict[str, Any]], T], path: str
    ) -> list[T]:
        """Applies `parse` to every object in the response's `data` list."""
        try:
            return [parse(item) for item in payload["data"]]
        except (KeyError, TypeError, ValueError) as e:
            err_msg = f"Unexpected response shape from '{path}': {e!r}"
            logger.error(err_msg)
            raise NetworkError(NetworkErrorKind.SERIALIZATION, err_msg) from e
