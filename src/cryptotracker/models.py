from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Coin:
    """A coin as listed by the price API."""

    id: str
    rank: int
    name: str
    symbol: str
    market_cap_usd: float
    price_usd: float
    change_percent_24hr: float


@dataclass(frozen=True)
class CoinPrice:
    """A single point of a coin's price history."""

    price_usd: float
    date_time: datetime
