from collections.abc import Iterable

from cryptotracker.chart.models import DataPoint
from cryptotracker.models import CoinPrice


def format_x_label(price: CoinPrice) -> str:
    """Two-line axis label with the hour on top, e.g. '3PM\\n10/17'."""
    dt = price.date_time
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour}{meridiem}\n{dt.month}/{dt.day}"


def to_data_points(prices: Iterable[CoinPrice]) -> list[DataPoint]:
    """Projects a coin's price history onto chart samples.

    The x value is the hour of day and the label carries the full date,
    so samples keep the order of `prices`.
    """
    return [
        DataPoint(
            x=float(price.date_time.hour),
            y=price.price_usd,
            x_label=format_x_label(price),
        )
        for price in prices
    ]
