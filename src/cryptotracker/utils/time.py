from datetime import datetime, timezone
from typing import Any

from loguru import logger

# A heuristic to determine the unit of a numeric timestamp.
# If a timestamp (in seconds) is greater than this, it's likely in milliseconds.
# This corresponds to a date in the year 2286.
MILLISECONDS_THRESHOLD = 10**10
# If a timestamp (in seconds) is greater than this, it's likely in microseconds.
# This corresponds to a date in the year 2286 when measured in milliseconds.
MICROSECONDS_THRESHOLD = 10**13


def parse_timestamp(timestamp: Any) -> datetime:
    """Parses a timestamp from various formats into an aware UTC datetime.

    This function can handle:
    - int, float: Unix timestamps in seconds, milliseconds or microseconds.
                  The unit is guessed from the magnitude.
    - str: ISO 8601 strings, including a 'Z' suffix, or a numeric string.
    - datetime: Naive datetimes are assumed to be UTC.

    Args:
        timestamp: The timestamp to parse.

    Returns:
        A timezone-aware datetime in UTC.

    Raises:
        ValueError: If the timestamp format is unrecognized or invalid.
    """
    if isinstance(timestamp, bool):
        err_msg = f"Unsupported timestamp type: {type(timestamp).__name__}"
        raise ValueError(err_msg)

    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc)

    if isinstance(timestamp, int | float):
        if timestamp > MICROSECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000_000
        elif timestamp > MILLISECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000
        else:
            ts_seconds = timestamp
        try:
            return datetime.fromtimestamp(ts_seconds, tz=timezone.utc)
        except (OSError, OverflowError, ValueError) as e:
            err_msg = f"Numeric timestamp '{timestamp}' is out of range."
            raise ValueError(err_msg) from e

    if isinstance(timestamp, str):
        text = timestamp.strip()
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        try:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            dt_obj = datetime.fromisoformat(text)
        except ValueError as e:
            logger.warning(f"Could not parse timestamp string '{timestamp}': {e}")
            err_msg = f"Invalid or unrecognized timestamp string format: {timestamp}"
            raise ValueError(err_msg) from e
        return parse_timestamp(dt_obj)

    err_msg = f"Unsupported timestamp type: {type(timestamp).__name__}"
    raise ValueError(err_msg)


def to_unix_ms(dt_obj: datetime) -> int:
    """Converts a datetime to milliseconds since the Unix epoch.

    Naive datetimes are assumed to be UTC.
    """
    return int(parse_timestamp(dt_obj).timestamp() * 1000)
