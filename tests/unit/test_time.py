from datetime import datetime, timedelta, timezone

import pytest

from cryptotracker.utils.time import parse_timestamp, to_unix_ms

EXPECTED = datetime(2025, 10, 17, 12, 30, tzinfo=timezone.utc)
EXPECTED_SECONDS = int(EXPECTED.timestamp())


@pytest.mark.parametrize(
    "timestamp",
    [
        EXPECTED_SECONDS,
        float(EXPECTED_SECONDS),
        EXPECTED_SECONDS * 1000,
        EXPECTED_SECONDS * 1_000_000,
        str(EXPECTED_SECONDS * 1000),
        "2025-10-17T12:30:00Z",
        "2025-10-17T14:30:00+02:00",
        " 2025-10-17T12:30:00+00:00 ",
    ],
)
def test_parse_timestamp_formats(timestamp: object) -> None:
    """Tests numeric units and ISO 8601 strings normalise to the same UTC time."""
    parsed = parse_timestamp(timestamp)

    assert parsed == EXPECTED
    assert parsed.utcoffset() == timedelta(0)


def test_naive_datetime_is_assumed_utc() -> None:
    assert parse_timestamp(datetime(2025, 10, 17, 12, 30)) == EXPECTED


def test_aware_datetime_is_converted_to_utc() -> None:
    cest = timezone(timedelta(hours=2))
    parsed = parse_timestamp(datetime(2025, 10, 17, 14, 30, tzinfo=cest))

    assert parsed == EXPECTED
    assert parsed.tzinfo == timezone.utc


@pytest.mark.parametrize("timestamp", ["yesterday", "", True, None, [1, 2]])
def test_parse_timestamp_rejects_unknown_input(timestamp: object) -> None:
    with pytest.raises(ValueError):
        parse_timestamp(timestamp)


def test_to_unix_ms() -> None:
    assert to_unix_ms(EXPECTED) == EXPECTED_SECONDS * 1000
    assert to_unix_ms(datetime(1970, 1, 1)) == 0
