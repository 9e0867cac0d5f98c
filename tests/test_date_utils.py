from datetime import UTC, datetime

from core.date_utils import (
    get_current_utc_time,
    month_key,
    parse_timestamp,
    to_local,
)


def test_parse_timestamp_handles_empty_and_invalid() -> None:
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("not-a-date") is None
    assert parse_timestamp(True) is None


def test_parse_timestamp_normalizes_to_utc() -> None:
    parsed = parse_timestamp("2024-01-01T00:00:00-05:00")
    assert parsed is not None
    assert parsed.astimezone(UTC).hour == 5


def test_parse_timestamp_treats_naive_as_utc() -> None:
    parsed = parse_timestamp(datetime(2024, 1, 1, 12, 0, 0))
    assert parsed is not None
    assert parsed.tzinfo == UTC
    assert parsed.hour == 12


def test_parse_timestamp_accepts_epoch_milliseconds() -> None:
    expected = datetime(2024, 3, 1, 8, 30, tzinfo=UTC)
    ms = int(expected.timestamp() * 1000)

    assert parse_timestamp(ms) == expected
    assert parse_timestamp(str(ms)) == expected


def test_to_local_and_month_key_respect_timezone() -> None:
    # 03:00 UTC on Feb 1 is still Jan 31 in New York.
    dt = datetime(2024, 2, 1, 3, 0, tzinfo=UTC)

    assert to_local(dt, "America/New_York").day == 31
    assert month_key(dt, "America/New_York") == "2024-01"
    assert month_key(dt) == "2024-02"


def test_unknown_timezone_falls_back_to_utc() -> None:
    dt = datetime(2024, 2, 1, 3, 0, tzinfo=UTC)
    assert to_local(dt, "Not/AZone").hour == 3


def test_get_current_utc_time_returns_utc() -> None:
    now = get_current_utc_time()
    assert now.tzinfo == UTC
    assert isinstance(now, datetime)
