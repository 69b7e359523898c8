import pytest
from datetime import datetime, timedelta, timezone

from keyserver.services.common.timeinfo import get_remaining_time, parse_timestamp

NOW = datetime(2026, 1, 1, 12, 0, 0)


def test_remaining_time_hours_and_minutes():
    info = get_remaining_time(NOW + timedelta(hours=5, minutes=59, seconds=30), NOW)

    assert info.expired is False
    assert info.hours == 5
    assert info.minutes == 59
    assert info.formatted == "5h 59m"
    assert info.remaining == (5 * 3600 + 59 * 60 + 30) * 1000


def test_remaining_time_under_a_minute():
    info = get_remaining_time(NOW + timedelta(seconds=20), NOW)
    assert info.expired is False
    assert info.formatted == "0h 0m"
    assert info.remaining == 20000


@pytest.mark.parametrize("delta", [timedelta(0), timedelta(seconds=-1), timedelta(days=-3)])
def test_remaining_time_expired(delta):
    info = get_remaining_time(NOW + delta, NOW)

    assert info.expired is True
    assert info.remaining == 0
    assert info.hours == 0
    assert info.minutes == 0
    assert info.formatted == "Expired"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-12-31T23:59:59Z", datetime(2025, 12, 31, 23, 59, 59)),
        ("2025-12-31T23:59:59.500Z", datetime(2025, 12, 31, 23, 59, 59, 500000)),
        ("2026-01-01T09:00:00+09:00", datetime(2026, 1, 1, 0, 0, 0)),
        ("2026-01-01T00:00:00", datetime(2026, 1, 1, 0, 0, 0)),
        (datetime(2026, 1, 1, 3, tzinfo=timezone(timedelta(hours=3))), datetime(2026, 1, 1, 0, 0, 0)),
    ],
)
def test_parse_timestamp(value, expected):
    parsed = parse_timestamp(value)
    assert parsed == expected
    assert parsed.tzinfo is None


@pytest.mark.parametrize(
    "value", ["", "   ", "yesterday", "2026-02-30T00:00:00Z", "0001-01-01T00:00:00+01:00", None, 1700000000]
)
def test_parse_timestamp_rejects(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)
