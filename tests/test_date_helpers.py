from datetime import date, datetime, timedelta, timezone

import pytest

from utils.currency import format_currency, format_percent
from utils.date_helpers import (
    format_display_date, parse_bool, parse_display_date, to_taipei_date,
)


@pytest.mark.parametrize("raw, expected", [
    ("2024-03-01", "2024-03-01"),
    ("2024/3/1", "2024-03-01"),
    ("2024.03.01", "2024-03-01"),
    ("2024-02-29T16:00:00.000Z", "2024-03-01"),
    ("2024-03-01T08:00:00+08:00", "2024-03-01"),
    (date(2024, 3, 1), "2024-03-01"),
    (datetime(2024, 3, 1, 23, 59), "2024-03-01"),
    (datetime(2024, 2, 29, 20, 0, tzinfo=timezone(timedelta(hours=-4))), "2024-03-01"),
    ("", ""),
    (None, ""),
    ("not a date", ""),
    (True, ""),
])
def test_to_taipei_date(raw, expected):
    assert to_taipei_date(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    (True, True), ("TRUE", True), ("true", True), ("1", True), (" yes ", True), ("是", True),
    (1, True), (1.0, True),
    (False, False), ("FALSE", False), ("", False), (None, False), (0, False), ("否", False),
])
def test_parse_bool(raw, expected):
    assert parse_bool(raw) is expected


def test_display_dates():
    assert format_display_date("2024-03-01", "YYYY/MM/DD") == "2024/03/01"
    assert format_display_date("", "YYYY/MM/DD") == ""
    assert parse_display_date("2024/03/01", "YYYY/MM/DD") == date(2024, 3, 1)
    assert parse_display_date("2024-03-01", "YYYY/MM/DD") == date(2024, 3, 1)
    assert parse_display_date("garbage", "YYYY-MM-DD") is None


def test_currency_formatting():
    assert format_currency(1234) == "NT$ 1,234"
    assert format_currency(12.5) == "NT$ 12.50"
    assert format_percent(42.46) == "42.5%"
