"""Statement date parsing tests."""

from datetime import date, datetime

import pytest

from categorizer.utils.dates import parse_transaction_date


@pytest.mark.parametrize(
    "value,expected",
    [
        ("15/06/2025", date(2025, 6, 15)),
        ("2025-06-15", date(2025, 6, 15)),
        ("15-06-2025", date(2025, 6, 15)),
        ("15.06.2025", date(2025, 6, 15)),
        ("15/06/25", date(2025, 6, 15)),
        (" 01/06/2025 ", date(2025, 6, 1)),
        ("2025-06-15T10:30:00", date(2025, 6, 15)),
        (date(2025, 6, 15), date(2025, 6, 15)),
        (datetime(2025, 6, 15, 8, 0), date(2025, 6, 15)),
    ],
)
def test_parse_known_formats(value, expected):
    assert parse_transaction_date(value) == expected


@pytest.mark.parametrize("value", [None, "", "yesterday", "31/02/2025", "06/15/2025"])
def test_unparseable_dates_are_none(value):
    assert parse_transaction_date(value) is None
