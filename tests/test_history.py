from datetime import datetime, timedelta, timezone

import pytest

from vcards.schemas.transaction import TransactionRange
from vcards.services.history import range_start

# Wednesday afternoon, UTC
NOW = datetime(2025, 5, 14, 15, 30, tzinfo=timezone.utc)


def test_all_has_no_lower_bound():
    assert range_start(TransactionRange.ALL, NOW) is None


@pytest.mark.parametrize(
    "period, expected",
    [
        (TransactionRange.TODAY, datetime(2025, 5, 14, tzinfo=timezone.utc)),
        (TransactionRange.WEEK, datetime(2025, 5, 11, tzinfo=timezone.utc)),
        (TransactionRange.MONTH, datetime(2025, 5, 1, tzinfo=timezone.utc)),
    ],
)
def test_range_start(period, expected):
    assert range_start(period, NOW) == expected


def test_week_starts_on_sunday():
    sunday = datetime(2025, 5, 11, 8, 0, tzinfo=timezone.utc)
    saturday = sunday + timedelta(days=6)

    assert range_start(TransactionRange.WEEK, sunday) == datetime(2025, 5, 11, tzinfo=timezone.utc)
    assert range_start(TransactionRange.WEEK, saturday) == datetime(2025, 5, 11, tzinfo=timezone.utc)


def test_other_timezones_are_normalized_to_utc():
    # 01:00 on the 1st in UTC+3 is still the previous month in UTC
    local = datetime(2025, 6, 1, 1, 0, tzinfo=timezone(timedelta(hours=3)))

    assert range_start(TransactionRange.TODAY, local) == datetime(2025, 5, 31, tzinfo=timezone.utc)
    assert range_start(TransactionRange.MONTH, local) == datetime(2025, 5, 1, tzinfo=timezone.utc)
