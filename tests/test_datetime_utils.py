"""
Tests for utils.datetime_utils

Montevideo is UTC-3 all year, so local midnight is 03:00 UTC.
"""

from datetime import datetime, timezone, timedelta

import pytest

from utils.datetime_utils import (
    ensure_utc, utc_to_local, start_of_local_day, start_of_local_month, format_utc_iso
)
from tests.helpers import utc


class TestEnsureUtc:

    def test_naive_is_read_as_utc(self):
        assert ensure_utc(datetime(2024, 6, 1, 12)) == utc(2024, 6, 1, 12)

    def test_other_offsets_are_converted(self):
        minus_three = timezone(timedelta(hours=-3))

        result = ensure_utc(datetime(2024, 6, 1, 9, tzinfo=minus_three))

        assert result == utc(2024, 6, 1, 12)
        assert result.tzinfo == timezone.utc

    def test_none_passes_through(self):
        assert ensure_utc(None) is None


class TestLocalCalendar:

    def test_utc_to_local(self):
        assert utc_to_local(utc(2024, 6, 1, 2)).day == 31

    @pytest.mark.parametrize('now,expected', [
        (utc(2024, 6, 15, 12), utc(2024, 6, 15, 3)),
        # 01:00 UTC is still the previous local day
        (utc(2024, 6, 15, 1), utc(2024, 6, 14, 3)),
    ])
    def test_start_of_local_day(self, now, expected):
        assert start_of_local_day(now) == expected

    def test_start_of_local_month(self):
        assert start_of_local_month(utc(2024, 6, 15, 12)) == utc(2024, 6, 1, 3)

    def test_start_of_local_month_at_utc_month_boundary(self):
        assert start_of_local_month(utc(2024, 7, 1, 2)) == utc(2024, 6, 1, 3)

    def test_other_timezone(self):
        assert start_of_local_day(utc(2024, 6, 15, 12), 'UTC') == utc(2024, 6, 15)


def test_format_utc_iso():
    assert format_utc_iso(datetime(2024, 6, 1, 12)) == '2024-06-01T12:00:00+00:00'
    assert format_utc_iso(None) is None
