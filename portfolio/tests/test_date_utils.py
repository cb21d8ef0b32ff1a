# portfolio/tests/test_date_utils.py
import json
from datetime import date, datetime, timedelta, timezone

import pytest

from portfolio.utils.date_utils import (
    format_date,
    format_relative,
    to_datetime,
    to_epoch_millis,
    to_iso_string,
    to_utc_datetime,
)

JAN_15_MS = 1705276800000          # 2024-01-15T00:00:00Z
JAN_15_1030_MS = 1705314600000     # 2024-01-15T10:30:00Z


class FakeTimestamp:
    """Stands in for a lazily-materialized store timestamp."""

    def __init__(self, value):
        self.value = value

    def toDate(self):
        return self.value


class SecondsOnly:
    def __init__(self, seconds, nanoseconds=0):
        self.seconds = seconds
        self.nanoseconds = nanoseconds


@pytest.mark.parametrize(
    "value, expected_ms",
    [
        (datetime(2024, 1, 15, tzinfo=timezone.utc), JAN_15_MS),
        (date(2024, 1, 15), JAN_15_MS),
        ("2024-01-15", JAN_15_MS),
        ("2024-01-15T00:00:00.000Z", JAN_15_MS),
        ("2024-01-15T10:30:00Z", JAN_15_1030_MS),
        ("2024-01-15T14:30:00+04:00", JAN_15_1030_MS),
        ("January 15, 2024", JAN_15_MS),
        (JAN_15_MS, JAN_15_MS),
        (float(JAN_15_1030_MS), JAN_15_1030_MS),
        (FakeTimestamp(datetime(2024, 1, 15, tzinfo=timezone.utc)), JAN_15_MS),
        (FakeTimestamp(JAN_15_MS), JAN_15_MS),
        ({"seconds": 1705276800, "nanoseconds": 0}, JAN_15_MS),
        ({"seconds": 1705276800, "nanoseconds": 999000000}, JAN_15_MS),
        (SecondsOnly(1705276800), JAN_15_MS),
        (json.dumps({"seconds": 1705314600, "nanoseconds": 0}), JAN_15_1030_MS),
    ],
)
def test_accepted_shapes_match_reference_millis(value, expected_ms):
    assert to_epoch_millis(to_datetime(value)) == expected_ms


@pytest.mark.parametrize(
    "value",
    [None, {}, [], "", "   ", "not a date", object(), True, False, 0,
     {"seconds": "soon"}, '{"seconds": "x"}', '{"seconds": broken', timedelta(days=2),
     float("nan")],
)
def test_unrecognized_shapes_return_none(value):
    assert to_datetime(value) is None


def test_datetime_returned_unchanged():
    naive = datetime(2024, 1, 15, 8, 0)
    assert to_datetime(naive) is naive


def test_naive_values_are_treated_as_utc():
    assert to_utc_datetime(datetime(2024, 1, 15)) == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert to_datetime("2024-01-15T10:30:00").tzinfo is not None


def test_iso_string_has_millis_and_z_suffix():
    assert to_iso_string(JAN_15_1030_MS + 123) == "2024-01-15T10:30:00.123Z"
    assert to_iso_string(None) is None


def test_format_date_variants():
    assert format_date(None) == "N/A"
    assert format_date("garbage") == "Invalid date"
    assert format_date("2024-01-15", "short") == "Jan 15, 2024"
    assert format_date("2024-01-15", "full") == "Monday, January 15, 2024"


def test_format_relative():
    now = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert format_relative(now - timedelta(seconds=10), now) == "just now"
    assert format_relative(now - timedelta(minutes=5), now) == "5 minutes ago"
    assert format_relative(now - timedelta(hours=1), now) == "1 hour ago"
    assert format_relative(now - timedelta(days=3), now) == "3 days ago"
    assert format_relative(now - timedelta(days=400), now) == "1 year ago"
