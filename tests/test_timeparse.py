import calendar
from datetime import date

import pytest

from gpxtools.timeparse import days_from_civil, parse_iso8601_epoch

EPOCH_ORDINAL = date(1970, 1, 1).toordinal()


@pytest.mark.parametrize(
    "ymd",
    [(1970, 1, 1), (2000, 2, 29), (2000, 3, 1), (1999, 12, 31), (1900, 3, 1), (2024, 5, 6), (1601, 1, 1)],
)
def test_days_from_civil_matches_calendar(ymd):
    assert days_from_civil(*ymd) == date(*ymd).toordinal() - EPOCH_ORDINAL


def test_days_from_civil_consecutive_across_leap_day():
    assert days_from_civil(2000, 3, 1) - days_from_civil(2000, 2, 29) == 1
    assert days_from_civil(1900, 3, 1) - days_from_civil(1900, 2, 28) == 1


def _base():
    return float(calendar.timegm((2024, 5, 6, 7, 8, 9, 0, 0, 0)))


def test_utc_z():
    assert parse_iso8601_epoch("2024-05-06T07:08:09Z") == _base()


def test_lowercase_z_and_no_zone_are_utc():
    assert parse_iso8601_epoch("2024-05-06T07:08:09z") == _base()
    assert parse_iso8601_epoch("2024-05-06T07:08:09") == _base()


def test_fraction():
    assert parse_iso8601_epoch("2024-05-06T07:08:09.5Z") == pytest.approx(_base() + 0.5)


def test_positive_offset_with_colon():
    assert parse_iso8601_epoch("2024-05-06T07:08:09+02:00") == _base() - 2 * 3600


def test_negative_offset_without_colon():
    assert parse_iso8601_epoch("2024-05-06T07:08:09-0130") == _base() + 3600 + 30 * 60


def test_offset_hours_only():
    assert parse_iso8601_epoch("2024-05-06T07:08:09+05") == _base() - 5 * 3600


def test_whitespace_trimmed():
    assert parse_iso8601_epoch("  2024-05-06T07:08:09Z\n") == _base()


def test_too_short_returns_none():
    assert parse_iso8601_epoch("2024-05-06T07:08") is None


def test_garbage_returns_none():
    assert parse_iso8601_epoch("abcd-05-06T07:08:09Z") is None


def test_truncated_offset_returns_none():
    assert parse_iso8601_epoch("2024-05-06T07:08:09+0") is None