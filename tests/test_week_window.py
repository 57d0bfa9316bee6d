"""
Tests for the compliance week calculation.

2026-10-03, 2026-10-10 and 2026-10-17 are Saturdays.
"""

from datetime import datetime, timezone, timedelta

import pytest
import pytz

from app.utils.week_window import compute_report_window, ReportWindow


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize("now, expected_start", [
    (_utc(2026, 10, 14, 12, 0), datetime(2026, 10, 3)),   # Wednesday
    (_utc(2026, 10, 16, 23, 59), datetime(2026, 10, 3)),  # Friday night
    (_utc(2026, 10, 17, 0, 30), datetime(2026, 10, 3)),   # Saturday: steps back a full week
    (_utc(2026, 10, 18, 9, 0), datetime(2026, 10, 10)),   # Sunday
    (_utc(2026, 10, 10, 12, 0), datetime(2026, 9, 26)),   # Saturday again
])
def test_window_start_for_each_weekday(now, expected_start):
    window = compute_report_window(now, "UTC")
    assert window.start_utc == expected_start
    assert window.start.weekday() == 5


def test_window_spans_saturday_through_friday_last_instant():
    window = compute_report_window(_utc(2026, 10, 14, 12, 0), "UTC")

    assert window.start_utc == datetime(2026, 10, 3, 0, 0, 0)
    assert window.end_utc == datetime(2026, 10, 9, 23, 59, 59, 999999)
    assert window.end.weekday() == 4
    assert window.end_utc - window.start_utc == timedelta(days=7) - timedelta(microseconds=1)


def test_window_is_drawn_in_the_pinned_calendar():
    # Saturday 22:00 UTC is already Sunday 01:00 in Riyadh (UTC+3)
    now = _utc(2026, 10, 17, 22, 0)

    utc_window = compute_report_window(now, "UTC")
    riyadh_window = compute_report_window(now, "Asia/Riyadh")

    assert utc_window.start_utc == datetime(2026, 10, 3)
    assert riyadh_window.start.date() == datetime(2026, 10, 10).date()
    assert riyadh_window.start.hour == 0
    # Local midnight in Riyadh is 21:00 UTC the previous day
    assert riyadh_window.start_utc == datetime(2026, 10, 9, 21, 0)
    assert riyadh_window.end_utc == datetime(2026, 10, 16, 20, 59, 59, 999999)


def test_accepts_pytz_zone_and_naive_now():
    zone = pytz.timezone("Asia/Riyadh")
    aware = compute_report_window(_utc(2026, 10, 14, 12, 0), zone)
    naive = compute_report_window(datetime(2026, 10, 14, 12, 0), zone)
    assert aware == naive


def test_same_instant_always_yields_same_window():
    now = _utc(2026, 10, 14, 12, 0)
    assert compute_report_window(now, "UTC") == compute_report_window(now, "UTC")


def test_contains_is_inclusive_on_both_ends():
    window = compute_report_window(_utc(2026, 10, 14, 12, 0), "UTC")

    assert window.contains(datetime(2026, 10, 3, 0, 0, 0))
    assert window.contains(datetime(2026, 10, 9, 23, 59, 59, 999999))
    assert window.contains(_utc(2026, 10, 6, 8, 0))
    assert not window.contains(datetime(2026, 10, 2, 23, 59, 59))
    assert not window.contains(datetime(2026, 10, 10, 0, 0, 0))
    assert not window.contains(None)


def test_unknown_timezone_is_rejected():
    with pytest.raises(pytz.UnknownTimeZoneError):
        compute_report_window(_utc(2026, 10, 14), "Mars/Olympus_Mons")


def test_report_window_is_a_tuple():
    window = compute_report_window(_utc(2026, 10, 14), "UTC")
    assert isinstance(window, ReportWindow)
    start, end = window
    assert start < end
