"""
Compliance week calculation.

A compliance week runs from Saturday 00:00:00 through the following Friday
23:59:59.999999 in a pinned local calendar. Every caller that needs "the
reporting week" goes through compute_report_window() so they all agree on
the same boundaries.
"""

from __future__ import annotations

from collections import namedtuple
from datetime import datetime, time, timedelta
from typing import Optional, Union

import pytz
from flask import current_app

from app.utils.helpers import to_naive_utc, utc_now

SATURDAY = 5  # datetime.weekday()


class ReportWindow(namedtuple('ReportWindow', ['start', 'end'])):
    """Inclusive [start, end] range as timezone-aware local datetimes."""

    __slots__ = ()

    @property
    def start_utc(self) -> datetime:
        return to_naive_utc(self.start)

    @property
    def end_utc(self) -> datetime:
        return to_naive_utc(self.end)

    def contains(self, moment: Optional[datetime]) -> bool:
        """True when ``moment`` (naive UTC or aware) falls inside the window, both ends inclusive."""
        if moment is None:
            return False
        moment = to_naive_utc(moment)
        return self.start_utc <= moment <= self.end_utc


def resolve_timezone(tz: Union[str, pytz.BaseTzInfo]) -> pytz.BaseTzInfo:
    """Accept a zone name or a pytz zone. Raises pytz.UnknownTimeZoneError for bad names."""
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def compute_report_window(now: datetime, tz: Union[str, pytz.BaseTzInfo]) -> ReportWindow:
    """
    Map ``now`` to the trailing compliance week.

    Steps back to the most recent Saturday in the local calendar (a full
    seven days when today is itself a Saturday), then takes the week that
    starts seven days before it. Pure: the result depends only on the
    arguments.

    Args:
        now: Current instant. Naive values are treated as UTC.
        tz: Calendar the week boundaries are drawn in.

    Returns:
        ReportWindow with aware local ``start`` and ``end``.
    """
    zone = resolve_timezone(tz)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    local_now = now.astimezone(zone)

    days_back = (local_now.weekday() - SATURDAY) % 7
    if days_back == 0:
        days_back = 7
    previous_saturday = local_now.date() - timedelta(days=days_back)

    start_day = previous_saturday - timedelta(days=7)
    end_day = previous_saturday - timedelta(days=1)

    start = zone.localize(datetime.combine(start_day, time.min))
    end = zone.localize(datetime.combine(end_day, time.max))
    return ReportWindow(start, end)


def current_report_window(now: Optional[datetime] = None) -> ReportWindow:
    """Report window for ``now`` (default: the clock) in the app's configured timezone."""
    if now is None:
        now = utc_now()
    return compute_report_window(now, current_app.config['COMPLIANCE_TIMEZONE'])
