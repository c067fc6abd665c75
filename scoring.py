"""
Points, streak and ranking rules.

Pure functions over log rows (anything with ``prayer_id``, ``prayer_date``,
``is_on_time`` and ``points_awarded`` attributes), so they can be used on ORM
rows and tested without a database. Times are naive wall-clock times in the
user's own time zone; ``to_local`` converts aware timestamps into that form.
"""

from __future__ import annotations

import calendar
import datetime
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

POINTS_ON_TIME = 5
POINTS_LATE = 1
POINTS_NOT_PRAYED = 0
VALID_POINTS = frozenset({POINTS_NOT_PRAYED, POINTS_LATE, POINTS_ON_TIME})

PRAYERS_PER_DAY = 5

UTC = datetime.timezone.utc


@dataclass(frozen=True)
class MonthSummary:
    total_points: int
    prayers_completed: int
    prayers_missed: int
    qualified_days: int


def is_on_time(
    prayer_date: datetime.date,
    scheduled_time: datetime.time,
    prayed_at: datetime.datetime,
    grace_minutes: int,
) -> bool:
    """True when local ``prayed_at`` is no later than the scheduled time plus the grace window."""
    deadline = datetime.datetime.combine(prayer_date, scheduled_time) + datetime.timedelta(
        minutes=grace_minutes
    )
    return prayed_at <= deadline


def user_zone(name: Optional[str]) -> datetime.tzinfo:
    """The user's IANA zone, or UTC when unset or unknown."""
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC


def to_local(moment: datetime.datetime, zone: datetime.tzinfo) -> datetime.datetime:
    """Naive wall-clock time of ``moment`` in ``zone``; naive input is already local."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(zone).replace(tzinfo=None)


def points_for(on_time: bool) -> int:
    return POINTS_ON_TIME if on_time else POINTS_LATE


def is_complete_day(logs: Iterable) -> bool:
    return len({log.prayer_id for log in logs}) == PRAYERS_PER_DAY


def is_qualified_day(logs: Sequence) -> bool:
    """A day qualifies when all five prayers are logged and every one was on time."""
    return is_complete_day(logs) and all(log.is_on_time for log in logs)


def month_bounds(year: int, month: int) -> Tuple[datetime.date, datetime.date]:
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, 1), datetime.date(year, month, last_day)


def summarize_month(logs: Iterable) -> MonthSummary:
    completed = 0
    missed = 0
    points = 0
    by_date = defaultdict(list)
    for log in logs:
        points += log.points_awarded or 0
        if (log.points_awarded or 0) > 0:
            completed += 1
        else:
            missed += 1
        by_date[log.prayer_date].append(log)

    qualified = sum(1 for day_logs in by_date.values() if is_qualified_day(day_logs))
    return MonthSummary(
        total_points=points,
        prayers_completed=completed,
        prayers_missed=missed,
        qualified_days=qualified,
    )


def rank_page(entries: List[dict], limit: int, offset: int) -> List[dict]:
    """Sort entries by ``totalPoints`` descending and return one ranked page.

    The sort is stable, so ties keep their incoming order. Ranks are absolute:
    the first entry of a page starting at ``offset`` gets rank ``offset + 1``.
    """
    ordered = sorted(entries, key=lambda entry: entry["totalPoints"], reverse=True)
    page = ordered[offset:offset + limit]
    return [
        dict(entry, rank=offset + index + 1) for index, entry in enumerate(page)
    ]
