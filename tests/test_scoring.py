from __future__ import annotations

from datetime import date, datetime, time, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from scoring import (
    is_complete_day,
    is_on_time,
    is_qualified_day,
    month_bounds,
    points_for,
    rank_page,
    summarize_month,
    to_local,
    user_zone,
)


def _log(prayer_id: int, points: int, on_time: bool, day: date = date(2026, 3, 1)):
    return SimpleNamespace(
        prayer_id=prayer_id, points_awarded=points, is_on_time=on_time, prayer_date=day
    )


def test_on_time_inside_grace_window() -> None:
    assert is_on_time(date(2026, 3, 1), time(5, 30), datetime(2026, 3, 1, 6, 0), 30)


def test_late_after_grace_window() -> None:
    assert not is_on_time(date(2026, 3, 1), time(5, 30), datetime(2026, 3, 1, 6, 1), 30)


def test_to_local_converts_utc_into_user_zone() -> None:
    prayed = datetime(2026, 3, 10, 11, 0, tzinfo=timezone.utc)
    local = to_local(prayed, ZoneInfo("Asia/Riyadh"))
    assert local == datetime(2026, 3, 10, 14, 0)
    assert not is_on_time(date(2026, 3, 10), time(12, 45), local, 30)


def test_to_local_keeps_naive_times() -> None:
    assert to_local(datetime(2026, 3, 10, 6, 0), ZoneInfo("Asia/Riyadh")) == datetime(2026, 3, 10, 6, 0)


def test_user_zone_falls_back_to_utc() -> None:
    assert user_zone(None) is timezone.utc
    assert user_zone("Nowhere/City") is timezone.utc
    assert user_zone("Asia/Riyadh") == ZoneInfo("Asia/Riyadh")


def test_points_for() -> None:
    assert points_for(True) == 5
    assert points_for(False) == 1


def test_qualified_day_needs_all_five_on_time() -> None:
    logs = [_log(i, 5, True) for i in range(1, 6)]
    assert is_complete_day(logs)
    assert is_qualified_day(logs)

    logs[2] = _log(3, 1, False)
    assert is_complete_day(logs)
    assert not is_qualified_day(logs)


def test_four_prayers_never_qualify() -> None:
    logs = [_log(i, 5, True) for i in range(1, 5)]
    assert not is_complete_day(logs)
    assert not is_qualified_day(logs)


@pytest.mark.parametrize(
    "year,month,last",
    [(2026, 2, 28), (2024, 2, 29), (2026, 4, 30), (2026, 12, 31)],
)
def test_month_bounds_are_calendar_aware(year: int, month: int, last: int) -> None:
    start, end = month_bounds(year, month)
    assert start == date(year, month, 1)
    assert end == date(year, month, last)


def test_summarize_mixed_day() -> None:
    # Fajr on time, Dhuhr late, the rest not prayed
    logs = [_log(1, 5, True), _log(2, 1, False)] + [_log(i, 0, False) for i in (3, 4, 5)]
    summary = summarize_month(logs)
    assert summary.total_points == 6
    assert summary.prayers_completed == 2
    assert summary.prayers_missed == 3
    assert summary.qualified_days == 0


def test_summarize_counts_qualified_days_per_date() -> None:
    day1 = [_log(i, 5, True, date(2026, 3, 1)) for i in range(1, 6)]
    day2 = [_log(i, 5, True, date(2026, 3, 2)) for i in range(1, 6)]
    day3 = [_log(i, 5, True, date(2026, 3, 3)) for i in range(1, 4)]
    summary = summarize_month(day1 + day2 + day3)
    assert summary.total_points == 65
    assert summary.qualified_days == 2


def test_rank_page_is_consistent_across_pages() -> None:
    entries = [{"id": i, "totalPoints": (i * 7) % 50} for i in range(1, 61)]
    full = rank_page(entries, limit=40, offset=0)
    page2 = rank_page(entries, limit=20, offset=20)

    assert [e["rank"] for e in page2] == list(range(21, 41))
    assert page2 == full[20:40]


def test_rank_page_keeps_tie_order() -> None:
    entries = [{"id": 1, "totalPoints": 10}, {"id": 2, "totalPoints": 10}, {"id": 3, "totalPoints": 20}]
    ranked = rank_page(entries, limit=10, offset=0)
    assert [e["id"] for e in ranked] == [3, 1, 2]
    assert [e["rank"] for e in ranked] == [1, 2, 3]
