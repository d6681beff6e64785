# studio_calendar/timeutils.py

import re
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, NamedTuple, Union

WEEKDAYS_KO = ["일", "월", "화", "수", "목", "금", "토"]

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_index(value: DateLike) -> int:
    """Day of week with Sunday as 0."""
    return (_as_date(value).weekday() + 1) % 7


def format_date(value: DateLike) -> str:
    """Formats a calendar date as YYYY-MM-DD (local calendar, zero padded)."""
    d = _as_date(value)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def format_korean_date(value: DateLike) -> str:
    d = _as_date(value)
    return f"{d.year}년 {d.month}월 {d.day}일 ({WEEKDAYS_KO[sunday_index(d)]})"


def parse_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_date_time(date_str: str, time_str: str) -> datetime:
    """Combines YYYY-MM-DD and HH:MM into a naive local datetime."""
    return datetime.strptime(f"{date_str}T{time_str}", "%Y-%m-%dT%H:%M")


def is_half_hour(time_str: str) -> bool:
    """True only for a valid HH:MM whose minutes are 00 or 30."""
    match = _TIME_RE.match(time_str or "")
    return bool(match) and match.group(2) in ("00", "30")


def _sort_key(event):
    return (getattr(event, "date", ""), getattr(event, "time", ""))


def sort_events(events: Iterable) -> List:
    """Stable ascending sort by (date, time). Both are zero-padded, so string order is time order."""
    return sorted(events, key=_sort_key)


class MonthRange(NamedTuple):
    month_start: date
    month_end: date
    grid_start: date
    grid_end: date

    def grid_days(self) -> Iterator[date]:
        cursor = self.grid_start
        while cursor <= self.grid_end:
            yield cursor
            cursor += timedelta(days=1)


class WeekRange(NamedTuple):
    start: date
    end: date

    def days(self) -> Iterator[date]:
        for offset in range(7):
            yield self.start + timedelta(days=offset)


def get_month_range(base: DateLike) -> MonthRange:
    """
    First and last day of base's month, plus a Sunday-to-Saturday grid
    that covers the month in whole weeks.
    """
    base = _as_date(base)
    month_start = base.replace(day=1)
    if month_start.month == 12:
        next_month = month_start.replace(year=month_start.year + 1, month=1)
    else:
        next_month = month_start.replace(month=month_start.month + 1)
    month_end = next_month - timedelta(days=1)
    grid_start = month_start - timedelta(days=sunday_index(month_start))
    grid_end = month_end + timedelta(days=6 - sunday_index(month_end))
    return MonthRange(month_start, month_end, grid_start, grid_end)


def get_week_range(base: DateLike) -> WeekRange:
    base = _as_date(base)
    start = base - timedelta(days=sunday_index(base))
    return WeekRange(start, start + timedelta(days=6))


def shift_focus(focus: DateLike, view: str, direction: str) -> date:
    """Moves the focus date one period back ("prev") or forward ("next")."""
    focus = _as_date(focus)
    delta = 1 if direction == "next" else -1
    if view == "month":
        month_index = focus.year * 12 + (focus.month - 1) + delta
        return date(month_index // 12, month_index % 12 + 1, 1)
    if view == "week":
        return focus + timedelta(days=7 * delta)
    return focus + timedelta(days=delta)
