# studio_calendar/render.py
"""
View renderer: turns the client state into month/week/day view models and
print listings. Everything here is a pure function of its arguments.
"""

import locale
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from studio_calendar.models import ALL_STAFF, Event, StaffUser, ViewMode
from studio_calendar.timeutils import (
    WEEKDAYS_KO,
    format_date,
    format_korean_date,
    get_month_range,
    get_week_range,
    sort_events,
)

MONTH_CELL_LIMIT = 3
EMPTY_MARKER = "등록된 일정 없음"
TODAY_MARKER = "오늘"
ALL_STAFF_LABEL = "전체 담당자"


@dataclass
class DayCell:
    date: date
    in_month: bool
    is_today: bool
    events: List[Event] = field(default_factory=list)
    overflow: int = 0

    @property
    def overflow_label(self) -> str:
        return f"+{self.overflow}건" if self.overflow else ""


@dataclass
class MonthView:
    title: str
    weekdays: List[str]
    rows: List[List[DayCell]]


@dataclass
class DayBlock:
    date: date
    heading: str
    events: List[Event] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.events


@dataclass
class ListView:
    title: str
    blocks: List[DayBlock]


@dataclass
class PrintListing:
    title: str
    start: date
    end: date
    events: List[Event] = field(default_factory=list)


@dataclass
class StaffRow:
    uid: str
    name: str
    email: str
    role: str
    active: bool
    role_locked: bool
    toggle_label: str
    toggle_disabled: bool

    @property
    def status_label(self) -> str:
        return "활성" if self.active else "비활성"


HANGUL_RANGES = (("\u1100", "\u11ff"), ("\u3130", "\u318f"), ("\uac00", "\ud7a3"))


def is_hangul(char: str) -> bool:
    return any(low <= char <= high for low, high in HANGUL_RANGES)


def locale_key(value: str):
    """
    Korean-locale collation key: Hangul names before Latin ones, letters
    compared case-insensitively, exact spelling only as a tie-break.
    """
    value = value or ""
    return (0 if value and is_hangul(value[0]) else 1, locale.strxfrm(value.casefold()), value)


def visible_events(events: Iterable[Event], staff_filter: str = ALL_STAFF) -> List[Event]:
    """Events sorted by (date, time), restricted to one assignee unless the filter is "all"."""
    ordered = sort_events(events)
    if staff_filter == ALL_STAFF:
        return ordered
    return [event for event in ordered if event.assignee == staff_filter]


def staff_options(users: Iterable[StaffUser], events: Iterable[Event]) -> List[str]:
    """
    Names offered by the staff filter and the assignee autocomplete: active
    staff plus every assignee that appears on an event, so that legacy or
    external assignees stay selectable.
    """
    names = {user.name for user in users if user.active and user.name}
    names.update(event.assignee for event in events if event.assignee)
    return sorted(names, key=locale_key)


def filter_choices(options: List[str]) -> List[Tuple[str, str]]:
    """(value, label) pairs for the staff filter, "all" first."""
    return [(ALL_STAFF, ALL_STAFF_LABEL)] + [(name, name) for name in options]


def events_by_date(events: Iterable[Event]) -> Dict[str, List[Event]]:
    grouped: Dict[str, List[Event]] = {}
    for event in events:
        grouped.setdefault(event.date, []).append(event)
    return grouped


def render_month(events: Iterable[Event], focus: date, today: date) -> MonthView:
    month = get_month_range(focus)
    grouped = events_by_date(events)
    rows: List[List[DayCell]] = []
    row: List[DayCell] = []
    for day in month.grid_days():
        day_events = sort_events(grouped.get(format_date(day), []))
        row.append(DayCell(
            date=day,
            in_month=day.month == month.month_start.month,
            is_today=day == today,
            events=day_events[:MONTH_CELL_LIMIT],
            overflow=max(len(day_events) - MONTH_CELL_LIMIT, 0),
        ))
        if len(row) == 7:
            rows.append(row)
            row = []
    title = f"{month.month_start.year}년 {month.month_start.month}월 월간 일정"
    return MonthView(title=title, weekdays=list(WEEKDAYS_KO), rows=rows)


def render_week(events: Iterable[Event], focus: date) -> ListView:
    week = get_week_range(focus)
    grouped = events_by_date(events)
    blocks = [
        DayBlock(day, format_korean_date(day), sort_events(grouped.get(format_date(day), [])))
        for day in week.days()
    ]
    return ListView(f"{format_date(week.start)} ~ {format_date(week.end)} 주간 일정", blocks)


def render_day(events: Iterable[Event], focus: date) -> ListView:
    key = format_date(focus)
    day_events = sort_events(event for event in events if event.date == key)
    return ListView(
        f"{format_korean_date(focus)} 일간 일정",
        [DayBlock(focus, format_korean_date(focus), day_events)],
    )


def render_view(state, today: Optional[date] = None):
    """Renders the state's current view; also refreshes the staff filter fallback."""
    today = today or date.today()
    state.ensure_valid_filter(staff_options(state.users, state.events))
    filtered = visible_events(state.events, state.selected_staff)
    if state.current_view == ViewMode.week.value:
        return render_week(filtered, state.focus_date)
    if state.current_view == ViewMode.day.value:
        return render_day(filtered, state.focus_date)
    return render_month(filtered, state.focus_date, today)


def view_bounds(view: str, focus: date) -> Tuple[date, date, str]:
    if view == ViewMode.week.value:
        week = get_week_range(focus)
        return week.start, week.end, f"{format_date(week.start)} ~ {format_date(week.end)} 주간 일정"
    if view == ViewMode.day.value:
        return focus, focus, f"{format_korean_date(focus)} 일간 일정"
    month = get_month_range(focus)
    title = f"{month.month_start.year}년 {month.month_start.month}월 월간 일정"
    return month.month_start, month.month_end, title


def build_print_listing(state) -> PrintListing:
    """Flat chronological listing of the current view's date range. Reads state only."""
    start, end, title = view_bounds(state.current_view, state.focus_date)
    low, high = format_date(start), format_date(end)
    rows = [
        event for event in visible_events(state.events, state.selected_staff)
        if low <= event.date <= high
    ]
    if state.selected_staff != ALL_STAFF:
        title = f"{title} - {state.selected_staff}"
    return PrintListing(title=title, start=start, end=end, events=rows)


def event_summary(event: Event) -> Tuple[str, str]:
    """Headline and detail line for one event row."""
    headline = f"{event.time} · {event.serviceType} · {event.assignee}"
    detail = f"예약자: {event.reserverType}"
    names = " / ".join(name for name in (event.brideName, event.groomName) if name)
    if names:
        detail += f" ({names})"
    contacts = " / ".join(contact for contact in (event.brideContact, event.groomContact) if contact)
    if contacts:
        detail += f" · 연락처: {contacts}"
    if event.notes:
        detail += f" · 특이사항: {event.notes}"
    return headline, detail


def staff_table(users: Iterable[StaffUser], current_uid: str) -> List[StaffRow]:
    """Rows of the admin staff panel, sorted by name."""
    rows = []
    for user in sorted(users, key=lambda u: locale_key(u.name or "")):
        rows.append(StaffRow(
            uid=user.id,
            name=user.name or "-",
            email=user.email or "-",
            role=user.role,
            active=user.active,
            role_locked=not user.active,
            toggle_label="비활성화" if user.active else "활성화",
            toggle_disabled=user.id == current_uid,
        ))
    return rows
