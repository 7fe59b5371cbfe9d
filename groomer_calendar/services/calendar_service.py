import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Union

from groomer_calendar.core.config import CalendarConfig, WeekStart
from groomer_calendar.schemas.appointment import Appointment, FilterMode, ViewMode
from groomer_calendar.schemas.calendar import (
    DateRange, DayBlock, DayProjection, Direction, MonthCell, MonthProjection,
    WeekDayColumn, WeekProjection
)
from groomer_calendar.utils.time_utils import (
    block_height, format_time, parse_day_key, position_for_time, to_day_key, to_minutes
)

DayLike = Union[date, str]

def _as_date(value: DayLike) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_day_key(value)
    if parsed is None:
        raise ValueError(f"Invalid day key: {value!r}")
    return parsed

def _time_sort_key(appointment: Appointment) -> str:
    return format_time(appointment.time)

def appointments_on(appointments: Sequence[Appointment], day_key: str) -> List[Appointment]:
    """Appointments of one day, earliest first (missing times first)."""
    return sorted(
        (apt for apt in appointments if to_day_key(apt.date) == day_key),
        key=_time_sort_key
    )

def build_block(appointment: Appointment, config: CalendarConfig) -> DayBlock:
    return DayBlock(
        appointment=appointment,
        start_minutes=to_minutes(appointment.time),
        duration_minutes=appointment.duration_minutes,
        top=position_for_time(appointment.time, config.day_start_hour, config.hour_height_px),
        height=block_height(appointment.duration, config.hour_height_px, config.block_gap_px),
    )

def project_day(
    appointments: Sequence[Appointment],
    selected_day: DayLike,
    config: CalendarConfig,
    today: Optional[DayLike] = None
) -> DayProjection:
    """
    Day view: the selected day's appointments placed on the hour grid
    """
    day_key = _as_date(selected_day).isoformat()
    today_key = _as_date(today or date.today()).isoformat()
    return DayProjection(
        day_key=day_key,
        is_today=day_key == today_key,
        hours=config.hours,
        blocks=[build_block(apt, config) for apt in appointments_on(appointments, day_key)],
    )

def week_start(anchor: DayLike, week_starts_on: WeekStart = "mon") -> date:
    anchor_date = _as_date(anchor)
    if week_starts_on == "sun":
        # date.weekday(): Monday == 0 ... Sunday == 6
        return anchor_date - timedelta(days=(anchor_date.weekday() + 1) % 7)
    return anchor_date - timedelta(days=anchor_date.weekday())

def week_days(anchor: DayLike, week_starts_on: WeekStart = "mon") -> List[date]:
    start = week_start(anchor, week_starts_on)
    return [start + timedelta(days=i) for i in range(7)]

def week_label(days: List[date]) -> str:
    first, last = days[0], days[-1]
    if first.month == last.month:
        return f"{first.day} - {last.day} {last.strftime('%b')}"
    return f"{first.day} {first.strftime('%b')} - {last.day} {last.strftime('%b')}"

def project_week(
    appointments: Sequence[Appointment],
    anchor: DayLike,
    config: CalendarConfig,
    today: Optional[DayLike] = None
) -> WeekProjection:
    """
    Week view: seven day columns, each sorted independently by time
    """
    days = week_days(anchor, config.week_starts_on)
    today_key = _as_date(today or date.today()).isoformat()

    by_day: Dict[str, List[Appointment]] = {day.isoformat(): [] for day in days}
    for apt in appointments:
        key = to_day_key(apt.date)
        if key in by_day:
            by_day[key].append(apt)

    columns = []
    for day in days:
        key = day.isoformat()
        columns.append(WeekDayColumn(
            day_key=key,
            weekday=day.weekday(),
            day_number=day.day,
            is_today=key == today_key,
            blocks=[build_block(apt, config) for apt in sorted(by_day[key], key=_time_sort_key)],
        ))

    return WeekProjection(
        start=days[0].isoformat(),
        end=days[-1].isoformat(),
        label=week_label(days),
        is_current_week=any(column.is_today for column in columns),
        hours=config.hours,
        days=columns,
    )

def month_cells(anchor: DayLike, week_starts_on: WeekStart = "mon") -> List[date]:
    """
    Every date of the anchor's month, padded with the previous and next
    month's days so the grid covers whole weeks.
    """
    anchor_date = _as_date(anchor)
    first = anchor_date.replace(day=1)
    _, num_days = calendar.monthrange(first.year, first.month)
    last = first.replace(day=num_days)

    start = week_start(first, week_starts_on)
    end = week_start(last, week_starts_on) + timedelta(days=6)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]

def count_by_day(appointments: Sequence[Appointment]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for apt in appointments:
        key = to_day_key(apt.date)
        if key:
            counts[key] = counts.get(key, 0) + 1
    return counts

def project_month(
    appointments: Sequence[Appointment],
    anchor: DayLike,
    config: CalendarConfig,
    today: Optional[DayLike] = None
) -> MonthProjection:
    anchor_date = _as_date(anchor)
    today_date = _as_date(today or date.today())
    counts = count_by_day(appointments)

    cells = [
        MonthCell(
            day_key=day.isoformat(),
            day_number=day.day,
            is_current_month=day.month == anchor_date.month and day.year == anchor_date.year,
            is_today=day == today_date,
            appointment_count=counts.get(day.isoformat(), 0),
        )
        for day in month_cells(anchor_date, config.week_starts_on)
    ]
    return MonthProjection(
        year=anchor_date.year,
        month=anchor_date.month,
        label=anchor_date.strftime("%B %Y"),
        is_current_month=(anchor_date.year, anchor_date.month) == (today_date.year, today_date.month),
        cells=cells,
    )

def _shift_month(anchor: date, months: int) -> date:
    month_index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    _, num_days = calendar.monthrange(year, month)
    return anchor.replace(year=year, month=month, day=min(anchor.day, num_days))

def shift_anchor(anchor: DayLike, view_mode: ViewMode, direction: Direction) -> date:
    """
    Move the anchor one day, week or month back or forward.
    The list view has no navigation and returns the anchor unchanged.
    """
    anchor_date = _as_date(anchor)
    step = 1 if Direction(direction) == Direction.NEXT else -1
    view_mode = ViewMode(view_mode)

    if view_mode == ViewMode.DAY:
        return anchor_date + timedelta(days=step)
    if view_mode == ViewMode.WEEK:
        return anchor_date + timedelta(days=7 * step)
    if view_mode == ViewMode.MONTH:
        return _shift_month(anchor_date, step)
    return anchor_date

def go_to_today() -> date:
    return date.today()

def date_range_for_view(
    view_mode: ViewMode,
    filter_mode: FilterMode,
    anchor: DayLike,
    today: DayLike,
    config: CalendarConfig
) -> DateRange:
    """
    Date window to fetch for a view. The list view is open ended: from
    today for upcoming, up to today for past, unbounded for unpaid.
    """
    view_mode = ViewMode(view_mode)
    anchor_date = _as_date(anchor)
    today_key = _as_date(today).isoformat()

    if view_mode == ViewMode.LIST:
        filter_mode = FilterMode(filter_mode)
        return DateRange(
            date_from=today_key if filter_mode == FilterMode.UPCOMING else None,
            date_to=today_key if filter_mode == FilterMode.PAST else None,
        )
    if view_mode == ViewMode.DAY:
        return DateRange(date_from=anchor_date.isoformat(), date_to=anchor_date.isoformat())
    if view_mode == ViewMode.WEEK:
        days = week_days(anchor_date, config.week_starts_on)
        return DateRange(date_from=days[0].isoformat(), date_to=days[-1].isoformat())

    first = anchor_date.replace(day=1)
    _, num_days = calendar.monthrange(first.year, first.month)
    return DateRange(date_from=first.isoformat(), date_to=first.replace(day=num_days).isoformat())
