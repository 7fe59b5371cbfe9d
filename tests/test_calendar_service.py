from datetime import date

from conftest import make_appointment
from groomer_calendar.core.config import CalendarConfig
from groomer_calendar.schemas.appointment import FilterMode, ViewMode
from groomer_calendar.schemas.calendar import Direction
from groomer_calendar.services.calendar_service import (
    date_range_for_view, month_cells, project_day, project_month, project_week,
    go_to_today, shift_anchor, week_days
)

appointments = [
    make_appointment("late", date="2024-07-10", time="15:00", duration=30),
    make_appointment("early", date="2024-07-10", time="08:30", duration=90),
    make_appointment("untimed", date="2024-07-10", time=None),
    make_appointment("monday", date="2024-07-08", time="10:00"),
    make_appointment("sunday", date="2024-07-14", time="11:00"),
    make_appointment("prev-sunday", date="2024-07-07", time="12:00"),
    make_appointment("august", date="2024-08-02", time="09:00"),
]


def test_day_projection_filters_sorts_and_positions(config):
    snapshot = [apt.id for apt in appointments]
    day = project_day(appointments, "2024-07-10", config, today="2024-07-10")

    assert [apt.id for apt in day.appointments] == ["untimed", "early", "late"]
    assert day.is_today is True
    assert day.hours == list(range(7, 21))

    early = day.blocks[1]
    assert early.top == 90
    assert early.height == 86
    assert early.start_minutes == 510
    assert day.blocks[0].top == 0
    assert day.blocks[0].duration_minutes == 60

    # input left untouched
    assert [apt.id for apt in appointments] == snapshot


def test_week_projection_monday_start(config):
    week = project_week(appointments, date(2024, 7, 10), config, today="2024-07-10")

    assert [column.day_key for column in week.days] == [
        "2024-07-08", "2024-07-09", "2024-07-10", "2024-07-11",
        "2024-07-12", "2024-07-13", "2024-07-14",
    ]
    assert week.label == "8 - 14 Jul"
    assert week.is_current_week is True
    assert [apt.id for apt in week.days[0].appointments] == ["monday"]
    assert [apt.id for apt in week.days[2].appointments] == ["untimed", "early", "late"]
    assert [apt.id for apt in week.days[6].appointments] == ["sunday"]
    assert week.days[2].is_today is True


def test_week_projection_sunday_start():
    config = CalendarConfig(week_starts_on="sun")
    week = project_week(appointments, "2024-07-10", config, today="2024-01-01")

    assert week.start == "2024-07-07"
    assert week.end == "2024-07-13"
    assert [apt.id for apt in week.days[0].appointments] == ["prev-sunday"]
    assert week.is_current_week is False


def test_week_days_from_sunday_anchor():
    assert week_days("2024-07-14", "mon")[0] == date(2024, 7, 8)
    assert week_days("2024-07-14", "sun")[0] == date(2024, 7, 14)


def test_month_cells_cover_whole_weeks():
    # February 2026 starts on a Sunday and ends on a Saturday
    cells = month_cells("2026-02-15", "mon")
    assert cells[0] == date(2026, 1, 26)
    assert cells[-1] == date(2026, 3, 1)
    assert len(cells) % 7 == 0

    cells = month_cells("2026-02-15", "sun")
    assert cells[0] == date(2026, 2, 1)
    assert cells[-1] == date(2026, 2, 28)
    assert len(cells) == 28


def test_month_projection_counts(config):
    month = project_month(appointments, "2024-07-20", config, today="2024-07-10")

    assert month.label == "July 2024"
    assert month.is_current_month is True
    assert len(month.cells) == 35
    assert len(month.weeks) == 5

    by_day = {cell.day_key: cell for cell in month.cells}
    assert by_day["2024-07-10"].appointment_count == 3
    assert by_day["2024-07-10"].is_today is True
    assert by_day["2024-07-11"].has_indicator is False
    # padding days still carry their counts
    assert by_day["2024-08-02"].is_current_month is False
    assert by_day["2024-08-02"].appointment_count == 1


def test_navigation_is_pure():
    anchor = date(2024, 1, 31)
    assert shift_anchor(anchor, ViewMode.DAY, Direction.NEXT) == date(2024, 2, 1)
    assert shift_anchor(anchor, ViewMode.DAY, Direction.PREV) == date(2024, 1, 30)
    assert shift_anchor(anchor, ViewMode.WEEK, "next") == date(2024, 2, 7)
    assert shift_anchor(anchor, ViewMode.MONTH, "next") == date(2024, 2, 29)
    assert shift_anchor(anchor, ViewMode.MONTH, "prev") == date(2023, 12, 31)
    assert shift_anchor(anchor, ViewMode.LIST, "next") == anchor
    assert anchor == date(2024, 1, 31)


def test_date_range_for_each_view(config):
    today = "2024-07-10"
    upcoming = date_range_for_view(ViewMode.LIST, FilterMode.UPCOMING, today, today, config)
    assert (upcoming.date_from, upcoming.date_to) == ("2024-07-10", None)

    past = date_range_for_view(ViewMode.LIST, FilterMode.PAST, today, today, config)
    assert (past.date_from, past.date_to) == (None, "2024-07-10")

    unpaid = date_range_for_view(ViewMode.LIST, FilterMode.UNPAID, today, today, config)
    assert (unpaid.date_from, unpaid.date_to) == (None, None)

    week = date_range_for_view(ViewMode.WEEK, FilterMode.UPCOMING, "2024-07-14", today, config)
    assert (week.date_from, week.date_to) == ("2024-07-08", "2024-07-14")

    month = date_range_for_view(ViewMode.MONTH, FilterMode.UPCOMING, "2024-02-10", today, config)
    assert (month.date_from, month.date_to) == ("2024-02-01", "2024-02-29")


def test_go_to_today_resets_the_anchor():
    anchor = shift_anchor(go_to_today(), ViewMode.MONTH, Direction.PREV)
    assert (anchor.year, anchor.month) != (date.today().year, date.today().month)
    assert go_to_today() == date.today()
