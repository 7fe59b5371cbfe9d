from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from groomer_calendar.core.config import settings
from groomer_calendar.schemas.appointment import (
    Appointment, AppointmentStatus, DaySection, FilterMode
)
from groomer_calendar.utils.appointment_summary import (
    get_pet_breeds, get_pet_names, get_service_labels
)
from groomer_calendar.utils.text import matches_search_query
from groomer_calendar.utils.time_utils import format_time, parse_day_key, parse_time, to_day_key

class SectionLabels(BaseModel):
    today: str = settings.TODAY_LABEL
    no_date: str = settings.NO_DATE_LABEL
    date_format: str = "%a, %d %b"

CLOSED_STATUSES = {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}
# Past-day appointments that still need attention in the upcoming list
ATTENTION_STATUSES = {AppointmentStatus.IN_PROGRESS.value, AppointmentStatus.CONFIRMED.value}

def appointment_datetime(appointment: Appointment, day_key: str) -> Optional[datetime]:
    day = parse_day_key(day_key)
    parsed = parse_time(appointment.time)
    if day is None or parsed is None:
        return None
    try:
        return datetime(day.year, day.month, day.day, parsed.hour, parsed.minute)
    except ValueError:
        return None

def _matches_mode(appointment: Appointment, mode: FilterMode, today_key: str, now: datetime) -> bool:
    if mode == FilterMode.UNPAID:
        return not appointment.is_paid

    day_key = to_day_key(appointment.date)
    if not day_key:
        return False

    if mode == FilterMode.UPCOMING:
        if appointment.status in CLOSED_STATUSES:
            return False
        if day_key > today_key:
            return True
        if day_key < today_key:
            return appointment.status in ATTENTION_STATUSES
        # Today: no time means still upcoming
        moment = appointment_datetime(appointment, day_key)
        if moment is None:
            return True
        return moment >= now or appointment.status == AppointmentStatus.IN_PROGRESS.value

    if mode == FilterMode.PAST:
        if day_key < today_key:
            return True
        if day_key > today_key:
            return False
        moment = appointment_datetime(appointment, day_key)
        if moment is None:
            return False
        return moment < now

    return True

def filter_by_mode(
    appointments: Sequence[Appointment],
    mode: FilterMode,
    today: Union[date, str, None] = None,
    now: Optional[datetime] = None,
    pending_only: bool = False
) -> List[Appointment]:
    """
    Apply the upcoming / past / unpaid list filter.

    Args:
        appointments: appointments to filter (not modified)
        mode: list filter mode
        today: local day key; defaults to now's date
        now: local wall-clock time used for today's appointments
        pending_only: keep only appointments in "pending" status
    """
    mode = FilterMode(mode)
    now = now or datetime.now()
    today_key = to_day_key(today) or now.date().isoformat()

    result = []
    for appointment in appointments:
        if pending_only and appointment.status != AppointmentStatus.PENDING.value:
            continue
        if _matches_mode(appointment, mode, today_key, now):
            result.append(appointment)
    return result

def search_haystack(appointment: Appointment) -> List[str]:
    """Every text a list search term is matched against."""
    customer = appointment.customers
    values = [
        customer.display_name if customer else None,
        customer.phone if customer else None,
        customer.full_address if customer else None,
        *get_pet_names(appointment),
        *get_pet_breeds(appointment),
        *get_service_labels(appointment),
        appointment.date,
        appointment.time,
        appointment.notes,
    ]
    return [value for value in values if value]

def matches_search(appointment: Appointment, search_term: Optional[str]) -> bool:
    term = (search_term or "").strip()
    if not term:
        return True
    return any(matches_search_query(value, term) for value in search_haystack(appointment))

def section_title(day_key: str, today_key: str, labels: Optional[SectionLabels] = None) -> str:
    labels = labels or SectionLabels()
    if day_key == today_key:
        return labels.today
    day = parse_day_key(day_key)
    if day is None:
        return labels.no_date
    return day.strftime(labels.date_format)

def build_sections(
    appointments: Sequence[Appointment],
    filter_mode: FilterMode,
    search_term: Optional[str] = None,
    today: Union[date, str, None] = None,
    now: Optional[datetime] = None,
    labels: Optional[SectionLabels] = None,
    pending_only: bool = False
) -> List[DaySection]:
    """
    Group the list view into chronological day sections.

    Sections are ascending by day for upcoming/unpaid and descending for
    past. Inside a section appointments are ordered by time, with missing
    times first. Every matching appointment lands in exactly one section.
    """
    filter_mode = FilterMode(filter_mode)
    now = now or datetime.now()
    today_key = to_day_key(today) or now.date().isoformat()

    source = [
        apt for apt in filter_by_mode(appointments, filter_mode, today_key, now, pending_only)
        if matches_search(apt, search_term)
    ]

    grouped: Dict[str, List[Appointment]] = {}
    for apt in source:
        day_key = to_day_key(apt.date)
        if day_key:
            grouped.setdefault(day_key, []).append(apt)

    sections = [
        DaySection(
            day_key=day_key,
            title=section_title(day_key, today_key, labels),
            appointments=sorted(items, key=lambda apt: format_time(apt.time)),
        )
        for day_key, items in grouped.items()
    ]
    sections.sort(key=lambda section: section.day_key, reverse=filter_mode == FilterMode.PAST)
    return sections

def sort_by_date_time(appointments: Sequence[Appointment]) -> List[Appointment]:
    """Chronological order across days; undated appointments go last."""
    def sort_key(apt: Appointment):
        day_key = to_day_key(apt.date)
        return (day_key is None, day_key or "", format_time(apt.time))
    return sorted(appointments, key=sort_key)

def can_create_in_section(section: DaySection, filter_mode: FilterMode, today: Union[date, str]) -> bool:
    """New appointments can only be added from present or future sections."""
    if FilterMode(filter_mode) == FilterMode.PAST:
        return False
    return section.day_key >= (to_day_key(today) or "")
