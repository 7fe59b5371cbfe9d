from typing import Iterable, List, Optional, Sequence

from groomer_calendar.core.config import CalendarConfig
from groomer_calendar.schemas.appointment import Appointment
from groomer_calendar.schemas.calendar import TapSlot
from groomer_calendar.utils.time_utils import to_minutes, minutes_to_time

def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True if [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and a_end > b_start

def _blocking(day_appointments: Iterable[Appointment]) -> List[Appointment]:
    return [apt for apt in day_appointments if apt.is_blocking]

def is_free(day_appointments: Iterable[Appointment], start_minutes: int, duration_minutes: int) -> bool:
    """
    Check whether [start, start + duration) is free on a day.

    Appointments without a parseable start never block the slot, and
    completed/cancelled appointments are ignored.
    """
    slot_end = start_minutes + duration_minutes
    for apt in _blocking(day_appointments):
        apt_start = to_minutes(apt.time)
        if apt_start is None:
            continue
        if _overlaps(start_minutes, slot_end, apt_start, apt_start + apt.duration_minutes):
            return False
    return True

def next_appointment_start(day_appointments: Iterable[Appointment], start_minutes: int) -> Optional[int]:
    starts = [
        apt_start
        for apt_start in (to_minutes(apt.time) for apt in _blocking(day_appointments))
        if apt_start is not None and apt_start >= start_minutes
    ]
    return min(starts) if starts else None

def available_duration_from(
    day_appointments: Sequence[Appointment],
    start_minutes: int,
    day_end_minutes: int,
    candidate_durations: Iterable[int] = (60, 30)
) -> int:
    """
    Largest allowed duration that can be booked at start_minutes.

    The gap runs from start_minutes to the next appointment start (or the
    end of the day). Candidates are tried longest first; 0 means nothing fits.
    """
    next_start = next_appointment_start(day_appointments, start_minutes)
    gap_end = day_end_minutes if next_start is None else min(next_start, day_end_minutes)
    gap = gap_end - start_minutes

    for duration in sorted(candidate_durations, reverse=True):
        if duration <= gap and is_free(day_appointments, start_minutes, duration):
            return duration
    return 0

def is_within_grid(start_minutes: int, duration_minutes: int, config: CalendarConfig) -> bool:
    return (
        start_minutes >= config.day_start_minutes
        and start_minutes + duration_minutes <= config.day_end_minutes
    )

def snap_to_slot(offset_px: float, config: CalendarConfig) -> int:
    """
    Convert a tap offset on the day grid to minutes since midnight,
    floored to the slot step and kept inside the grid.
    """
    step = config.slot_step_minutes
    total_minutes = int(offset_px / config.hour_height_px * 60) + config.day_start_minutes
    total_minutes = min(max(total_minutes, config.day_start_minutes), config.day_end_minutes - step)
    return total_minutes - (total_minutes % step)

def resolve_tap(
    day_key: str,
    day_appointments: Sequence[Appointment],
    offset_px: float,
    config: CalendarConfig
) -> TapSlot:
    """
    Resolve a "tap to create" gesture. The returned slot has duration 0
    when no allowed duration fits at the snapped time.
    """
    start = snap_to_slot(offset_px, config)
    duration = available_duration_from(
        day_appointments, start, config.day_end_minutes, config.candidate_durations
    )
    return TapSlot(day_key=day_key, time=minutes_to_time(start), start_minutes=start, duration=duration)
