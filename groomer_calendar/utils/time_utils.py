import re
from datetime import date, datetime
from typing import NamedTuple, Optional, Any

from groomer_calendar.core.config import DEFAULT_DURATION_MINUTES

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
DAY_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

class TimeOfDay(NamedTuple):
    hour: int
    minute: int

def parse_time(value: Any) -> Optional[TimeOfDay]:
    """
    Parse an "HH:MM" time, also when embedded in a longer string
    ("09:30:00", "at 9:30"). Returns None when nothing matches.
    """
    if value is None:
        return None
    match = TIME_PATTERN.search(str(value))
    if not match:
        return None
    return TimeOfDay(int(match.group(1)), int(match.group(2)))

def to_minutes(value: Any) -> Optional[int]:
    parsed = parse_time(value)
    if parsed is None:
        return None
    return parsed.hour * 60 + parsed.minute

def format_time(value: Any, placeholder: str = "") -> str:
    """
    Zero-padded "HH:MM" for anything parse_time understands.
    Unparsable input is returned unchanged.
    """
    if value is None or value == "":
        return placeholder
    parsed = parse_time(value)
    if parsed is None:
        return str(value)
    return f"{parsed.hour:02d}:{parsed.minute:02d}"

def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"

def position_for_time(value: Any, day_start_hour: int, px_per_hour: float) -> float:
    """Vertical offset of a time on a grid starting at day_start_hour."""
    parsed = parse_time(value)
    if parsed is None:
        return 0
    offset = (parsed.hour - day_start_hour) + parsed.minute / 60
    return max(offset, 0) * px_per_hour

def duration_or_default(value: Optional[int]) -> int:
    if value is None or value <= 0:
        return DEFAULT_DURATION_MINUTES
    return value

def block_height(duration: Optional[int], px_per_hour: float, gap_px: float = 0) -> float:
    return max((duration_or_default(duration) / 60) * px_per_hour - gap_px, 0)

def to_day_key(value: Any) -> Optional[str]:
    """Normalize a date, datetime or ISO-like string to "YYYY-MM-DD"."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if DAY_KEY_PATTERN.match(text):
        return text if parse_day_key(text) else None
    parsed = parse_day_key(text[:10])
    return parsed.isoformat() if parsed else None

def parse_day_key(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
