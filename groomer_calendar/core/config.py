from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import List, Literal, Optional
import os
from dotenv import load_dotenv

load_dotenv()

# Used wherever an appointment has no (or a non-positive) duration
DEFAULT_DURATION_MINUTES = 60

WeekStart = Literal["mon", "sun"]

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = os.getenv("APP_NAME", "GroomerCalendar")

    # Appointments API
    API_URL: str = os.getenv("API_URL", "http://localhost:4000")
    API_VERSION: str = os.getenv("API_VERSION", "/api/v1")
    API_TOKEN: Optional[str] = os.getenv("API_TOKEN")
    ACCOUNT_ID: Optional[str] = os.getenv("ACCOUNT_ID")
    API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "15"))
    PAGE_SIZE: int = int(os.getenv("PAGE_SIZE", "1000"))

    # Query cache
    CACHE_STALE_SECONDS: int = int(os.getenv("CACHE_STALE_SECONDS", "30"))

    # Optimistic deletion
    UNDO_WINDOW_MS: int = int(os.getenv("UNDO_WINDOW_MS", "4000"))
    DELETE_ERROR_MESSAGE: str = os.getenv("DELETE_ERROR_MESSAGE", "Could not delete the appointment.")

    # Calendar grid
    WEEK_STARTS_ON: WeekStart = os.getenv("WEEK_STARTS_ON", "mon")
    DAY_START_HOUR: int = int(os.getenv("DAY_START_HOUR", "7"))
    DAY_END_HOUR: int = int(os.getenv("DAY_END_HOUR", "21"))
    HOUR_HEIGHT_PX: int = int(os.getenv("HOUR_HEIGHT_PX", "60"))
    SLOT_STEP_MINUTES: int = int(os.getenv("SLOT_STEP_MINUTES", "30"))

    # List labels
    TODAY_LABEL: str = os.getenv("TODAY_LABEL", "Today")
    NO_DATE_LABEL: str = os.getenv("NO_DATE_LABEL", "No date")

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()


class CalendarConfig(BaseModel):
    """
    Grid and week conventions shared by every calendar projection
    """
    week_starts_on: WeekStart = "mon"
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES
    day_start_hour: int = 7
    day_end_hour: int = 21
    hour_height_px: int = 60
    slot_step_minutes: int = 30
    candidate_durations: List[int] = [60, 30]
    block_gap_px: int = 4

    @property
    def day_start_minutes(self) -> int:
        return self.day_start_hour * 60

    @property
    def day_end_minutes(self) -> int:
        return self.day_end_hour * 60

    @property
    def hours(self) -> List[int]:
        return list(range(self.day_start_hour, self.day_end_hour))


def get_calendar_config() -> CalendarConfig:
    """Build the calendar configuration from the environment settings."""
    return CalendarConfig(
        week_starts_on=settings.WEEK_STARTS_ON,
        day_start_hour=settings.DAY_START_HOUR,
        day_end_hour=settings.DAY_END_HOUR,
        hour_height_px=settings.HOUR_HEIGHT_PX,
        slot_step_minutes=settings.SLOT_STEP_MINUTES,
    )
