from pydantic import BaseModel
from typing import Optional, List
from enum import Enum

from groomer_calendar.schemas.appointment import Appointment

class Direction(str, Enum):
    PREV = "prev"
    NEXT = "next"

class DateRange(BaseModel):
    date_from: Optional[str] = None
    date_to: Optional[str] = None

class DayBlock(BaseModel):
    appointment: Appointment
    start_minutes: Optional[int] = None
    duration_minutes: int
    top: float
    height: float

class DayProjection(BaseModel):
    day_key: str
    is_today: bool = False
    hours: List[int] = []
    blocks: List[DayBlock] = []

    @property
    def appointments(self) -> List[Appointment]:
        return [block.appointment for block in self.blocks]

class WeekDayColumn(BaseModel):
    day_key: str
    weekday: int  # 0 = Monday
    day_number: int
    is_today: bool = False
    blocks: List[DayBlock] = []

    @property
    def appointments(self) -> List[Appointment]:
        return [block.appointment for block in self.blocks]

class WeekProjection(BaseModel):
    start: str
    end: str
    label: str
    is_current_week: bool = False
    hours: List[int] = []
    days: List[WeekDayColumn] = []

class MonthCell(BaseModel):
    day_key: str
    day_number: int
    is_current_month: bool
    is_today: bool = False
    appointment_count: int = 0

    @property
    def has_indicator(self) -> bool:
        return self.appointment_count > 0

class MonthProjection(BaseModel):
    year: int
    month: int
    label: str
    is_current_month: bool = False
    cells: List[MonthCell] = []

    @property
    def weeks(self) -> List[List[MonthCell]]:
        return [self.cells[i:i + 7] for i in range(0, len(self.cells), 7)]

class TapSlot(BaseModel):
    day_key: str
    time: str
    start_minutes: int
    duration: int = 0

    @property
    def is_available(self) -> bool:
        return self.duration > 0
