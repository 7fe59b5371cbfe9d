from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any
from enum import Enum
import re

from groomer_calendar.utils.time_utils import duration_or_default

DAY_KEY_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})")

class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"

class FilterMode(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    UNPAID = "unpaid"

class ViewMode(str, Enum):
    LIST = "list"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

# Statuses that never block a new slot
NON_BLOCKING_STATUSES = {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}

class Customer(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    address_2: Optional[str] = None

    @property
    def display_name(self) -> str:
        combined = " ".join(part.strip() for part in [self.first_name or "", self.last_name or ""] if part.strip())
        if combined:
            return combined
        return (self.name or "").strip()

    @property
    def full_address(self) -> str:
        return ", ".join(part.strip() for part in [self.address or "", self.address_2 or ""] if part.strip())

class Pet(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    breed: Optional[str] = None
    photo_url: Optional[str] = None

class ServiceInfo(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None

class ServiceAddon(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None

class AppointmentServiceEntry(BaseModel):
    id: Optional[str] = None
    service_id: Optional[str] = None
    pet_id: Optional[str] = None
    price_tier_id: Optional[str] = None
    price_tier_label: Optional[str] = None
    price_tier_price: Optional[float] = None
    services: Optional[ServiceInfo] = None
    pets: Optional[Pet] = None
    appointment_service_addons: List[ServiceAddon] = []

class Appointment(BaseModel):
    id: str
    date: Optional[str] = Field(None, alias="appointment_date")
    time: Optional[str] = Field(None, alias="appointment_time")
    duration: Optional[int] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    amount: Optional[float] = None
    notes: Optional[str] = None
    customers: Optional[Customer] = None
    pets: Optional[Pet] = None
    services: Optional[ServiceInfo] = None
    appointment_services: List[AppointmentServiceEntry] = []

    class Config:
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        # Timestamps like "2024-07-10T00:00:00Z" are reduced to the day key
        if isinstance(value, str):
            match = DAY_KEY_PATTERN.match(value.strip())
            if match:
                return match.group(1)
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def _lenient_duration(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("appointment_services", mode="before")
    @classmethod
    def _null_services(cls, value: Any) -> Any:
        return value or []

    @property
    def duration_minutes(self) -> int:
        return duration_or_default(self.duration)

    @property
    def is_blocking(self) -> bool:
        return self.status not in NON_BLOCKING_STATUSES

    @property
    def is_paid(self) -> bool:
        return (self.payment_status or PaymentStatus.UNPAID.value) == PaymentStatus.PAID.value

class AppointmentPage(BaseModel):
    items: List[Appointment] = []
    next_offset: Optional[int] = None

class DaySection(BaseModel):
    day_key: str
    title: str
    appointments: List[Appointment] = []
