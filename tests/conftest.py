import pytest
from typing import Any, Dict, List, Optional

from groomer_calendar.api.appointments_client import AppointmentApiError
from groomer_calendar.core.config import CalendarConfig
from groomer_calendar.schemas.appointment import Appointment, AppointmentPage


def make_appointment(id: str, date: str = "2024-07-10", time: Optional[str] = "09:00", **extra: Any) -> Appointment:
    return Appointment(id=id, date=date, time=time, status=extra.pop("status", "scheduled"), **extra)


class FakeDataSource:
    """In-memory appointments backend that records every call."""

    def __init__(self, appointments: Optional[List[Appointment]] = None, page_size: Optional[int] = None):
        self.appointments = list(appointments or [])
        self.page_size = page_size
        self.deleted: List[str] = []
        self.list_calls: List[Dict[str, Any]] = []
        self.fail_delete_with: Optional[str] = None

    async def list_appointments(self, date_from=None, date_to=None, limit=1000, offset=0) -> AppointmentPage:
        self.list_calls.append({"date_from": date_from, "date_to": date_to, "limit": limit, "offset": offset})
        matching = [
            apt for apt in self.appointments
            if (not date_from or apt.date >= date_from) and (not date_to or apt.date <= date_to)
        ]
        size = self.page_size or limit
        page = matching[offset:offset + size]
        next_offset = offset + size if offset + size < len(matching) else None
        return AppointmentPage(items=[apt.model_copy() for apt in page], next_offset=next_offset)

    async def delete_appointment(self, appointment_id: str) -> None:
        self.deleted.append(appointment_id)
        if self.fail_delete_with:
            raise AppointmentApiError(self.fail_delete_with, 500)
        self.appointments = [apt for apt in self.appointments if apt.id != appointment_id]

    async def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        appointment = Appointment(id=f"new-{len(self.appointments) + 1}", **payload)
        self.appointments.append(appointment)
        return appointment

    async def update_appointment(self, appointment_id: str, payload: Dict[str, Any]) -> Appointment:
        for index, apt in enumerate(self.appointments):
            if apt.id == appointment_id:
                self.appointments[index] = apt.model_copy(update=payload)
                return self.appointments[index]
        raise AppointmentApiError("Appointment not found", 404)


@pytest.fixture
def config() -> CalendarConfig:
    return CalendarConfig()


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()
