import pytest

from groomer_calendar.schemas.appointment import Appointment

raw_appointment = {
    "id": 7,
    "appointment_date": "2024-07-10T00:00:00Z",
    "appointment_time": "09:00",
    "status": "scheduled",
}


@pytest.mark.parametrize("raw_duration, expected", [
    ("90", 90),
    (45.7, 45),
    ("", None),
    ("abc", None),
    ("inf", None),
    ("-inf", None),
    ("1e999", None),
    (float("inf"), None),
    ("nan", None),
    ([30], None),
])
def test_duration_is_lenient(raw_duration, expected):
    appointment = Appointment.model_validate({**raw_appointment, "duration": raw_duration})
    assert appointment.duration == expected
    assert appointment.duration_minutes == (expected if expected and expected > 0 else 60)


def test_page_with_dirty_duration_still_parses():
    records = [
        {**raw_appointment, "id": 1, "duration": "inf"},
        {**raw_appointment, "id": 2, "duration": 30},
    ]
    appointments = [Appointment.model_validate(record) for record in records]

    assert [apt.id for apt in appointments] == ["1", "2"]
    assert [apt.duration_minutes for apt in appointments] == [60, 30]
    assert appointments[0].date == "2024-07-10"
