import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from groomer_calendar.api.appointments_client import AppointmentApiError, AppointmentsClient

TOKEN = "test-token"
ACCOUNT_ID = "acct-42"

appointment_records = [
    {
        "id": 101,
        "appointment_date": "2024-07-10T00:00:00Z",
        "appointment_time": "09:00:00",
        "duration": "45",
        "status": "scheduled",
        "payment_status": "unpaid",
        "customers": {"first_name": "Ana", "last_name": "Costa", "phone": "911111111"},
        "appointment_services": None,
    },
    {
        "id": "102",
        "appointment_date": "2024-07-11",
        "appointment_time": None,
        "duration": "abc",
        "status": "archived",
    },
    {
        "id": "103",
        "appointment_date": "2024-07-12",
        "appointment_time": "16:30",
        "status": "completed",
        "payment_status": "paid",
    },
]

stub_app = FastAPI()
received = []


@stub_app.middleware("http")
async def check_headers(request: Request, call_next):
    received.append(request)
    if request.headers.get("Authorization") != f"Bearer {TOKEN}":
        return JSONResponse(status_code=401, content={"error": "Invalid token"})
    return await call_next(request)


@stub_app.get("/api/v1/appointments")
async def list_appointments(limit: int = 1000, offset: int = 0, date_from: str = None, date_to: str = None):
    page = appointment_records[offset:offset + limit]
    next_offset = offset + limit if offset + limit < len(appointment_records) else None
    return {"data": page, "meta": {"nextOffset": next_offset}}


@stub_app.get("/api/v1/appointments/{appointment_id}")
async def get_appointment(appointment_id: str):
    matching = [record for record in appointment_records if str(record["id"]) == appointment_id]
    return {"data": matching}


@stub_app.post("/api/v1/appointments")
async def create_appointment(request: Request):
    payload = await request.json()
    return {"data": [{"id": "200", **payload}]}


@stub_app.patch("/api/v1/appointments/{appointment_id}")
async def update_appointment(appointment_id: str, request: Request):
    payload = await request.json()
    return {"data": {"id": appointment_id, "appointment_date": "2024-07-10", **payload}}


@stub_app.delete("/api/v1/appointments/{appointment_id}")
async def delete_appointment(appointment_id: str):
    if appointment_id == "locked":
        return JSONResponse(status_code=409, content={"error": "Appointment has a payment"})
    if appointment_id == "boom":
        return JSONResponse(status_code=500, content={})
    return {"data": None}


def build_client(token=TOKEN):
    return AppointmentsClient(
        base_url="http://testserver",
        token=token,
        account_id=ACCOUNT_ID,
        transport=httpx.ASGITransport(app=stub_app),
    )


@pytest.mark.asyncio
async def test_list_appointments_parses_page():
    async with build_client() as client:
        page = await client.list_appointments(date_from="2024-07-01", date_to="2024-07-31", limit=2)

    assert [apt.id for apt in page.items] == ["101", "102"]
    assert page.next_offset == 2
    first, second = page.items
    assert first.date == "2024-07-10"
    assert first.duration_minutes == 45
    assert first.customers.display_name == "Ana Costa"
    assert first.appointment_services == []
    assert second.duration is None
    assert second.duration_minutes == 60
    assert second.status == "archived"

    request = received[-1]
    assert request.headers["X-Account-Id"] == ACCOUNT_ID
    assert request.query_params["date_from"] == "2024-07-01"
    assert request.query_params["offset"] == "0"


@pytest.mark.asyncio
async def test_list_last_page_has_no_next_offset():
    async with build_client() as client:
        page = await client.list_appointments(limit=2, offset=2)

    assert [apt.id for apt in page.items] == ["103"]
    assert page.next_offset is None
    assert page.items[0].is_paid
    assert not page.items[0].is_blocking


@pytest.mark.asyncio
async def test_error_body_becomes_message():
    async with build_client() as client:
        with pytest.raises(AppointmentApiError) as exc_info:
            await client.delete_appointment("locked")

    print(f"Delete error: {exc_info.value.message}")
    assert exc_info.value.message == "Appointment has a payment"
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_error_without_body_uses_generic_message():
    async with build_client() as client:
        with pytest.raises(AppointmentApiError) as exc_info:
            await client.delete_appointment("boom")

    assert exc_info.value.message == "Request failed"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_bad_token_is_rejected():
    async with build_client(token="wrong") as client:
        with pytest.raises(AppointmentApiError) as exc_info:
            await client.list_appointments()

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Invalid token"


@pytest.mark.asyncio
async def test_delete_appointment():
    async with build_client() as client:
        await client.delete_appointment("101")

    assert received[-1].method == "DELETE"
    assert received[-1].url.path == "/api/v1/appointments/101"


@pytest.mark.asyncio
async def test_create_defaults_to_unpaid():
    async with build_client() as client:
        created = await client.create_appointment({"appointment_date": "2024-07-20", "appointment_time": "10:00"})

    assert created.id == "200"
    assert created.payment_status == "unpaid"
    assert created.duration is None
    assert created.time == "10:00"


@pytest.mark.asyncio
async def test_update_appointment():
    async with build_client() as client:
        updated = await client.update_appointment("101", {"status": "confirmed"})

    assert updated.id == "101"
    assert updated.status == "confirmed"


@pytest.mark.asyncio
async def test_get_appointment():
    async with build_client() as client:
        found = await client.get_appointment("103")
        missing = await client.get_appointment("999")

    assert found.id == "103"
    assert found.time == "16:30"
    assert found.is_paid
    assert missing is None
