import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from groomer_calendar.core.config import settings
from groomer_calendar.schemas.appointment import Appointment, AppointmentPage

logger = logging.getLogger(__name__)

class AppointmentApiError(Exception):
    """Failed appointments API call; message is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class AppointmentDataSource(Protocol):
    async def list_appointments(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 1000,
        offset: int = 0
    ) -> AppointmentPage: ...

    async def delete_appointment(self, appointment_id: str) -> None: ...

    async def create_appointment(self, payload: Dict[str, Any]) -> Appointment: ...

    async def update_appointment(self, appointment_id: str, payload: Dict[str, Any]) -> Appointment: ...


def _first_record(body: Any) -> Any:
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, list):
        return data[0] if data else None
    return data

class AppointmentsClient:
    """
    REST/JSON client for the appointments API
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        account_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None
    ):
        base_url = (base_url or settings.API_URL).rstrip("/")
        version = settings.API_VERSION.rstrip("/")
        headers = {}
        token = token or settings.API_TOKEN
        account_id = account_id or settings.ACCOUNT_ID
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if account_id:
            headers["X-Account-Id"] = account_id

        self.client = httpx.AsyncClient(
            base_url=f"{base_url}{version}",
            headers=headers,
            transport=transport,
            timeout=timeout or settings.API_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "AppointmentsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Appointments API {method} {url} failed: {e}")
            raise AppointmentApiError(str(e) or "Network error") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("error") if isinstance(body, dict) else None
            logger.warning(f"Appointments API {method} {url} returned {response.status_code}: {message}")
            raise AppointmentApiError(message or "Request failed", response.status_code)
        return body

    async def list_appointments(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 1000,
        offset: int = 0
    ) -> AppointmentPage:
        """
        Get one page of appointments, optionally within a date range
        """
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if date_from:
            params["date_from"] = str(date_from)[:10]
        if date_to:
            params["date_to"] = str(date_to)[:10]

        body = await self._request("GET", "/appointments", params=params)
        items = [Appointment.model_validate(item) for item in body.get("data") or []]
        next_offset = (body.get("meta") or {}).get("nextOffset")
        return AppointmentPage(items=items, next_offset=next_offset)

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        body = await self._request("GET", f"/appointments/{appointment_id}")
        record = _first_record(body)
        return Appointment.model_validate(record) if record else None

    async def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        """
        Create an appointment; new appointments start unpaid unless stated
        """
        body = {"payment_status": "unpaid", **payload}
        body.setdefault("duration", None)
        body.setdefault("notes", None)
        response = await self._request("POST", "/appointments", json=body)
        return Appointment.model_validate(_first_record(response) or {"id": "", **body})

    async def update_appointment(self, appointment_id: str, payload: Dict[str, Any]) -> Appointment:
        response = await self._request("PATCH", f"/appointments/{appointment_id}", json=payload)
        return Appointment.model_validate(_first_record(response) or {"id": appointment_id, **payload})

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}")
        logger.info(f"Deleted appointment {appointment_id}")
