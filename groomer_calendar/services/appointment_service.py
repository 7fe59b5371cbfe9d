import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

from groomer_calendar.api.appointments_client import AppointmentApiError, AppointmentDataSource
from groomer_calendar.core.config import CalendarConfig, get_calendar_config, settings
from groomer_calendar.db.query_cache import (
    APPOINTMENTS_NAMESPACE, CacheKey, QueryCache, appointment_query_key
)
from groomer_calendar.schemas.appointment import Appointment, FilterMode, ViewMode
from groomer_calendar.services.calendar_service import date_range_for_view

logger = logging.getLogger(__name__)

class AppointmentService:
    """
    Loads appointment lists through the data source into the shared cache
    """

    def __init__(
        self,
        data_source: AppointmentDataSource,
        cache: QueryCache,
        config: Optional[CalendarConfig] = None,
        page_size: Optional[int] = None
    ):
        self.data_source = data_source
        self.cache = cache
        self.config = config or get_calendar_config()
        self.page_size = page_size or settings.PAGE_SIZE

    async def fetch_all(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Appointment]:
        """
        Fetch every appointment in the range, following nextOffset
        """
        items: List[Appointment] = []
        offset: Optional[int] = 0
        while offset is not None:
            page = await self.data_source.list_appointments(
                date_from=date_from, date_to=date_to, limit=self.page_size, offset=offset
            )
            items.extend(page.items)
            # Guard against a server that keeps returning the same offset
            offset = page.next_offset if page.next_offset is not None and page.next_offset > offset else None
        return items

    def query_key(
        self,
        view_mode: ViewMode,
        filter_mode: FilterMode,
        anchor: Union[date, str],
        today: Union[date, str]
    ) -> CacheKey:
        date_range = date_range_for_view(view_mode, filter_mode, anchor, today, self.config)
        return appointment_query_key(view_mode, filter_mode, date_range.date_from, date_range.date_to)

    async def load(
        self,
        view_mode: ViewMode,
        filter_mode: FilterMode,
        anchor: Union[date, str],
        today: Optional[Union[date, str]] = None,
        force: bool = False
    ) -> List[Appointment]:
        """
        Appointments for a view, served from the cache while fresh
        """
        key = self.query_key(view_mode, filter_mode, anchor, today or date.today())
        if not force and not self.cache.is_stale(key):
            return self.cache.get(key)
        return await self._fetch_into(key)

    async def _fetch_into(self, key: CacheKey) -> List[Appointment]:
        _, _, _, date_from, date_to = key
        items = await self.fetch_all(date_from, date_to)
        return self.cache.set(key, items)

    async def invalidate(self) -> None:
        """
        Mark every appointment list stale and reload it from the server.
        A failed reload keeps the previous (stale) data.
        """
        for key in self.cache.invalidate(APPOINTMENTS_NAMESPACE):
            try:
                await self._fetch_into(key)
            except AppointmentApiError as e:
                logger.warning(f"Could not refresh {key}: {e.message}")

    async def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        appointment = await self.data_source.create_appointment(payload)
        await self.invalidate()
        return appointment

    async def update_appointment(self, appointment_id: str, payload: Dict[str, Any]) -> Appointment:
        appointment = await self.data_source.update_appointment(appointment_id, payload)
        await self.invalidate()
        return appointment
