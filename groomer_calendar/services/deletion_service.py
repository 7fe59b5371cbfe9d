"""
Optimistic appointment deletion with a time-boxed undo.

A deletion removes the appointment from every cached view right away,
then waits for the undo window. The timer, an explicit dismiss, a newer
deletion or teardown commit it (sending the real DELETE); undo puts it
back at its recorded positions. Exactly one of the two happens.
"""
import asyncio
import logging
import math
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from groomer_calendar.api.appointments_client import AppointmentDataSource
from groomer_calendar.core.config import settings
from groomer_calendar.db.query_cache import (
    APPOINTMENTS_NAMESPACE, CacheKey, OptimisticRemoval, QueryCache
)
from groomer_calendar.schemas.appointment import Appointment
from groomer_calendar.services.events import DeleteRequested

logger = logging.getLogger(__name__)

class DeletionState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    UNDONE = "undone"

class PendingDeletion:
    def __init__(self, appointment: Appointment, transaction: OptimisticRemoval, undo_window_ms: int):
        self.appointment = appointment
        self.transaction = transaction
        self.undo_window_ms = undo_window_ms
        self.state = DeletionState.PENDING
        self.started_at = time.monotonic()
        self.error: Optional[str] = None
        self.timer: Optional[asyncio.TimerHandle] = None
        self.task: Optional["asyncio.Task[bool]"] = None

    @property
    def affected_views(self) -> List[Tuple[CacheKey, int]]:
        return [(view.key, view.index) for view in self.transaction.affected_views]

    @property
    def is_pending(self) -> bool:
        return self.state == DeletionState.PENDING

    def remaining_seconds(self) -> int:
        """Whole seconds left in the undo window, for the countdown toast."""
        elapsed_ms = (time.monotonic() - self.started_at) * 1000
        return max(math.ceil((self.undo_window_ms - elapsed_ms) / 1000), 0)

    def resolve(self, state: DeletionState) -> bool:
        """Move out of PENDING once; later calls are no-ops returning False."""
        if self.state != DeletionState.PENDING:
            return False
        self.state = state
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        return True

class DeletionCoordinator:
    """
    Owns the outstanding PendingDeletion and is the only writer of the
    appointment cache while one exists.

    Args:
        cache: shared query cache holding the appointment lists
        data_source: performs the real network delete
        undo_window_ms: how long undo stays possible (default from settings)
        on_error: receives a user-facing message when a delete fails
        on_refresh: coroutine that reloads server state after a delete;
            defaults to marking the appointment cache stale
    """

    def __init__(
        self,
        cache: QueryCache,
        data_source: AppointmentDataSource,
        undo_window_ms: Optional[int] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_refresh: Optional[Callable[[], Awaitable[None]]] = None,
        namespace: str = APPOINTMENTS_NAMESPACE
    ):
        self.cache = cache
        self.data_source = data_source
        self.undo_window_ms = settings.UNDO_WINDOW_MS if undo_window_ms is None else undo_window_ms
        self.on_error = on_error
        self.on_refresh = on_refresh
        self.namespace = namespace
        self._pending: Optional[PendingDeletion] = None
        self._in_flight: Set["asyncio.Task[bool]"] = set()
        self._committing: Dict[str, PendingDeletion] = {}

    @property
    def pending(self) -> Optional[PendingDeletion]:
        return self._pending

    @property
    def is_idle(self) -> bool:
        return self._pending is None

    def start_delete(self, appointment: Appointment) -> PendingDeletion:
        """
        Remove the appointment from every cached view and arm the undo
        timer. An already pending deletion is committed first. Deleting
        the record that is already pending or being sent returns that
        PendingDeletion instead of opening a second one.
        Must be called from the running event loop.
        """
        loop = asyncio.get_running_loop()

        existing = self._find_existing(appointment.id)
        if existing is not None:
            logger.info(f"Deletion of appointment {appointment.id} already {existing.state.value}, ignoring repeat request")
            return existing

        if self._pending is not None:
            logger.info(f"Flushing pending deletion of {self._pending.appointment.id} before deleting {appointment.id}")
            self._schedule_commit(self._pending)

        transaction = self.cache.begin_optimistic_removal(self.namespace, appointment.id)
        pending = PendingDeletion(
            appointment=appointment.model_copy(deep=True),
            transaction=transaction,
            undo_window_ms=self.undo_window_ms,
        )
        pending.timer = loop.call_later(self.undo_window_ms / 1000, self._on_timeout, pending)
        self._pending = pending

        logger.info(f"Appointment {appointment.id} removed from {len(pending.affected_views)} views, undo window {self.undo_window_ms}ms")
        return pending

    def handle_delete_request(self, event: DeleteRequested) -> None:
        """Handler for DeleteRequestBus."""
        self.start_delete(event.appointment)

    def undo(self) -> bool:
        pending = self._pending
        if pending is None or not pending.resolve(DeletionState.UNDONE):
            return False
        self._pending = None
        pending.transaction.rollback()
        logger.info(f"Deletion of appointment {pending.appointment.id} undone")
        return True

    def dismiss(self) -> Optional["asyncio.Task[bool]"]:
        """Close the undo window early and send the delete now."""
        if self._pending is None:
            return None
        return self._schedule_commit(self._pending)

    async def commit(self) -> bool:
        """
        Send the pending delete now and wait for the outcome.
        Returns True when the server confirmed the delete.
        """
        task = self.dismiss()
        if task is None:
            return False
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait for every delete already sent to the server."""
        while self._in_flight:
            await asyncio.shield(asyncio.gather(*list(self._in_flight), return_exceptions=True))

    async def aclose(self) -> None:
        """Teardown: a pending deletion is committed, never left dangling."""
        self.dismiss()
        await self.drain()

    async def __aenter__(self) -> "DeletionCoordinator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _find_existing(self, appointment_id: str) -> Optional[PendingDeletion]:
        if self._pending is not None and self._pending.appointment.id == appointment_id:
            return self._pending
        return self._committing.get(appointment_id)

    def _on_timeout(self, pending: PendingDeletion) -> None:
        pending.timer = None
        self._schedule_commit(pending)

    def _schedule_commit(self, pending: PendingDeletion) -> Optional["asyncio.Task[bool]"]:
        if not pending.resolve(DeletionState.COMMITTED):
            return pending.task
        if self._pending is pending:
            self._pending = None

        task = asyncio.get_running_loop().create_task(self._send_delete(pending))
        pending.task = task
        self._in_flight.add(task)
        self._committing[pending.appointment.id] = pending
        task.add_done_callback(lambda done: self._on_sent(pending, done))
        return task

    def _on_sent(self, pending: PendingDeletion, task: "asyncio.Task[bool]") -> None:
        self._in_flight.discard(task)
        if self._committing.get(pending.appointment.id) is pending:
            del self._committing[pending.appointment.id]

    def _restore(self, pending: PendingDeletion, message: str) -> None:
        pending.transaction.rollback()
        pending.error = message
        self._report_error(message)

    async def _send_delete(self, pending: PendingDeletion) -> bool:
        appointment_id = pending.appointment.id
        try:
            await self.data_source.delete_appointment(appointment_id)
        except asyncio.CancelledError:
            # Outcome unknown; the record stays visible until the next refetch
            logger.warning(f"Delete of appointment {appointment_id} was cancelled")
            self._restore(pending, settings.DELETE_ERROR_MESSAGE)
            self.cache.invalidate(self.namespace)
            raise
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or settings.DELETE_ERROR_MESSAGE
            logger.error(f"Failed to delete appointment {appointment_id}: {message}")
            self._restore(pending, message)
            await self._refresh()
            return False

        pending.transaction.commit()
        logger.info(f"Appointment {appointment_id} deleted")
        if self._pending is None:
            await self._refresh()
        return True

    def _report_error(self, message: str) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(message)
        except Exception as e:
            logger.error(f"Error callback failed: {e}")

    async def _refresh(self) -> None:
        if self.on_refresh is None:
            self.cache.invalidate(self.namespace)
            return
        try:
            await self.on_refresh()
        except Exception as e:
            logger.warning(f"Refreshing appointments after delete failed: {e}")
            self.cache.invalidate(self.namespace)
