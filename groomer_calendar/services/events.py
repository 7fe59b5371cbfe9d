import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from groomer_calendar.schemas.appointment import Appointment

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class DeleteRequested:
    appointment: Appointment

DeleteHandler = Callable[[DeleteRequested], Any]

class Registration:
    """
    Handle returned by DeleteRequestBus.register. Closing it (or leaving
    the with-block) detaches the handler.
    """

    def __init__(self, bus: "DeleteRequestBus", handler: DeleteHandler):
        self.bus = bus
        self.handler = handler

    def close(self) -> None:
        self.bus.unregister(self.handler)

    def __enter__(self) -> "Registration":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

class DeleteRequestBus:
    """
    Routes delete requests from list rows to the screen that owns the
    deletion coordinator. Holds at most one handler at a time.
    """

    def __init__(self):
        self._handler: Optional[DeleteHandler] = None

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    def register(self, handler: DeleteHandler) -> Registration:
        if self._handler is not None and self._handler != handler:
            raise RuntimeError("A delete handler is already registered")
        self._handler = handler
        return Registration(self, handler)

    def unregister(self, handler: DeleteHandler) -> None:
        if self._handler == handler:
            self._handler = None

    def emit(self, appointment: Appointment) -> bool:
        """Deliver a delete request; False when no screen is listening."""
        if self._handler is None:
            logger.warning(f"Delete requested for {appointment.id} but no handler is registered")
            return False
        self._handler(DeleteRequested(appointment=appointment))
        return True
