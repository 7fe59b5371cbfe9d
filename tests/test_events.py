import pytest

from conftest import make_appointment
from groomer_calendar.services.events import DeleteRequestBus, DeleteRequested


class Screen:
    def __init__(self):
        self.requests = []

    def on_delete(self, event: DeleteRequested):
        self.requests.append(event.appointment.id)


def test_emit_reaches_registered_handler():
    bus = DeleteRequestBus()
    screen = Screen()
    bus.register(screen.on_delete)

    assert bus.emit(make_appointment("1"))
    assert screen.requests == ["1"]


def test_emit_without_handler_returns_false():
    bus = DeleteRequestBus()
    assert not bus.has_handler
    assert not bus.emit(make_appointment("1"))


def test_only_one_handler_at_a_time():
    bus = DeleteRequestBus()
    first, second = Screen(), Screen()
    bus.register(first.on_delete)

    with pytest.raises(RuntimeError):
        bus.register(second.on_delete)

    # Registering the same bound method again is allowed
    bus.register(first.on_delete)
    assert bus.has_handler


def test_registration_closes_on_exit():
    bus = DeleteRequestBus()
    first, second = Screen(), Screen()

    with bus.register(first.on_delete):
        bus.emit(make_appointment("1"))
    assert not bus.has_handler

    bus.register(second.on_delete)
    bus.emit(make_appointment("2"))
    assert first.requests == ["1"]
    assert second.requests == ["2"]


def test_unregister_ignores_other_handlers():
    bus = DeleteRequestBus()
    first, second = Screen(), Screen()
    bus.register(first.on_delete)

    bus.unregister(second.on_delete)
    assert bus.has_handler
    bus.unregister(first.on_delete)
    assert not bus.has_handler
