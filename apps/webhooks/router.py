"""Dispatch booking events to their handlers."""

from __future__ import annotations

from typing import Any, Callable, Dict

from apps.webhooks.handlers import AppointmentEventHandler, HandlerResult, PatientCreatedHandler

Handler = Callable[[Dict[str, Any]], HandlerResult]


class EventRouter:
    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def register(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type] = handler

    def dispatch(self, event_type: str, payload: Dict[str, Any]) -> HandlerResult:
        handler = self._handlers.get(event_type)
        if handler is None:
            return HandlerResult.error(f"Unknown event_type: '{event_type}'")
        return handler(payload)


def build_default_router() -> EventRouter:
    router = EventRouter()
    router.register("patient.created", PatientCreatedHandler())
    appointment_handler = AppointmentEventHandler()
    for event_type in ("appointment.created", "appointment.updated", "appointment.cancelled"):
        router.register(event_type, appointment_handler)
    return router
