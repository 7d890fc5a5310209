"""Driving acme windows through its 9P file interface."""

from .client import AcmeError, NinePClient
from .events import Event, EventParseError, EventParser, format_event
from .window import EventHandler, Window

__all__ = [
    "AcmeError",
    "Event",
    "EventHandler",
    "EventParseError",
    "EventParser",
    "NinePClient",
    "Window",
    "format_event",
]
