"""
Handle on one acme window.

Regions are addressed by file name under ``acme/<id>/``: ``tag``, ``body``,
``ctl``, ``addr``, ``data`` and ``event``.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from acme_rss.acme.client import AcmeError, NinePClient
from acme_rss.acme.events import Event, EventParser, format_event
from acme_rss.core.logging import get_logger, log_exception

logger = get_logger(__name__)


class EventHandler(Protocol):
    """Receives a window's execute and look events.

    Returning False hands the event back to acme for its default behaviour.
    """

    async def execute(self, cmd: str) -> bool: ...

    async def look(self, arg: str) -> bool: ...


class Window:
    """An acme window identified by its numeric id."""

    def __init__(self, client: NinePClient, win_id: int):
        self.client = client
        self.id = win_id
        self.logger = logger.bind(window_id=win_id)

    @classmethod
    async def new(cls, client: NinePClient) -> "Window":
        """Create a window; acme allocates it when ``new/ctl`` is opened."""
        ctl = await client.read("acme/new/ctl")
        fields = ctl.split()
        if not fields or not fields[0].isdigit():
            raise AcmeError(f"unexpected reply from acme/new/ctl: {ctl!r}")
        return cls(client, int(fields[0]))

    def _path(self, file: str) -> str:
        return f"acme/{self.id}/{file}"

    async def ctl(self, msg: str) -> None:
        await self.client.write(self._path("ctl"), msg if msg.endswith("\n") else msg + "\n")

    async def name(self, title: str) -> None:
        await self.ctl(f"name {title}")

    async def write(self, region: str, text: str) -> None:
        """Append ``text`` to ``region`` (``body`` or ``tag``)."""
        if not text:
            return
        await self.client.write(self._path(region), text)

    async def replace_body(self, text: str) -> None:
        """Replace the whole body with ``text``."""
        await self.client.write(self._path("addr"), ",")
        await self.client.write(self._path("data"), text)

    async def events(self) -> AsyncIterator[Event]:
        """Decoded events until the window is deleted."""
        parser = EventParser()
        async for chunk in self.client.stream(self._path("event")):
            for event in parser.feed(chunk):
                yield event

    async def write_event(self, event: Event) -> None:
        await self.client.write(self._path("event"), format_event(event))

    async def event_loop(self, handler: EventHandler) -> None:
        """Dispatch execute/look events to ``handler`` until the window goes away.

        A handler failure on one event is logged and the event handed back.
        """
        async for event in self.events():
            if event.is_execute:
                dispatch, arg = handler.execute, event.command()
            elif event.is_look:
                dispatch, arg = handler.look, event.text
            else:
                continue

            handled = False
            if arg:
                try:
                    handled = await dispatch(arg)
                except AcmeError:
                    raise
                except Exception as exc:
                    log_exception(self.logger, exc, {"event": event.c2, "text": arg})
            if not handled:
                await self.write_event(event)
        self.logger.debug("event_loop_finished")
