"""Shared fixtures: an in-memory stand-in for acme's 9P file system."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
import structlog

from acme_rss.acme.client import AcmeError

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "rss"


@dataclass
class FakeWindowState:
    """What acme would hold for one window."""

    id: int
    name: str = ""
    tag: str = ""
    body: str = ""
    addr: str = ""
    ctl: List[str] = field(default_factory=list)
    returned_events: List[str] = field(default_factory=list)
    events: "asyncio.Queue[Optional[bytes]]" = field(default_factory=asyncio.Queue)

    @property
    def is_clean(self) -> bool:
        return bool(self.ctl) and self.ctl[-1] == "clean"


class FakeAcme:
    """Implements the NinePClient interface against in-memory windows."""

    def __init__(self):
        self.windows: Dict[int, FakeWindowState] = {}
        self.writes: List[Tuple[str, str]] = []
        self.fail_new = False
        self._next_id = 1

    def _window(self, path: str) -> Tuple[FakeWindowState, str]:
        service, win_id, file = path.split("/", 2)
        assert service == "acme"
        try:
            return self.windows[int(win_id)], file
        except (KeyError, ValueError):
            raise AcmeError(f"{path}: file does not exist")

    async def read(self, path: str) -> str:
        if path == "acme/new/ctl":
            if self.fail_new:
                raise AcmeError("9p read acme/new/ctl: connection refused")
            win_id = self._next_id
            self._next_id += 1
            self.windows[win_id] = FakeWindowState(id=win_id)
            return f"{win_id:11d} {0:11d} {0:11d} {0:11d} {0:11d} "
        state, file = self._window(path)
        if file == "body":
            return state.body
        if file == "tag":
            return state.tag
        raise AcmeError(f"{path}: unsupported read")

    async def write(self, path: str, data: str) -> None:
        self.writes.append((path, data))
        state, file = self._window(path)
        if file == "ctl":
            msg = data.strip()
            state.ctl.append(msg)
            if msg.startswith("name "):
                state.name = msg[len("name "):]
            elif msg == "cleartag":
                state.tag = ""
        elif file == "tag":
            state.tag += data
        elif file == "body":
            state.body += data
        elif file == "addr":
            state.addr = data
        elif file == "data":
            assert state.addr == ",", "only whole-body replacement is supported"
            state.body = data
        elif file == "event":
            state.returned_events.append(data)
        else:
            raise AcmeError(f"{path}: unsupported write")

    async def stream(self, path: str):
        state, file = self._window(path)
        assert file == "event"
        while True:
            chunk = await state.events.get()
            if chunk is None:
                return
            yield chunk

    # test helpers

    def push_event(self, win_id: int, raw: str) -> None:
        self.windows[win_id].events.put_nowait(raw.encode("utf-8"))

    def delete_window(self, win_id: int) -> None:
        self.windows[win_id].events.put_nowait(None)

    def window_named(self, name: str) -> Optional[FakeWindowState]:
        for state in self.windows.values():
            if state.name == name:
                return state
        return None


def exec_event(text: str, q0: int = 0) -> str:
    """Raw record for a middle-click on ``text`` in the body."""
    return f"Mx{q0} {q0 + len(text)} 0 {len(text)} {text}\n"


def look_event(text: str, q0: int = 0) -> str:
    """Raw record for a right-click on ``text`` in the body."""
    return f"Ml{q0} {q0 + len(text)} 0 {len(text)} {text}\n"


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a test's captured stderr."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def fake_acme():
    return FakeAcme()


@pytest.fixture
def fixture_text():
    def _read(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return _read
