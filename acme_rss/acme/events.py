"""
Codec for acme's per-window event file.

A record is ``c1 c2 q0 SP q1 SP flag SP nr SP text NL``: two origin/type
characters, four decimal numbers each followed by a space, and ``nr`` runes
of text. Execute and look events may be followed by extra records: an
expansion when flag bit 2 is set, and for execute a chorded argument plus
its location when flag bit 8 is set.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import List, Optional, Tuple

from acme_rss.acme.client import AcmeError

FLAG_EXPANDED = 2
FLAG_CHORDED_ARG = 8

EXECUTE_TYPES = "xX"
LOOK_TYPES = "lL"


class EventParseError(AcmeError):
    """Raised when the event stream is malformed."""


@dataclass
class Event:
    """One decoded acme event, with any follow-up records folded in."""

    c1: str
    c2: str
    q0: int
    q1: int
    flag: int
    text: str
    arg: str = ""
    loc: str = ""
    orig_q0: Optional[int] = None
    orig_q1: Optional[int] = None

    def __post_init__(self):
        if self.orig_q0 is None:
            self.orig_q0 = self.q0
        if self.orig_q1 is None:
            self.orig_q1 = self.q1

    @property
    def is_execute(self) -> bool:
        return self.c2 in EXECUTE_TYPES

    @property
    def is_look(self) -> bool:
        return self.c2 in LOOK_TYPES

    def command(self) -> str:
        """Executed text, with a chorded argument appended after a space."""
        cmd = self.text.strip()
        if self.arg:
            cmd = f"{cmd} {self.arg}"
        return cmd


def format_event(event: Event) -> str:
    """Render ``event`` the way acme expects it to be written back."""
    return f"{event.c1}{event.c2}{event.orig_q0} {event.orig_q1}\n"


_Record = Tuple[str, str, int, int, int, str]


def _followups(c2: str, flag: int) -> int:
    count = 0
    if c2 in EXECUTE_TYPES + LOOK_TYPES and flag & FLAG_EXPANDED:
        count += 1
    if c2 in EXECUTE_TYPES and flag & FLAG_CHORDED_ARG:
        count += 2
    return count


class EventParser:
    """Incremental decoder: feed it raw bytes, get back complete events."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._records: List[_Record] = []

    def feed(self, data: bytes) -> List[Event]:
        self._buffer += self._decoder.decode(data)
        while True:
            record = self._next_record()
            if record is None:
                break
            self._records.append(record)
        return self._assemble()

    def _next_record(self) -> Optional[_Record]:
        buf = self._buffer
        if len(buf) < 2:
            return None
        c1, c2 = buf[0], buf[1]
        pos = 2
        numbers = []
        for _ in range(4):
            end = buf.find(" ", pos)
            if end < 0:
                if not buf[pos:].isdigit() and buf[pos:]:
                    raise EventParseError(f"bad number in event record: {buf[pos:pos + 20]!r}")
                return None
            field = buf[pos:end]
            if not field.isdigit():
                raise EventParseError(f"bad number in event record: {field!r}")
            numbers.append(int(field))
            pos = end + 1
        q0, q1, flag, nr = numbers
        if len(buf) < pos + nr + 1:
            return None
        text = buf[pos:pos + nr]
        if buf[pos + nr] != "\n":
            raise EventParseError("event record not terminated by newline")
        self._buffer = buf[pos + nr + 1:]
        return (c1, c2, q0, q1, flag, text)

    def _assemble(self) -> List[Event]:
        events: List[Event] = []
        while self._records:
            c1, c2, q0, q1, flag, text = self._records[0]
            needed = _followups(c2, flag)
            if len(self._records) < needed + 1:
                break
            extra = self._records[1:needed + 1]
            del self._records[:needed + 1]

            event = Event(c1=c1, c2=c2, q0=q0, q1=q1, flag=flag, text=text)
            if c2 in EXECUTE_TYPES + LOOK_TYPES and flag & FLAG_EXPANDED:
                expansion = extra.pop(0)
                event.q0, event.q1, event.text = expansion[2], expansion[3], expansion[5]
            if c2 in EXECUTE_TYPES and flag & FLAG_CHORDED_ARG:
                event.arg = extra[0][5]
                event.loc = extra[1][5]
            events.append(event)
        return events
