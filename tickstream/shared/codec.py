"""
MODULE OVERVIEW:
The text framing rules of the event stream, used from both ends of the wire.

WHAT IS HAPPENING HERE:
A frame is a handful of `field: value` lines closed by one blank line.
The server turns a `StreamEvent` into such a frame; the client feeds raw lines
into a `FrameParser` which hands back a `StreamEvent` every time a blank line
closes a frame that carried at least one field.

Two details are deliberate:
  * multi-line data goes out as several `data:` lines but comes back joined by
    single spaces, so "a\\nb" round-trips as "a b";
  * comment lines (anything starting with ':') are the heartbeat and are dropped
    without touching the frame being assembled.
"""
import re
from typing import Iterable

from tickstream.shared.models import StreamEvent

HEARTBEAT_FRAME = ": keep-alive\n\n"

# Every line break str.splitlines() knows, which is also how the client reads lines back.
_NEWLINE = re.compile(r"\r\n|[\n\r\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029]")


def serialize_event(event: StreamEvent) -> list[str]:
    """Return the lines of one frame, blank terminator included."""
    lines = []
    if event.type:
        lines.append(f"event: {event.type}")
    if event.id:
        lines.append(f"id: {event.id}")
    if event.data is not None:
        for segment in _NEWLINE.split(event.data):
            lines.append(f"data: {segment}")
    lines.append("")
    return lines


def encode_frame(event: StreamEvent) -> str:
    return "".join(f"{line}\n" for line in serialize_event(event))


class FrameParser:
    """Incremental, line-oriented frame parser. One instance per connection."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        # Called on every blank line and whenever the stream ends mid-frame.
        self._event: str | None = None
        self._id: str | None = None
        self._data: str | None = None

    @property
    def pending(self) -> bool:
        return self._event is not None or self._id is not None or self._data is not None

    def feed(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r\n")

        if not line:
            if not self.pending:
                return None
            event = StreamEvent(type=self._event, data=self._data, id=self._id)
            self.reset()
            return event

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        field = field.strip()
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "id":
            self._id = value
        elif field == "data":
            self._data = value if not self._data else f"{self._data} {value}"
        return None


def parse_lines(lines: Iterable[str]) -> list[StreamEvent]:
    """Parse a finite run of lines. A trailing unterminated frame is dropped."""
    parser = FrameParser()
    events = []
    for line in lines:
        event = parser.feed(line)
        if event is not None:
            events.append(event)
    parser.reset()
    return events
