"""
MODULE OVERVIEW:
The per-connection emission loop. One instance lives for exactly one open stream.

WHAT IS HAPPENING HERE:
Once per tick the loop re-reads the shared `ControlState` and decides what to write:

    terminating set  -> farewell event (type=shutdown), then CLOSED, no more ticks
    sending set      -> tick event with the next connection-local id
    neither          -> ': keep-alive' comment, no id consumed

Ids restart at 1 on every connection and the client's Last-Event-ID is not
honored, so a reconnecting client sees ids from 1 again. Cancellation is
cooperative: the flags are only looked at when the tick wakes up, which is what
guarantees the farewell frame gets written in full.
"""
import asyncio
import time
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from tickstream.server.control import ControlState
from tickstream.shared.codec import HEARTBEAT_FRAME, encode_frame
from tickstream.shared.models import SHUTDOWN_EVENT_TYPE, StreamEvent

TICK_EVENT_TYPE = "tick"
FAREWELL_DATA = "server shutting down"


class EmissionState(str, Enum):
    HEARTBEAT = "heartbeat"
    SENDING = "sending"
    TERMINATING = "terminating"
    CLOSED = "closed"


class EmissionLoop:
    def __init__(
        self,
        control: ControlState,
        client_id: str,
        tick_interval_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.control = control
        self.client_id = client_id
        self.tick_interval_s = tick_interval_s
        self._sleep = sleep
        self._clock = clock
        self.state = EmissionState.HEARTBEAT
        self.last_id = 0
        self.events_sent = 0
        self.heartbeats_sent = 0

    def _next_event(self, event_type: str, data: str) -> StreamEvent:
        self.last_id += 1
        self.events_sent += 1
        return StreamEvent(type=event_type, data=data, id=str(self.last_id))

    def tick_payload(self) -> str:
        return f"tick @{int(self._clock() * 1000)}"

    def step(self) -> str:
        """Evaluate one tick and return the frame to write."""
        if self.state is EmissionState.CLOSED:
            raise RuntimeError(f"emission loop for {self.client_id} is closed")

        if self.control.terminating:
            self.state = EmissionState.TERMINATING
            frame = encode_frame(self._next_event(SHUTDOWN_EVENT_TYPE, FAREWELL_DATA))
            self.state = EmissionState.CLOSED
            return frame

        if self.control.sending:
            self.state = EmissionState.SENDING
            return encode_frame(self._next_event(TICK_EVENT_TYPE, self.tick_payload()))

        self.state = EmissionState.HEARTBEAT
        self.heartbeats_sent += 1
        return HEARTBEAT_FRAME

    async def frames(self) -> AsyncIterator[str]:
        while True:
            yield self.step()
            if self.state is EmissionState.CLOSED:
                break
            await self._sleep(self.tick_interval_s)
