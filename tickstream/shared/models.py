"""
MODULE OVERVIEW:
The typed data structures shared by the server and the client, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
`StreamEvent` is one logical frame of the text event stream. All three fields are
optional: a frame carrying none of them is a keep-alive and never reaches
application code. The remaining models are the JSON bodies of the ops and
control routes.
"""
from datetime import datetime
from typing import Literal
from pydantic import BaseModel

SHUTDOWN_EVENT_TYPE = "shutdown"

class StreamEvent(BaseModel):
    type: str | None = None
    data: str | None = None
    id: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.type is None and self.data is None and self.id is None

    @property
    def is_shutdown(self) -> bool:
        return self.type is not None and self.type.lower() == SHUTDOWN_EVENT_TYPE

class ControlResult(BaseModel):
    command: Literal["start", "stop", "shutdown"]
    sending: bool
    terminating: bool

class ConnectionStats(BaseModel):
    active_streams: int
    sending: bool
    terminating: bool
    total_events_dispatched: int
    total_heartbeats: int
    uptime_s: float
    server_time: datetime
