"""
MODULE OVERVIEW:
The registry of open streams behind `/stats`.

WHAT IS HAPPENING HERE:
Each stream route registers its `EmissionLoop` on connect and removes it on
disconnect. The registry never drives the loops. They are independent and only
share the `ControlState`. It just counts what went over the wire so an operator
can see how many clients are attached and what they received.
"""
from datetime import datetime, timezone
from typing import Dict

from loguru import logger

from tickstream.server.control import ControlState
from tickstream.server.emitter import EmissionLoop
from tickstream.shared.models import ConnectionStats

class ConnectionManager:
    def __init__(self, control: ControlState):
        self.control = control
        self.active_streams: Dict[str, EmissionLoop] = {}

        # Totals survive disconnects, per-loop counters do not.
        self.total_events_dispatched = 0
        self.total_heartbeats = 0
        self.startup_time = datetime.now(timezone.utc)

    def register(self, loop: EmissionLoop) -> None:
        self.active_streams[loop.client_id] = loop
        logger.info(f"client_id={loop.client_id} protocol=sse event=connect reason=subscribed")

    def unregister(self, loop: EmissionLoop) -> None:
        if self.active_streams.get(loop.client_id) is loop:
            del self.active_streams[loop.client_id]
        self.total_events_dispatched += loop.events_sent
        self.total_heartbeats += loop.heartbeats_sent
        logger.info(
            f"client_id={loop.client_id} protocol=sse event=disconnect reason=cleanup "
            f"state={loop.state.value} events={loop.events_sent}"
        )

    def get_stats(self) -> ConnectionStats:
        live = list(self.active_streams.values())
        return ConnectionStats(
            active_streams=len(live),
            sending=self.control.sending,
            terminating=self.control.terminating,
            total_events_dispatched=self.total_events_dispatched + sum(l.events_sent for l in live),
            total_heartbeats=self.total_heartbeats + sum(l.heartbeats_sent for l in live),
            uptime_s=(datetime.now(timezone.utc) - self.startup_time).total_seconds(),
            server_time=datetime.now(timezone.utc)
        )
