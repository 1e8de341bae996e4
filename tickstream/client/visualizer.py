"""
MODULE OVERVIEW:
The Rich Terminal Dashboard.

WHAT IS HAPPENING HERE:
It runs the client loop in the background and redraws a Layout on a timer.
The client's hooks only append to small deques; drawing happens on the UI side.
"""

from rich.live import Live
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from collections import deque
from datetime import datetime
import asyncio

from tickstream.client.base_client import ClientState
from tickstream.client.sse_client import SSEClient
from tickstream.shared.models import StreamEvent

STATE_COLORS = {
    ClientState.STREAMING: "green",
    ClientState.CONNECTING: "yellow",
    ClientState.RECONNECT_WAIT: "yellow",
    ClientState.DONE: "red",
}

class Visualizer:
    def __init__(self, client: SSEClient):
        self.client = client
        self.recent_events = deque(maxlen=10)
        self.status = ClientState.CONNECTING
        self.timeline = deque(maxlen=5)

    def on_status_change(self, status: ClientState):
        self.status = status
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] State: {status.value}")

    def on_event(self, event: StreamEvent):
        ts = datetime.now().strftime("%H:%M:%S")
        data = event.data or ""
        data_str = data[:40] + "..." if len(data) > 40 else data
        self.recent_events.appendleft((ts, event.type or "message", event.id or "-", data_str))

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline")
        )

        color = STATE_COLORS.get(self.status, "red")
        layout["header"].update(Panel(f"[{color} bold]Stream: {self.client.url} | Status: {self.status.value}[/]", style=color))

        table = Table(title="Live Event Feed", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Id", style="blue")
        table.add_column("Data", style="green")

        for e in self.recent_events:
            table.add_row(*e)

        layout["left"].update(Panel(table, title="Feed"))

        stats_text = (
            f"Events Received: {self.client.events_received}\n"
            f"Reconnects: {self.client.reconnect_count}\n"
            f"Callback Errors: {self.client.callback_errors}\n"
            f"Last Event ID: {self.client.last_event_id or '-'}"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))

        timeline_text = "\n".join(self.timeline)
        layout["timeline"].update(Panel(timeline_text, title="Timeline"))

        return layout

    async def run(self):
        self.client.set_callbacks(self.on_event, self.on_status_change)

        client_task = asyncio.create_task(self.client.run())

        with Live(self.generate_layout(), refresh_per_second=4) as live:
            while not client_task.done():
                live.update(self.generate_layout())
                await asyncio.sleep(0.25)
            live.update(self.generate_layout())
        await client_task
