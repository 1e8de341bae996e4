from abc import ABC, abstractmethod
import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable
from loguru import logger
from tickstream.shared.models import StreamEvent
from tickstream.shared.client_utils import StreamOutcome, make_client_stats, utc_now_iso, with_reconnect

class ClientState(str, Enum):
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    RECONNECT_WAIT = "RECONNECT_WAIT"
    DONE = "DONE"

# Callbacks may be plain functions or coroutines.
EventCallback = Callable[[StreamEvent], Any]
StatusCallback = Callable[[ClientState], Any]

async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result

class BaseConnectionClient(ABC):
    protocol_name: str = "unknown"

    def __init__(
        self,
        client_id: str,
        reconnect_delay_s: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client_id = client_id
        self.reconnect_delay_s = reconnect_delay_s
        self._sleep = sleep

        self.on_event_callback: EventCallback | None = None
        self.on_status_change_callback: StatusCallback | None = None

        self.stats = make_client_stats()
        self.state = ClientState.CONNECTING
        # Only ever cleared: by close() or by a shutdown event.
        self.active = True

    @property
    def events_received(self): return self.stats["events_received"]

    @property
    def reconnect_count(self): return self.stats["reconnect_count"]

    @property
    def callback_errors(self): return self.stats["callback_errors"]

    def set_callbacks(self, on_event, on_status_change):
        self.on_event_callback = on_event
        self.on_status_change_callback = on_status_change

    async def _set_state(self, state: ClientState):
        self.state = state
        if self.on_status_change_callback:
            await _maybe_await(self.on_status_change_callback(state))

    async def deliver(self, event: StreamEvent) -> None:
        """Hand one event to the application. A failing callback is logged, never raised."""
        self.stats["events_received"] += 1
        self.stats["last_event_at"] = utc_now_iso()
        if not self.on_event_callback:
            return
        try:
            await _maybe_await(self.on_event_callback(event))
        except Exception as e:
            self.stats["callback_errors"] += 1
            logger.warning(f"Client {self.client_id} event callback raised {type(e).__name__}: {e}")

    def close(self) -> None:
        """Stop reconnecting. Safe from any task or thread; never interrupts a read."""
        self.active = False

    @abstractmethod
    async def connect_once(self) -> StreamOutcome:
        """One connection attempt, from request to end of stream."""

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    async def run(self) -> None:
        try:
            await with_reconnect(
                self.connect_once,
                lambda: self.active,
                self.stats,
                self.reconnect_delay_s,
                sleep=self._sleep,
                on_wait=lambda: self._set_state(ClientState.RECONNECT_WAIT),
                protocol=self.protocol_name,
                client_id=self.client_id,
            )
        finally:
            self.active = False
            await self.disconnect()
            await self._set_state(ClientState.DONE)
