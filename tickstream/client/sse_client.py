"""
MODULE OVERVIEW:
The reconnecting event stream consumer.

WHAT IS HAPPENING HERE:
We use HTTPX `stream()` to keep the body open and read it line by line into a
`FrameParser`. Each connection attempt ends in one of two outcomes:

  RETRY  the stream dropped, hit EOF, timed out or got a non-200 answer;
         wait the fixed delay and connect again with Last-Event-ID set;
  STOP   a `shutdown` event arrived (or close() was called); never reconnect.

The id of every delivered event is remembered before the callback runs, so a
callback that raises cannot make us resume from a stale position.
"""
import asyncio
import httpx
from typing import Awaitable, Callable
from loguru import logger

from tickstream.client.base_client import BaseConnectionClient, ClientState, EventCallback
from tickstream.shared.client_utils import StreamOutcome, utc_now_iso
from tickstream.shared.codec import FrameParser
from tickstream.shared.config import settings
from tickstream.shared.models import StreamEvent

class SSEClient(BaseConnectionClient):
    protocol_name: str = "sse"

    def __init__(
        self,
        url: str | None = None,
        on_event: EventCallback | None = None,
        reconnect_delay_s: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        client_id: str = "sse-client",
    ):
        super().__init__(
            client_id,
            settings.RECONNECT_DELAY_S if reconnect_delay_s is None else reconnect_delay_s,
            sleep,
        )
        self.url = url or settings.default_stream_url
        self.on_event_callback = on_event
        self.last_event_id: str | None = None

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.READ_TIMEOUT_S, connect=settings.CONNECT_TIMEOUT_S)
        )

    def request_headers(self) -> dict:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self.last_event_id is not None:
            headers["Last-Event-ID"] = self.last_event_id
        return headers

    async def disconnect(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def handle_event(self, event: StreamEvent) -> StreamOutcome | None:
        if event.id is not None:
            self.last_event_id = event.id
        await self.deliver(event)
        if event.is_shutdown:
            self.active = False
            logger.info(f"Client {self.client_id} received shutdown event, not reconnecting")
            return StreamOutcome.STOP
        return None

    async def connect_once(self) -> StreamOutcome:
        if not self.active:
            return StreamOutcome.STOP

        await self._set_state(ClientState.CONNECTING)
        parser = FrameParser()
        try:
            async with self.client.stream("GET", self.url, headers=self.request_headers()) as response:
                if response.status_code != 200:
                    logger.warning(f"Unexpected status {response.status_code} from {self.url}")
                    return StreamOutcome.RETRY

                self.stats["connected_at"] = utc_now_iso()
                await self._set_state(ClientState.STREAMING)

                async for line in response.aiter_lines():
                    event = parser.feed(line)
                    if event is None:
                        continue
                    if await self.handle_event(event) is StreamOutcome.STOP:
                        return StreamOutcome.STOP
        except (httpx.RequestError, httpx.StreamError) as e:
            logger.info(f"Client {self.client_id} stream closed ({type(e).__name__}), reconnect follows")
            return StreamOutcome.RETRY
        finally:
            # A frame cut off by the disconnect is dropped, not delivered.
            parser.reset()

        logger.info(f"Client {self.client_id} stream ended without shutdown event")
        return StreamOutcome.RETRY
