import asyncio
from enum import Enum
from typing import Awaitable, Callable
from loguru import logger
from datetime import datetime, timezone

class StreamOutcome(str, Enum):
    """How one connection attempt ended."""
    RETRY = "retry"  # transient: disconnect, EOF, timeout, non-200 status
    STOP = "stop"    # terminal: shutdown event received or client closed

def make_client_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    Every client calls this once in __init__.
    Keys: events_received, callback_errors, reconnect_count,
          last_event_at, connected_at.
    """
    return {
        "events_received": 0,
        "callback_errors": 0,
        "reconnect_count": 0,
        "last_event_at": None,
        "connected_at": None,
    }

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

async def with_reconnect(
    connect_fn: Callable[[], Awaitable[StreamOutcome]],
    is_active: Callable[[], bool],
    stats: dict,
    delay_s: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_wait: Callable[[], Awaitable[None]] | None = None,
    protocol: str = "unknown",
    client_id: str = "unknown",
) -> None:
    """
    Runs `connect_fn` until it reports STOP or the client is closed.

    Between attempts it waits a fixed `delay_s`. The active flag is checked
    before and after the wait, so a close() during the wait ends the loop
    without another connection attempt.
    """
    while True:
        outcome = await connect_fn()
        if outcome is StreamOutcome.STOP or not is_active():
            break

        if on_wait is not None:
            await on_wait()
        logger.info(
            f"Protocol {protocol} Client {client_id} reconnecting in {delay_s:.1f}s"
        )
        await sleep(delay_s)
        if not is_active():
            break
        stats["reconnect_count"] += 1
