"""
MODULE OVERVIEW:
The event stream route.

WHAT IS HAPPENING HERE:
Every GET gets its own `EmissionLoop`. sse-starlette holds the response open and
sends each frame we yield as its own body chunk, so a frame is flushed as soon
as it is produced. We hand it pre-encoded bytes because the framing is ours, not
the library's.

When the client goes away the response task group cancels our generator. That
ends this stream only; the other loops never notice.
"""
import asyncio
from fastapi import APIRouter, Header, Query, Request, Response
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from tickstream.server.emitter import EmissionLoop
from tickstream.shared.config import settings
from tickstream.shared.route_utils import extract_client_id, log_connection

router = APIRouter()

NON_GET_METHODS = ["POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE"]

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

@router.get(settings.SSE_PATH)
async def sse_endpoint(
    request: Request,
    client_id: str | None = Query(None),
    last_event_id: str | None = Header(None),
):
    cid = await extract_client_id(client_id)
    # The resume hint is only logged: ids restart at 1 for every connection.
    await log_connection("sse:connect", cid, {"last_event_id": last_event_id})

    manager = request.app.state.manager
    loop = EmissionLoop(request.app.state.control, cid, request.app.state.tick_interval_s)

    async def frame_publisher():
        manager.register(loop)
        try:
            async for frame in loop.frames():
                yield frame.encode("utf-8")
        except asyncio.CancelledError:
            logger.warning(f"client_id={cid} protocol=sse event=disconnect reason=client_gone")
            raise
        finally:
            manager.unregister(loop)

    return EventSourceResponse(frame_publisher(), headers=STREAM_HEADERS)

@router.api_route(settings.SSE_PATH, methods=NON_GET_METHODS, include_in_schema=False)
async def sse_method_not_allowed():
    return Response(status_code=405)
