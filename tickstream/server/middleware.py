"""
MODULE OVERVIEW:
FastAPI middleware to time requests.

WHAT IS HAPPENING HERE:
We add an `X-Process-Time-Ms` header to every response. For the event stream
this measures the time until the headers went out, not the lifetime of the
stream, so stream requests are kept out of the debug log.
"""

import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger

from tickstream.shared.config import settings

class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Process-Time-Ms"] = f"{process_time_ms:.2f}"

        if request.url.path != settings.SSE_PATH:
            logger.debug(f"{request.method} {request.url.path} -> {response.status_code} in {process_time_ms:.2f}ms")

        return response
