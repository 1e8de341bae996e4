"""
MODULE OVERVIEW:
The FastAPI application factory.

WHAT IS HAPPENING HERE:
`create_app()` owns the one `ControlState` of this server and hands it to every
stream through `app.state`. There are no module-level flags: two apps in the
same process (as in the tests) never see each other's start/stop.

The runner attaches `stop_server` once uvicorn exists, so the shutdown command
can end the process after the grace window.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Callable
from loguru import logger

from tickstream.server.connection_manager import ConnectionManager
from tickstream.server.control import ControlState, GracefulShutdown
from tickstream.server.middleware import TimingMiddleware
from tickstream.server.routes import control, sse
from tickstream.shared.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    # STARTUP
    logger.info(f"tickstream server ready, stream path {settings.SSE_PATH}")

    yield

    # SHUTDOWN
    for task in list(control.background_tasks):
        task.cancel()
    stats = app.state.manager.get_stats()
    logger.info(
        f"Shutdown complete. events={stats.total_events_dispatched} "
        f"heartbeats={stats.total_heartbeats} open_streams={stats.active_streams}"
    )


def create_app(
    control_state: ControlState | None = None,
    tick_interval_s: float | None = None,
    shutdown_grace_s: float | None = None,
    stop_server: Callable[[], None] | None = None,
) -> FastAPI:
    control_state = control_state or ControlState()

    app = FastAPI(
        title="tickstream",
        description="Push-based text event stream with operator control",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.control = control_state
    app.state.manager = ConnectionManager(control_state)
    app.state.tick_interval_s = settings.TICK_INTERVAL_S if tick_interval_s is None else tick_interval_s
    app.state.shutdown = GracefulShutdown(
        control_state,
        settings.SHUTDOWN_GRACE_S if shutdown_grace_s is None else shutdown_grace_s,
        stop_server,
    )

    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sse.router, tags=["Stream"])
    app.include_router(control.router, tags=["Control"])

    @app.get("/healthz", tags=["Ops"])
    async def health_check():
        return {"status": "ok"}

    @app.get("/stats", tags=["Ops"])
    async def get_stats():
        return app.state.manager.get_stats()

    return app
