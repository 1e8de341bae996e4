"""
MODULE OVERVIEW:
HTTP equivalent of the stdin control console.

WHAT IS HAPPENING HERE:
`start` and `stop` flip the sending flag for every open stream at once.
`shutdown` raises the terminating flag right away and schedules the server stop
after the grace window, so the response still reaches the operator.
"""
import asyncio
from fastapi import APIRouter, HTTPException, Request

from tickstream.server.control import InvalidControlCommand, apply_command
from tickstream.shared.models import ControlResult

router = APIRouter()

# Pending delayed stops, referenced so they are not garbage collected mid-sleep.
background_tasks = set()

@router.post("/control/{command}", response_model=ControlResult)
async def control_endpoint(command: str, request: Request):
    control = request.app.state.control
    shutdown = request.app.state.shutdown

    try:
        if command.strip().lower() == "shutdown":
            if shutdown.begin():
                task = asyncio.create_task(shutdown.finish_after_grace())
                background_tasks.add(task)
                task.add_done_callback(background_tasks.discard)
            applied = "shutdown"
        else:
            applied = apply_command(control, command)
    except InvalidControlCommand as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ControlResult(command=applied, **control.snapshot())
