"""
Shared pytest fixtures for all tests.
"""
import pytest
import sse_starlette.sse as sse_module
from fastapi.testclient import TestClient

from tickstream.server.control import ControlState
from tickstream.server.main import create_app


@pytest.fixture(autouse=True)
def reset_sse_exit_event():
    """sse-starlette keeps a process-wide exit event bound to the first loop that used it."""
    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None:
        app_status.should_exit_event = None
    yield
    if app_status is not None:
        app_status.should_exit_event = None


@pytest.fixture
def control() -> ControlState:
    return ControlState()


@pytest.fixture
def stop_calls() -> list:
    return []


@pytest.fixture
def app(control, stop_calls):
    """App with an instant tick and no grace window."""
    return create_app(
        control_state=control,
        tick_interval_s=0,
        shutdown_grace_s=0,
        stop_server=lambda: stop_calls.append("stop"),
    )


@pytest.fixture
def http(app):
    with TestClient(app) as client:
        yield client
