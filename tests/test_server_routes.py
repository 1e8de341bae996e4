"""HTTP-level tests for the stream, control and ops routes."""

import httpx
import pytest

from tickstream.client.sse_client import SSEClient
from tickstream.shared.codec import parse_lines

FAREWELL = "event: shutdown\nid: 1\ndata: server shutting down\n\n"


def test_stream_headers_and_farewell_when_terminating(http, control):
    control.request_shutdown()

    response = http.get("/sse", params={"client_id": "probe"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert "charset=utf-8" in response.headers["content-type"].lower()
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["connection"] == "keep-alive"
    assert response.text == FAREWELL


def test_resume_header_is_accepted_but_ids_restart(http, control):
    control.start()
    control.request_shutdown()

    response = http.get("/sse", headers={"Last-Event-ID": "41"})

    [event] = parse_lines(response.text.split("\n"))
    assert event.id == "1"


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE"])
def test_non_get_on_stream_is_rejected_without_body(http, method):
    response = http.request(method, "/sse")

    assert response.status_code == 405
    assert response.content == b""


def test_control_start_and_stop(http, control):
    response = http.post("/control/start")
    assert response.status_code == 200
    assert response.json() == {"command": "start", "sending": True, "terminating": False}
    assert control.sending

    response = http.post("/control/STOP")
    assert response.json()["sending"] is False


def test_unknown_control_command_is_rejected(http, control):
    response = http.post("/control/reboot")

    assert response.status_code == 400
    assert "allowed: start | stop | shutdown" in response.json()["detail"]
    assert control.snapshot() == {"sending": False, "terminating": False}


def test_control_shutdown_sets_flag_immediately(http, app, control):
    response = http.post("/control/shutdown")

    assert response.status_code == 200
    assert response.json() == {"command": "shutdown", "sending": False, "terminating": True}
    assert app.state.shutdown.triggered

    # a second shutdown is accepted but not scheduled again
    assert http.post("/control/shutdown").status_code == 200


def test_stats_reflect_finished_streams(http, control):
    control.request_shutdown()
    http.get("/sse")
    http.get("/sse")

    stats = http.get("/stats").json()

    assert stats["active_streams"] == 0
    assert stats["total_events_dispatched"] == 2
    assert stats["terminating"] is True


def test_healthz(http):
    response = http.get("/healthz")
    assert response.json() == {"status": "ok"}
    assert "x-process-time-ms" in response.headers


@pytest.mark.asyncio
async def test_client_stops_on_server_farewell(app, control):
    control.request_shutdown()
    received = []

    async def no_wait(delay):
        raise AssertionError("client must not reconnect after a shutdown event")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        client = SSEClient("http://testserver/sse", on_event=received.append, http_client=http, sleep=no_wait)
        await client.run()

    assert [(e.type, e.id) for e in received] == [("shutdown", "1")]
    assert client.last_event_id == "1"
