"""Tests for the per-connection emission loop."""

import pytest

from tickstream.server.connection_manager import ConnectionManager
from tickstream.server.emitter import EmissionLoop, EmissionState
from tickstream.shared.codec import HEARTBEAT_FRAME, parse_lines


def make_loop(control, client_id="client-test"):
    return EmissionLoop(control, client_id, tick_interval_s=1.0, clock=lambda: 1700000000.123)


def decode(frame):
    return parse_lines(frame.split("\n"))


def test_starts_silent_with_heartbeats(control):
    loop = make_loop(control)
    assert loop.step() == HEARTBEAT_FRAME
    assert loop.state is EmissionState.HEARTBEAT
    assert loop.last_id == 0


def test_sending_emits_tick_with_timestamp_payload(control):
    control.start()
    loop = make_loop(control)

    [event] = decode(loop.step())

    assert event.type == "tick"
    assert event.id == "1"
    assert event.data == "tick @1700000000123"
    assert loop.state is EmissionState.SENDING


def test_toggling_sending_across_ticks_only_advances_id_on_events(control):
    loop = make_loop(control)

    first = loop.step()
    control.start()
    second = loop.step()
    control.stop()
    third = loop.step()

    assert first == HEARTBEAT_FRAME
    assert [e.id for e in decode(second)] == ["1"]
    assert third == HEARTBEAT_FRAME

    control.start()
    assert decode(loop.step())[0].id == "2"


def test_terminating_emits_farewell_with_next_id_and_closes(control):
    control.start()
    loop = make_loop(control)
    loop.step()
    loop.step()

    control.request_shutdown()
    [farewell] = decode(loop.step())

    assert farewell.type == "shutdown"
    assert farewell.id == "3"
    assert farewell.data == "server shutting down"
    assert loop.state is EmissionState.CLOSED
    with pytest.raises(RuntimeError):
        loop.step()


def test_terminating_wins_over_sending(control):
    control.start()
    control.request_shutdown()
    loop = make_loop(control)

    [farewell] = decode(loop.step())

    assert farewell.type == "shutdown"
    assert farewell.id == "1"


def test_ids_are_connection_local(control):
    control.start()
    a = make_loop(control, "a")
    b = make_loop(control, "b")
    a.step()
    a.step()

    assert decode(b.step())[0].id == "1"
    assert a.last_id == 2


@pytest.mark.asyncio
async def test_frames_sleep_between_ticks_and_stop_after_farewell(control):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)
        if len(sleeps) == 1:
            control.start()
        elif len(sleeps) == 2:
            control.request_shutdown()

    loop = EmissionLoop(control, "c", tick_interval_s=1.0, sleep=fake_sleep)
    frames = [frame async for frame in loop.frames()]

    assert frames[0] == HEARTBEAT_FRAME
    assert decode(frames[1])[0].type == "tick"
    assert decode(frames[2])[0].type == "shutdown"
    assert len(frames) == 3
    # no sleep after the farewell
    assert sleeps == [1.0, 1.0]


def test_manager_tracks_streams_and_totals(control):
    manager = ConnectionManager(control)
    loop = make_loop(control, "x")
    manager.register(loop)
    loop.step()
    control.start()
    loop.step()

    live = manager.get_stats()
    assert live.active_streams == 1
    assert live.total_events_dispatched == 1
    assert live.total_heartbeats == 1
    assert live.sending is True

    manager.unregister(loop)
    after = manager.get_stats()
    assert after.active_streams == 0
    assert after.total_events_dispatched == 1
    assert after.total_heartbeats == 1
