"""Tests for the CLI helpers and the dashboard hooks."""

from rich.layout import Layout
from typer.testing import CliRunner

from tickstream.client.base_client import ClientState
from tickstream.client.sse_client import SSEClient
from tickstream.client.visualizer import Visualizer
from tickstream.runner import app, format_event
from tickstream.shared.models import StreamEvent


def test_format_event_with_and_without_id():
    assert format_event(StreamEvent(type="tick", id="4", data="tick @1")) == "[tick] id=4 data=tick @1"
    assert format_event(StreamEvent(type="note", data="x")) == "[note] data=x"


def test_visualizer_records_events_and_states():
    viz = Visualizer(SSEClient("http://testserver/sse"))

    viz.on_status_change(ClientState.STREAMING)
    viz.on_event(StreamEvent(type="tick", id="1", data="y" * 60))
    viz.on_event(StreamEvent(data="bare"))

    assert viz.status is ClientState.STREAMING
    latest, first = viz.recent_events
    assert latest[1:] == ("message", "-", "bare")
    assert first[1:3] == ("tick", "1")
    assert first[3].endswith("...")
    assert "STREAMING" in viz.timeline[0]
    assert isinstance(viz.generate_layout(), Layout)


def test_cli_lists_commands():
    result = CliRunner().invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("server", "client", "control", "stats"):
        assert command in result.output
