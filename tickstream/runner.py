"""
CLI entrypoint for tickstream.
"""
import sys
import typer
import asyncio
import httpx
from loguru import logger

from tickstream.shared.config import settings
from tickstream.shared.models import StreamEvent

app = typer.Typer(help="tickstream: event stream server, client and operator tools")

def configure_logging(level: str | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper())

def format_event(event: StreamEvent) -> str:
    if event.id is not None:
        return f"[{event.type}] id={event.id} data={event.data}"
    return f"[{event.type}] data={event.data}"

def _base_url(url: str | None) -> str:
    return (url or f"http://127.0.0.1:{settings.PORT}").rstrip("/")

@app.command()
def server(
    host: str = typer.Option(settings.HOST, help="Bind address"),
    port: int = typer.Option(settings.PORT, help="Bind port"),
    console: bool = typer.Option(True, "--console/--no-console", help="Read start | stop | shutdown from stdin"),
):
    """Start the event stream server under uvicorn."""
    import uvicorn
    from tickstream.server.control import ControlConsole
    from tickstream.server.main import create_app

    configure_logging()
    web_app = create_app()
    uv_server = uvicorn.Server(uvicorn.Config(web_app, host=host, port=port, log_level=settings.LOG_LEVEL.lower()))

    def stop_server():
        uv_server.should_exit = True

    web_app.state.shutdown.stop_server = stop_server
    if console:
        ControlConsole(web_app.state.control, web_app.state.shutdown).start()

    typer.echo(f"Event stream on http://localhost:{port}{settings.SSE_PATH}")
    uv_server.run()

@app.command()
def client(
    url: str = typer.Option(settings.default_stream_url, help="Stream endpoint"),
    plain: bool = typer.Option(False, "--plain", help="Print one line per event instead of the dashboard"),
):
    """Consume a stream until the server says shutdown."""
    from tickstream.client.sse_client import SSEClient
    from tickstream.client.visualizer import Visualizer

    # The dashboard owns the terminal, so keep log output to warnings there.
    configure_logging(None if plain else "WARNING")
    if plain:
        runner = SSEClient(url, on_event=lambda ev: typer.echo(format_event(ev))).run()
    else:
        runner = Visualizer(SSEClient(url)).run()

    try:
        asyncio.run(runner)
    except KeyboardInterrupt:
        pass

@app.command()
def control(
    command: str = typer.Argument(..., help="start | stop | shutdown"),
    url: str | None = typer.Option(None, help="Server base URL"),
):
    """Send a control command to a running server."""
    resp = httpx.post(f"{_base_url(url)}/control/{command}")
    if resp.status_code != 200:
        typer.echo(resp.json().get("detail", resp.text))
        raise typer.Exit(1)
    typer.echo(resp.json())

@app.command()
def stats(url: str | None = typer.Option(None, help="Server base URL")):
    """Query the server for live connection stats."""
    resp = httpx.get(f"{_base_url(url)}/stats")
    typer.echo(resp.json())

if __name__ == "__main__":
    app()
