"""
MODULE OVERVIEW:
The operator's levers: the shared control flags, the stdin console and the
two-phase graceful shutdown.

WHAT IS HAPPENING HERE:
Every open stream reads the same `ControlState` on every tick. The flags are
written from a different thread (the console) or from the control route, so each
one is a `threading.Event`: a single boolean with safe cross-thread visibility.
No lock spans both flags because no rule depends on them together.

Shutdown happens in this order:
  1. `terminating` is set, every stream writes its farewell frame on its next tick;
  2. we wait a grace window of at least one tick;
  3. only then the HTTP server is told to exit.
Skipping step 2 cuts the farewell frames off mid-write.
"""
import asyncio
import sys
import threading
import time
from typing import Callable, TextIO

from loguru import logger

CONTROL_COMMANDS = ("start", "stop", "shutdown")


class InvalidControlCommand(ValueError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(
            f"Unknown command: {command!r} (allowed: {' | '.join(CONTROL_COMMANDS)})"
        )


class ControlState:
    def __init__(self):
        self._sending = threading.Event()
        self._terminating = threading.Event()

    @property
    def sending(self) -> bool:
        return self._sending.is_set()

    @property
    def terminating(self) -> bool:
        return self._terminating.is_set()

    def start(self) -> None:
        self._sending.set()
        logger.info("Event emission started by operator")

    def stop(self) -> None:
        self._sending.clear()
        logger.info("Event emission stopped by operator")

    def request_shutdown(self) -> None:
        # One-way: nothing clears this flag again.
        self._terminating.set()
        logger.info("Shutdown requested, open streams will send their farewell event")

    def snapshot(self) -> dict:
        return {"sending": self.sending, "terminating": self.terminating}


def apply_command(control: ControlState, raw: str) -> str:
    """Apply one operator command and return its normalized name."""
    command = raw.strip().lower()
    if command == "start":
        control.start()
    elif command == "stop":
        control.stop()
    elif command == "shutdown":
        control.request_shutdown()
    else:
        raise InvalidControlCommand(command)
    return command


class GracefulShutdown:
    def __init__(
        self,
        control: ControlState,
        grace_s: float,
        stop_server: Callable[[], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.control = control
        self.grace_s = grace_s
        self.stop_server = stop_server
        self._sleep = sleep
        self._triggered = threading.Event()

    @property
    def triggered(self) -> bool:
        return self._triggered.is_set()

    def begin(self) -> bool:
        """Phase one: raise the terminating flag. False if already under way."""
        if self._triggered.is_set():
            logger.debug("Shutdown already in progress")
            return False
        self._triggered.set()
        self.control.request_shutdown()
        return True

    def finish(self) -> None:
        """Phase two: stop the server. Only call once the grace window is over."""
        if self.stop_server is None:
            logger.warning("No server handle attached, only the terminating flag was set")
            return
        logger.info("Grace period over, stopping the HTTP server")
        self.stop_server()

    def run(self) -> None:
        """Blocking variant, used from the console thread."""
        if not self.begin():
            return
        self._sleep(self.grace_s)
        self.finish()

    async def finish_after_grace(self) -> None:
        """Event-loop variant of the second phase, used by the control route."""
        await asyncio.sleep(self.grace_s)
        self.finish()


class ControlConsole:
    """Reads `start | stop | shutdown` lines from a text stream on a daemon thread."""

    def __init__(self, control: ControlState, shutdown: GracefulShutdown, stream: TextIO | None = None):
        self.control = control
        self.shutdown = shutdown
        self.stream = stream if stream is not None else sys.stdin
        self._thread: threading.Thread | None = None

    def dispatch(self, line: str) -> str | None:
        """Handle one console line. Returns the applied command, or None."""
        if not line.strip():
            return None
        try:
            command = line.strip().lower()
            if command == "shutdown":
                self.shutdown.run()
                return command
            return apply_command(self.control, command)
        except InvalidControlCommand as e:
            logger.info(str(e))
            return None

    def run(self) -> None:
        try:
            for line in self.stream:
                if self.dispatch(line) == "shutdown":
                    break
        except (OSError, ValueError) as e:
            logger.warning(f"Control console stopped: {e}")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="control-console", daemon=True)
        self._thread.start()
        logger.info(f"Control console ready (commands: {' | '.join(CONTROL_COMMANDS)})")
        return self._thread
