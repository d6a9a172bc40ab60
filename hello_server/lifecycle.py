"""
Process lifecycle for the hello server.

ServerProcess owns the listening socket and the uvicorn server that serves
the application on it, and runs the shutdown state machine:

    RUNNING --SIGINT/SIGTERM--> CLOSING --close completes--> EXITED (0)
                                        --grace timeout----> EXITED (1)

Both signals take the same path. The exit code is produced only once the
close has completed or the grace timeout has elapsed, whichever is first.
A signal received after CLOSING has been entered is logged and ignored.
"""
import asyncio
import contextlib
import logging
import signal
import socket
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import uvicorn
from fastapi import FastAPI

from hello_server.config import Settings

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownState(str, Enum):
    RUNNING = "running"
    CLOSING = "closing"
    EXITED = "exited"


# None is the state before the listener is bound
TRANSITIONS = {
    None: {ShutdownState.RUNNING, ShutdownState.EXITED},
    ShutdownState.RUNNING: {ShutdownState.CLOSING, ShutdownState.EXITED},
    ShutdownState.CLOSING: {ShutdownState.EXITED},
    ShutdownState.EXITED: set(),
}


class ListenerBindError(OSError):
    """The listener could not acquire the requested address."""

    def __init__(self, host: str, port: int, reason: OSError):
        super().__init__(f"Could not bind to {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


@contextlib.contextmanager
def open_listener(host: str, port: int) -> Iterator[socket.socket]:
    """Bind a TCP socket on host:port and close it on every exit path."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family=family, type=socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerBindError(host, port, exc) from exc
    try:
        yield sock
    finally:
        sock.close()


def format_address(host: str, port: int) -> str:
    if ":" in host:
        return f"http://[{host}]:{port}"
    return f"http://{host}:{port}"


class ListenerServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to ServerProcess."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    async def startup(self, sockets: Optional[List[socket.socket]] = None) -> None:
        try:
            await super().startup(sockets=sockets)
        except SystemExit:
            # Newer uvicorn exits the process when application startup fails
            if not self.lifespan.should_exit:
                raise
            self.should_exit = True
            return
        if self.should_exit:
            return
        for sock in sockets or []:
            host, port = sock.getsockname()[:2]
            logger.info("Listening on %s", format_address(host, port))


class ServerProcess:
    """
    Top-level runtime of the server.

    Usage:
        process = ServerProcess(app, Settings.from_env())
        exit_code = asyncio.run(process.run())
    """

    def __init__(self, app: FastAPI, settings: Settings):
        self.app = app
        self.settings = settings
        self.server = ListenerServer(
            uvicorn.Config(
                app,
                host=settings.host,
                port=settings.port,
                log_config=None,
                access_log=settings.access_log,
                lifespan="on",
            )
        )
        self.state: Optional[ShutdownState] = None
        self.address: Optional[Tuple[str, int]] = None
        self.forced = False
        self._exit_code: Optional[int] = None
        self._stop_requested: Optional[asyncio.Event] = None
        self._serve_task: Optional[asyncio.Task] = None

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    async def run(self) -> int:
        """Bind, serve until a termination signal, close, and return the exit code."""
        try:
            with open_listener(self.settings.host, self.settings.port) as sock:
                return await self._serve(sock)
        except ListenerBindError as exc:
            logger.error("%s", exc)
            return self._exit(1)

    def handle_signal(self, sig: int) -> None:
        """Start closing on the first termination signal, ignore any later one."""
        name = signal.Signals(sig).name
        if self.state is not ShutdownState.RUNNING:
            current = self.state.value if self.state else "starting"
            logger.warning("Got %s while %s, ignoring", name, current)
            return
        logger.info("Got %s", name)
        self._transition(ShutdownState.CLOSING)
        # uvicorn stops accepting connections and drains in-flight requests
        self.server.should_exit = True
        self._stop_requested.set()

    async def _serve(self, sock: socket.socket) -> int:
        loop = asyncio.get_running_loop()
        host, port = sock.getsockname()[:2]
        self.address = (host, port)
        self._stop_requested = asyncio.Event()
        self._transition(ShutdownState.RUNNING)
        logger.debug("Bound to %s", format_address(host, port))

        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self.handle_signal, sig)
        try:
            self._serve_task = asyncio.ensure_future(self.server.serve(sockets=[sock]))
            stop_wait = asyncio.ensure_future(self._stop_requested.wait())
            await asyncio.wait(
                {self._serve_task, stop_wait}, return_when=asyncio.FIRST_COMPLETED
            )
            if self._stop_requested.is_set():
                return await self._close()

            # uvicorn only returns on its own when application startup failed
            stop_wait.cancel()
            self._serve_task.result()
            logger.error("Server stopped without a termination signal")
            return self._exit(1)
        finally:
            for sig in HANDLED_SIGNALS:
                loop.remove_signal_handler(sig)

    async def _close(self) -> int:
        timeout = self.settings.shutdown_timeout
        done, _ = await asyncio.wait({self._serve_task}, timeout=timeout)
        if not done:
            self.forced = True
            self.server.force_exit = True
            self._serve_task.cancel()
            logger.error("Server did not close within %.1f seconds, forcing exit", timeout)
            return self._exit(1)

        self._serve_task.result()
        logger.info("Server closed")
        return self._exit(0)

    def _transition(self, new_state: ShutdownState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            current = self.state.value if self.state else "starting"
            raise RuntimeError(f"Illegal shutdown transition {current} -> {new_state.value}")
        self.state = new_state

    def _exit(self, code: int) -> int:
        if self._exit_code is not None:
            raise RuntimeError(f"Exit code already set to {self._exit_code}")
        self._transition(ShutdownState.EXITED)
        self._exit_code = code
        return code
