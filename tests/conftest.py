"""Pytest configuration and fixtures for http-exec tests.

This file provides:
- PortReservation: Race-free port allocation for test servers
- EchoServer: Subprocess management for the local echo server
- Fixtures: Shared test infrastructure (echo server, mock-transport clients)
"""

from __future__ import annotations

import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Callable, Generator

import httpx
import pytest

# Project root for subprocess cwd
PROJECT_ROOT = Path(__file__).parent.parent
ECHO_SERVER_MODULE = "tests.integration.echo_server"


def make_mock_client(
    handler: Callable[[httpx.Request], Any],
) -> httpx.AsyncClient:
    """Create an AsyncClient whose transport answers with handler.

    handler receives the outbound httpx.Request and returns an httpx.Response
    (or raises an httpx exception to simulate a transport failure). It may be
    a plain function or a coroutine function.
    """
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class PortReservation:
    """Holds a reserved port with socket kept open to prevent races.

    WHY this exists: find_free_port() has a race window - another process can
    grab the port between when we find it and when our server binds. This class
    keeps the socket open until just before the server starts, eliminating the race.

    Usage:
        reservation = PortReservation()
        # port is held exclusively until release()
        server = EchoServer(reservation)
        server.start()  # calls release() internally, then binds
    """

    def __init__(self) -> None:
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._socket.bind(("127.0.0.1", 0))  # Port 0 = OS assigns ephemeral port
        self._port = self._socket.getsockname()[1]
        self._released = False

    @property
    def port(self) -> int:
        return self._port

    def release(self) -> int:
        """Release the socket and return the port for server use.

        Safe to call multiple times - subsequent calls are no-ops.
        """
        if not self._released:
            self._socket.close()
            self._released = True
        return self._port

    def __enter__(self) -> PortReservation:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()


def find_free_port() -> int:
    """Find a port on localhost that nothing is listening on.

    Used to point requests at a closed port. Something else may bind it
    afterwards, which is acceptable for that purpose.
    """
    with PortReservation() as reservation:
        return reservation.port


def wait_for_server_ready(host: str, port: int, timeout: float = 10.0) -> bool:
    """Block until server accepts TCP connections, or timeout expires."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            with socket.create_connection((host, port), timeout=1.0):
                return True
        except (ConnectionRefusedError, socket.timeout, OSError):
            time.sleep(0.1)
    return False


class EchoServer:
    """Manages the echo server subprocess for integration tests.

    Runs tests/integration/echo_server.py, which reflects query params,
    headers and body back as JSON in the same shape as postman-echo.com.
    """

    def __init__(self, port: int | PortReservation) -> None:
        if isinstance(port, PortReservation):
            self._reservation = port
            self.port = port.port
        else:
            self._reservation = None
            self.port = port
        self.host = "127.0.0.1"
        self.base_url = f"http://{self.host}:{self.port}"
        self._process: subprocess.Popen | None = None

    def start(self) -> None:
        """Start the echo server subprocess.

        Raises:
            RuntimeError: If server fails to start within 10 seconds.
        """
        if self._reservation:
            self._reservation.release()

        self._process = subprocess.Popen(
            [
                sys.executable, "-m", ECHO_SERVER_MODULE,
                "--host", self.host,
                "--port", str(self.port),
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=PROJECT_ROOT,
        )

        if not wait_for_server_ready(self.host, self.port):
            stderr = ""
            if self._process and self._process.stderr:
                stderr = self._process.stderr.read().decode(errors="replace")
            self.stop()
            raise RuntimeError(
                f"EchoServer failed to start on port {self.port}. "
                f"stderr: {stderr or '(empty)'}"
            )

    def stop(self) -> None:
        """Stop the echo server subprocess with graceful shutdown.

        Uses SIGTERM first, then SIGKILL after 5s if process doesn't exit.
        Safe to call multiple times or if server was never started.
        """
        if self._process:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
                try:
                    self._process.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    pass  # Unkillable, nothing more we can do
            self._process = None

    def __enter__(self) -> EchoServer:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def echo_server() -> Generator[EchoServer, None, None]:
    """Start the echo server once per test session."""
    with EchoServer(PortReservation()) as server:
        yield server


@pytest.fixture
def closed_port_url() -> str:
    """URL on localhost where nothing is listening."""
    return f"http://127.0.0.1:{find_free_port()}/get"


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Automatically apply markers based on test location.

    Enables running subsets via:
        pytest -m integration  # only integration tests
        pytest -m unit         # only unit tests
    """
    for item in items:
        test_path = Path(item.fspath)
        if "integration" in test_path.parts:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
