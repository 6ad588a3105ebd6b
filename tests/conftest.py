"""Shared test fixtures for orbitsw.

Provides a scriptable fake origin behind :class:`httpx.MockTransport`, a
factory for workers whose stores live under ``tmp_path``, a controllable
clock, recording page contexts, and config isolation. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest

from orbitsw.models import GlobalConfig
from orbitsw.output import reset_output
from orbitsw.worker import ServiceWorker, create_worker


ORIGIN = "https://devorbit.test"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake origin
# ---------------------------------------------------------------------------


class FakeOrigin:
    """A scriptable origin server.

    Routes are keyed by ``(METHOD, path)``. Unknown routes answer 404.
    While :attr:`online` is ``False`` every request fails with
    :class:`httpx.ConnectError`, the way a dropped connection would.
    """

    def __init__(self) -> None:
        self.online = True
        self.routes: dict[tuple[str, str], Reply] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, reply: Reply) -> None:
        self.routes[(method.upper(), path)] = reply

    def json(self, method: str, path: str, data: Any, status_code: int = 200) -> None:
        self.route(method, path, httpx.Response(status_code, json=data))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("Network is unreachable", request=request)
        self.requests.append(request)
        reply = self.routes.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(reply):
            return reply(request)
        return httpx.Response(
            reply.status_code,
            headers=reply.headers,
            content=reply.content,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def origin() -> FakeOrigin:
    """An origin serving the three shell assets."""
    fake = FakeOrigin()
    fake.route("GET", "/", httpx.Response(200, html="<html>shell</html>"))
    fake.route("GET", "/index.html", httpx.Response(200, html="<html>shell</html>"))
    fake.json("GET", "/manifest.json", {"name": "DevOrbit"})
    return fake


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """A clock returning :attr:`now` (seconds since the epoch)."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Page contexts
# ---------------------------------------------------------------------------


class RecordingClient:
    """A page context that remembers every message the worker posts."""

    def __init__(self, client_id: str = "page-1") -> None:
        self.id = client_id
        self.messages: list[dict[str, Any]] = []

    def post_message(self, message: dict[str, Any]) -> None:
        self.messages.append(message)


@pytest.fixture
def page() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def make_page() -> Callable[[str], RecordingClient]:
    return RecordingClient


# ---------------------------------------------------------------------------
# Workers
# ---------------------------------------------------------------------------


@pytest.fixture
def make_worker(
    tmp_path: Path,
    origin: FakeOrigin,
    clock: FakeClock,
) -> Callable[..., ServiceWorker]:
    """Factory for workers talking to :func:`origin` with stores under tmp_path.

    Keyword arguments are forwarded to :func:`~orbitsw.worker.create_worker`.
    Every worker built is closed after the test.
    """
    built: list[ServiceWorker] = []

    def _make(config: GlobalConfig | None = None, **kwargs: Any) -> ServiceWorker:
        kwargs.setdefault("transport", origin.transport())
        kwargs.setdefault("clock", clock)
        worker = create_worker(
            config or GlobalConfig(origin=ORIGIN),
            cache_root=tmp_path / "cache",
            queue_root=tmp_path / "data",
            **kwargs,
        )
        built.append(worker)
        return worker

    yield _make

    for worker in built:
        asyncio.run(worker.aclose())


@pytest.fixture
def worker(make_worker: Callable[..., ServiceWorker]) -> ServiceWorker:
    """A worker with the default config, not yet installed."""
    return make_worker()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces XDG path resolution, points XDG_CONFIG_HOME, XDG_CACHE_HOME, and
    XDG_DATA_HOME at subdirectories of tmp_path, clears ORBITSW_*
    environment variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("orbitsw.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["ORBITSW_ORIGIN", "ORBITSW_CACHE_VERSION"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
