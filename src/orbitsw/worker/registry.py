"""The worker: handler registry plus the state its handlers share.

A :class:`ServiceWorker` is constructed once per process. It owns

* the cache generations (:class:`~orbitsw.cache.CacheStorage`),
* the durable mutation queue (:class:`~orbitsw.queue.MutationQueue`),
* its own network client (:class:`httpx.AsyncClient`),
* the connected page contexts and the pending background-sync tags,

and dispatches events to the handlers in :attr:`ServiceWorker.handlers`.
Handlers run on the caller's event loop; several fetch events may be in
flight at once and nothing serialises them beyond the stores' own
per-record atomicity.

Example::

    async with create_worker(config) as worker:
        await worker.install()
        response = await worker.fetch(httpx.Request("GET", url))
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

import httpx

from orbitsw.cache import CacheStorage
from orbitsw.models import GlobalConfig, WorkerState
from orbitsw.queue import MutationQueue
from orbitsw.worker.events import (
    ActivateEvent,
    BackgroundSync,
    ClientRegistry,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    ReplyPort,
    SyncEvent,
)
from orbitsw.worker.handlers import DEFAULT_HANDLERS, Handler


class ServiceWorker:
    """Handler registry and shared state for one worker instance.

    Args:
        config: Effective configuration.
        storage: Cache generations to serve from.
        queue: Durable mutation queue.
        network: Client used for every real network request. When ``None``
            one is built from ``config.network`` (or around *transport*)
            and closed by :meth:`aclose`.
        transport: Transport for the self-built network client. Ignored
            when *network* is given.
        sync_supported: Whether the host can deliver background-sync
            triggers. Without it, queued writes wait for an explicit
            replay.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        config: GlobalConfig,
        storage: CacheStorage,
        queue: MutationQueue,
        network: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sync_supported: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.storage = storage
        self.queue = queue
        self.clients = ClientRegistry()
        self.sync = BackgroundSync(supported=sync_supported)
        self.handlers: dict[type, Handler] = dict(DEFAULT_HANDLERS)
        self.state = WorkerState.PARSED
        # Ids of queued mutations a running replay has in flight.
        self.replaying: set[int] = set()
        # Result of the most recent activate handler run.
        self.last_activation: Any = None

        self._owns_network = network is None
        self._network = network or _build_network_client(config, transport)
        self._clock = clock
        self._skip_waiting = False
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ServiceWorker:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for background work, then release the network client and stores."""
        await self.wait_idle()
        if self._owns_network:
            await self._network.aclose()
        self.storage.close()
        self.queue.close()

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    async def dispatch(self, event: Any) -> Any:
        """Run the handler registered for ``type(event)`` and return its result.

        Raises:
            LookupError: If no handler is registered for the event type.
        """
        handler = self.handlers.get(type(event))
        if handler is None:
            raise LookupError(f"No handler registered for {type(event).__name__}")
        return await handler(self, event)

    async def fetch(self, request: httpx.Request, client_id: Optional[str] = None) -> httpx.Response:
        """Intercept *request* the way a page's fetch would be."""
        return await self.dispatch(FetchEvent(request, client_id=client_id))

    async def post_message(
        self,
        data: Any,
        ports: Optional[list[ReplyPort]] = None,
        source: Optional[str] = None,
    ) -> Any:
        return await self.dispatch(MessageEvent(data, ports=list(ports or []), source=source))

    async def run_pending_syncs(self) -> dict[str, Any]:
        """Fire every pending background-sync tag.

        Returns:
            Handler results keyed by tag.
        """
        results: dict[str, Any] = {}
        for tag in self.sync.take():
            results[tag] = await self.dispatch(SyncEvent(tag))
        return results

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def install(self) -> Any:
        """Run the install handler; activate straight away if it skipped waiting."""
        self.state = WorkerState.INSTALLING
        result = await self.dispatch(InstallEvent())
        self.state = WorkerState.INSTALLED
        if self._skip_waiting:
            await self.activate()
        return result

    async def activate(self) -> Any:
        self.state = WorkerState.ACTIVATING
        result = await self.dispatch(ActivateEvent())
        self.state = WorkerState.ACTIVATED
        self.last_activation = result
        return result

    async def skip_waiting(self) -> None:
        """Stop waiting for older workers; an already installed worker activates now."""
        self._skip_waiting = True
        if self.state == WorkerState.INSTALLED:
            await self.activate()

    # ------------------------------------------------------------------ #
    # Helpers for handlers
    # ------------------------------------------------------------------ #

    @property
    def network(self) -> httpx.AsyncClient:
        return self._network

    async def network_fetch(self, request: httpx.Request) -> httpx.Response:
        """Send *request* over the real network. Transport errors propagate."""
        return await self._network.send(request)

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def wait_until(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* in the background, tracked until it finishes."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every task started with :meth:`wait_until` is done."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)


def _build_network_client(
    config: GlobalConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    network = config.network
    return httpx.AsyncClient(
        timeout=network.timeout,
        verify=network.verify_ssl,
        follow_redirects=network.follow_redirects,
        transport=transport,
    )


def create_worker(
    config: GlobalConfig,
    cache_root: Optional[str | Path] = None,
    queue_root: Optional[str | Path] = None,
    **kwargs: Any,
) -> ServiceWorker:
    """Build a worker with stores in the standard directories.

    Args:
        config: Effective configuration.
        cache_root: Directory for cache generations. Defaults to
            :func:`~orbitsw.config.get_cache_dir`.
        queue_root: Directory for the mutation queue. Defaults to
            :func:`~orbitsw.config.get_data_dir`.
        **kwargs: Forwarded to :class:`ServiceWorker`.
    """
    from orbitsw.config import get_cache_dir, get_data_dir

    storage = CacheStorage(cache_root if cache_root is not None else get_cache_dir())
    queue = MutationQueue(
        queue_root if queue_root is not None else get_data_dir(),
        database=config.queue.database,
        store=config.queue.store,
    )
    return ServiceWorker(config, storage, queue, **kwargs)
