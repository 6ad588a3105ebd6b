"""Page-side companion to the worker.

:class:`WorkerSession` is what an application holds on to: it registers
itself with a worker as a client context, tracks connectivity and the
number of writes waiting in the queue, notices when a newer worker is
waiting to take over, and exposes the control operations (update, clear
cache, force sync) over the worker's message channel.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from orbitsw.exceptions import CacheError, InvalidUsageError
from orbitsw.models import MessageType, WorkerState
from orbitsw.output import debug, warning
from orbitsw.transport import OfflineTransport
from orbitsw.worker import ReplyPort, ServiceWorker
from orbitsw.worker.events import next_client_id


class WorkerSession:
    """Tracks one page context's view of the worker.

    Attributes:
        is_online: Last known connectivity.
        is_registered: Whether :meth:`register` has completed.
        is_update_available: A newer worker is installed and waiting.
        pending_mutations: Queue size as of the last refresh or sync.
        last_sync_time: When the last ``SYNC_COMPLETE`` arrived.

    Example::

        session = WorkerSession()
        await session.register(worker)
        async with httpx.AsyncClient(transport=session.transport()) as client:
            ...
        await session.go_online()
    """

    def __init__(
        self,
        online: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.id = next_client_id()
        self.is_online = online
        self.is_registered = False
        self.is_update_available = False
        self.pending_mutations = 0
        self.last_sync_time: Optional[datetime] = None
        self._clock = clock
        self._controller: Optional[ServiceWorker] = None
        self._waiting: Optional[ServiceWorker] = None

    @property
    def controller(self) -> Optional[ServiceWorker]:
        """The worker currently answering this session's requests."""
        return self._controller

    @property
    def waiting(self) -> Optional[ServiceWorker]:
        return self._waiting

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    async def register(self, worker: ServiceWorker) -> None:
        """Connect to *worker*, installing it if it has not been yet.

        A worker that ends up waiting behind this session's current
        controller is kept as the pending update; otherwise it becomes the
        controller.
        """
        worker.clients.connect(self)
        if worker.state == WorkerState.PARSED:
            await worker.install()

        if worker.state == WorkerState.INSTALLED:
            if self._controller is not None and self._controller is not worker:
                self._waiting = worker
                self.is_update_available = True
                debug("New worker version available")
            else:
                await worker.activate()
                self._adopt(worker)
        else:
            self._adopt(worker)

        self.is_registered = True
        debug(f"Worker registered for {self.id}")

    def transport(self) -> OfflineTransport:
        """An :mod:`httpx` transport bound to the current controller.

        Raises:
            InvalidUsageError: If no worker controls this session yet.
        """
        if self._controller is None:
            raise InvalidUsageError("Session is not registered with a worker")
        return OfflineTransport(self._controller, client_id=self.id)

    def client(self, **kwargs: Any) -> httpx.AsyncClient:
        """Convenience: an :class:`httpx.AsyncClient` using :meth:`transport`."""
        return httpx.AsyncClient(transport=self.transport(), **kwargs)

    async def update(self) -> bool:
        """Tell a waiting worker to skip waiting and switch to it.

        Returns:
            ``True`` if there was a waiting worker.
        """
        waiting = self._waiting
        if waiting is None:
            return False
        await waiting.post_message({"type": MessageType.SKIP_WAITING.value}, source=self.id)
        if waiting.state == WorkerState.ACTIVATED:
            self._adopt(waiting)
        return True

    def _adopt(self, worker: ServiceWorker) -> None:
        previous = self._controller
        if previous is not None and previous is not worker:
            previous.clients.disconnect(self.id)
        self._controller = worker
        if self._waiting is worker:
            self._waiting = None
            self.is_update_available = False

    # ------------------------------------------------------------------ #
    # Client protocol
    # ------------------------------------------------------------------ #

    def post_message(self, message: dict[str, Any]) -> None:
        """Receive a notification from the worker."""
        if message.get("type") == MessageType.SYNC_COMPLETE.value:
            self.pending_mutations = 0
            self.last_sync_time = self._clock()
            debug(f"Synced {message.get('count', 0)} mutations")

    # ------------------------------------------------------------------ #
    # Connectivity
    # ------------------------------------------------------------------ #

    async def go_online(self) -> dict[str, Any]:
        """Mark the session online and fire any pending background syncs."""
        self.is_online = True
        if self._controller is None:
            return {}
        return await self._controller.run_pending_syncs()

    def go_offline(self) -> None:
        self.is_online = False

    # ------------------------------------------------------------------ #
    # Control messages
    # ------------------------------------------------------------------ #

    async def refresh_queue_size(self) -> int:
        """Ask the worker how many writes are queued.

        An error reply leaves the count at 0 and is reported as a warning.
        """
        reply = await self._request({"type": MessageType.GET_QUEUE_SIZE.value})
        if reply is None:
            return self.pending_mutations
        if "error" in reply:
            warning(f"Failed to get queue size: {reply['error']}")
            self.pending_mutations = 0
        else:
            self.pending_mutations = int(reply.get("count") or 0)
        return self.pending_mutations

    async def clear_cache(self) -> None:
        """Delete the worker's current cache generations.

        Raises:
            CacheError: If the worker did not confirm the clear.
        """
        reply = await self._request({"type": MessageType.CLEAR_CACHE.value})
        if reply is None:
            return
        if not reply.get("success"):
            raise CacheError(reply.get("error") or "Failed to clear cache")

    async def force_sync(self) -> dict[str, Any]:
        """Register the replay tag and fire pending syncs now."""
        if self._controller is None or not self._controller.sync.supported:
            return {}
        self._controller.sync.register(self._controller.config.queue.sync_tag)
        return await self._controller.run_pending_syncs()

    async def _request(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        if self._controller is None:
            return None
        port = ReplyPort()
        await self._controller.post_message(message, ports=[port], source=self.id)
        return await port.receive()
