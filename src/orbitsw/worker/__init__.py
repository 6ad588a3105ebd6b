"""The offline worker: event handlers, strategies, and replay.

:class:`ServiceWorker` is the handler registry constructed once per
process; :func:`create_worker` builds one with stores in the standard
directories. Requests reach it through
:class:`~orbitsw.transport.OfflineTransport` or :meth:`ServiceWorker.fetch`.
"""

from orbitsw.worker.events import (
    ActivateEvent,
    BackgroundSync,
    Client,
    ClientRegistry,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    ReplyPort,
    SyncEvent,
)
from orbitsw.worker.registry import ServiceWorker, create_worker

__all__ = [
    "ActivateEvent",
    "BackgroundSync",
    "Client",
    "ClientRegistry",
    "FetchEvent",
    "InstallEvent",
    "MessageEvent",
    "ReplyPort",
    "ServiceWorker",
    "SyncEvent",
    "create_worker",
]
