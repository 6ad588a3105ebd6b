"""Default event handlers registered on every worker.

Each handler is a coroutine function ``(worker, event) -> result``; it
reaches shared state only through the worker it is given. The mapping
from event type to handler lives in :data:`DEFAULT_HANDLERS` and is copied
into each :class:`~orbitsw.worker.registry.ServiceWorker`, where it can be
overridden per instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

import httpx

from orbitsw.exceptions import CacheError
from orbitsw.models import MessageType, RouteKind
from orbitsw.output import debug, info, warning
from orbitsw.worker.events import (
    ActivateEvent,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    SyncEvent,
)
from orbitsw.worker.replay import process_mutation_queue
from orbitsw.worker.router import classify
from orbitsw.worker.strategies import handle_api, handle_mutation, handle_static

if TYPE_CHECKING:
    from orbitsw.worker.registry import ServiceWorker

Handler = Callable[["ServiceWorker", Any], Awaitable[Any]]


async def on_install(worker: ServiceWorker, event: InstallEvent) -> list[str]:
    """Precache the shell assets, then skip waiting.

    A failed precache is reported but does not fail the install.

    Returns:
        The URLs that were precached.
    """
    info("Installing service worker")
    config = worker.config
    cache = worker.storage.open(config.cache.static_cache_name)

    precached: list[str] = []
    if config.origin:
        urls = [str(httpx.URL(config.origin).join(path)) for path in config.cache.static_assets]
        try:
            precached = await cache.add_all(worker.network, urls)
            debug(f"Cached {len(precached)} static assets")
        except CacheError as exc:
            warning(f"Failed to cache some static assets: {exc}")
    else:
        warning("No origin configured, skipping static asset precache")

    await worker.skip_waiting()
    return precached


async def on_activate(worker: ServiceWorker, event: ActivateEvent) -> list[str]:
    """Delete stale cache generations and claim all clients.

    Returns:
        Names of the deleted generations.
    """
    info("Activating service worker")
    keep = {worker.config.cache.static_cache_name, worker.config.cache.api_cache_name}
    deleted = []
    for name in worker.storage.keys():
        if name in keep:
            continue
        debug(f"Deleting old cache: {name}")
        worker.storage.delete(name)
        deleted.append(name)
    worker.clients.claim()
    return deleted


async def on_fetch(worker: ServiceWorker, event: FetchEvent) -> httpx.Response:
    request = event.request
    route = classify(request, worker.config.api_prefix)
    if route == RouteKind.MUTATION:
        return await handle_mutation(worker, request)
    if route == RouteKind.API:
        return await handle_api(worker, request)
    return await handle_static(worker, request)


async def on_message(worker: ServiceWorker, event: MessageEvent) -> Optional[dict[str, Any]]:
    """Answer a control message from a page context.

    Returns:
        The reply that was posted, or ``None`` for messages without one.
    """
    data = event.data if isinstance(event.data, dict) else {}
    message_type = data.get("type")

    if message_type == MessageType.SKIP_WAITING.value:
        await worker.skip_waiting()
        return None

    if message_type == MessageType.CLEAR_CACHE.value:
        try:
            worker.storage.delete(worker.config.cache.static_cache_name)
            worker.storage.delete(worker.config.cache.api_cache_name)
            reply: dict[str, Any] = {"success": True}
        except CacheError as exc:
            reply = {"success": False, "error": str(exc)}
        event.reply(reply)
        return reply

    if message_type == MessageType.GET_QUEUE_SIZE.value:
        try:
            reply = {"count": worker.queue.count()}
        except Exception as exc:
            reply = {"error": str(exc)}
        event.reply(reply)
        return reply

    debug(f"Ignoring unknown message type: {message_type!r}")
    return None


async def on_sync(worker: ServiceWorker, event: SyncEvent) -> Optional[int]:
    if event.tag != worker.config.queue.sync_tag:
        debug(f"Ignoring sync for unknown tag: {event.tag}")
        return None
    info("Background sync triggered")
    return await process_mutation_queue(worker)


DEFAULT_HANDLERS: dict[type, Handler] = {
    InstallEvent: on_install,
    ActivateEvent: on_activate,
    FetchEvent: on_fetch,
    MessageEvent: on_message,
    SyncEvent: on_sync,
}
