"""Caching strategies run by the fetch handler.

* :func:`handle_static` -- cache-first with background refresh.
* :func:`handle_api` -- network-first, falling back to the last good
  response for allow-listed routes (served even when stale), else a 503
  offline body.
* :func:`handle_mutation` -- pass-through while online; on a network
  failure the request is queued durably and acknowledged with a 202.

Each strategy takes the worker (for its stores, network client and clock)
and the intercepted :class:`httpx.Request`, and returns the response the
caller should see. A network failure is any :class:`httpx.TransportError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from orbitsw.models import QueuedMutation
from orbitsw.output import debug, info
from orbitsw.worker.router import is_cacheable

if TYPE_CHECKING:
    from orbitsw.cache import CacheGeneration
    from orbitsw.worker.registry import ServiceWorker


OFFLINE_BODY = {
    "success": False,
    "error": "You are offline. Please check your connection.",
    "code": "OFFLINE",
    "offline": True,
}

QUEUED_BODY = {
    "success": True,
    "queued": True,
    "message": "Your changes will be saved when you're back online.",
    "code": "QUEUED_OFFLINE",
}


def offline_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, json=OFFLINE_BODY, request=request)


def queued_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(202, json=QUEUED_BODY, request=request)


# ------------------------------------------------------------------ #
# Static assets
# ------------------------------------------------------------------ #


async def handle_static(worker: ServiceWorker, request: httpx.Request) -> httpx.Response:
    """Serve a shell asset cache-first.

    A hit is returned immediately while a background task refetches and
    re-stores the asset. On a miss the network answers; if the network is
    down the cached root document stands in, and if there is none the
    network error propagates.
    """
    cache = worker.storage.open(worker.config.cache.static_cache_name)

    cached = cache.match(request.url)
    if cached is not None:
        worker.wait_until(_refresh(worker, cache, request.url, request.headers))
        return cached

    try:
        response = await worker.network_fetch(request)
    except httpx.TransportError:
        root = cache.match(request.url.join("/"))
        if root is not None:
            debug(f"Offline, serving cached root document for {request.url.path}")
            return root
        raise

    if response.is_success:
        cache.put(request.url, response)
    return response


async def _refresh(
    worker: ServiceWorker,
    cache: CacheGeneration,
    url: httpx.URL,
    headers: httpx.Headers,
) -> None:
    try:
        response = await worker.network_fetch(httpx.Request("GET", url, headers=headers))
    except httpx.TransportError as exc:
        debug(f"Background refresh of {url.path} failed: {exc}")
        return
    if response.is_success:
        cache.put(url, response)


# ------------------------------------------------------------------ #
# API reads
# ------------------------------------------------------------------ #


async def handle_api(worker: ServiceWorker, request: httpx.Request) -> httpx.Response:
    """Fetch an API GET network-first.

    Successful responses on allow-listed routes are stored with a
    timestamp header; the live response goes back to the caller as is.
    When the network fails, an allow-listed route gets its stored copy
    whatever its age, and anything else gets the 503 offline body.
    """
    config = worker.config.cache
    cache = worker.storage.open(config.api_cache_name)
    path = request.url.path
    cacheable = is_cacheable(path, config.cacheable_paths)

    try:
        response = await worker.network_fetch(request)
    except httpx.TransportError:
        debug(f"Network failed, trying cache: {path}")
        if cacheable:
            cached = cache.match(request.url)
            if cached is not None:
                if _is_expired(worker, cached):
                    debug(f"Cache expired, returning stale data: {path}")
                else:
                    debug(f"Returning cached API response: {path}")
                return cached
        return offline_response(request)

    if response.is_success and cacheable:
        cache.put(
            request.url,
            response,
            extra_headers={config.timestamp_header: str(worker.now_ms())},
        )
    return response


def _is_expired(worker: ServiceWorker, cached: httpx.Response) -> bool:
    config = worker.config.cache
    try:
        stamped = int(cached.headers.get(config.timestamp_header, "0"))
    except ValueError:
        stamped = 0
    return worker.now_ms() - stamped > config.api_ttl_seconds * 1000


# ------------------------------------------------------------------ #
# Writes
# ------------------------------------------------------------------ #


async def handle_mutation(worker: ServiceWorker, request: httpx.Request) -> httpx.Response:
    """Send a write, or queue it for background sync if the network is down."""
    # Buffer the body first so it is still available after a failed send.
    await request.aread()
    try:
        return await worker.network_fetch(request)
    except httpx.TransportError:
        info(f"Queueing offline mutation: {request.method} {request.url}")
        queue_mutation(worker, request)
        return queued_response(request)


def queue_mutation(worker: ServiceWorker, request: httpx.Request) -> int:
    """Persist *request* to the mutation queue and ask for a sync trigger."""
    mutation = QueuedMutation(
        url=str(request.url),
        method=request.method,
        headers=dict(request.headers.items()),
        body=request.content.decode("utf-8", errors="replace"),
        timestamp=worker.now_ms(),
    )
    record_id = worker.queue.add(mutation)
    if worker.sync.supported:
        worker.sync.register(worker.config.queue.sync_tag)
    return record_id
