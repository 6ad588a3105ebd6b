"""An :mod:`httpx` transport that sends every request through the worker.

Plug :class:`OfflineTransport` into an application's
:class:`httpx.AsyncClient` and all of its traffic is intercepted: reads may
be answered from cache, writes made offline come back as 202
acknowledgements, and only failures the worker has no answer for surface
as :class:`httpx.TransportError`.

Example::

    transport = OfflineTransport(worker)
    async with httpx.AsyncClient(transport=transport, base_url=origin) as client:
        resp = await client.post("/api/v1/activities", json={"type": "CODING"})
        if resp.status_code == 202 and resp.json().get("queued"):
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx

from orbitsw.cache import portable_headers

if TYPE_CHECKING:
    from orbitsw.worker import ServiceWorker


class OfflineTransport(httpx.AsyncBaseTransport):
    """Route requests through a :class:`~orbitsw.worker.ServiceWorker`.

    The worker is owned by the caller; closing the transport leaves it
    running so several clients can share one worker.

    Args:
        worker: The worker whose fetch handler answers requests.
        client_id: Identifies the page context the requests come from.
    """

    def __init__(self, worker: ServiceWorker, client_id: Optional[str] = None) -> None:
        self._worker = worker
        self._client_id = client_id

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self._worker.fetch(request, client_id=self._client_id)
        return detach(response)


def detach(response: httpx.Response) -> httpx.Response:
    """Copy a fully read response into one with a fresh byte stream.

    The worker's responses were already read by its own client (or
    rebuilt from cache), so the copy carries the decoded body and drops
    the headers describing the original wire encoding.
    """
    return httpx.Response(
        status_code=response.status_code,
        headers=portable_headers(response.headers),
        content=response.content,
        extensions={"reason_phrase": (response.reason_phrase or "").encode("ascii", "replace")},
    )
