"""Replay of queued mutations on a background-sync trigger."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from orbitsw.exceptions import QueueError
from orbitsw.models import MessageType, QueuedMutation
from orbitsw.output import debug, info, warning

if TYPE_CHECKING:
    from orbitsw.worker.registry import ServiceWorker

# Recomputed from the stored body on replay.
_DROPPED_HEADERS = frozenset({"content-length", "transfer-encoding"})


def build_request(mutation: QueuedMutation) -> httpx.Request:
    """Rebuild the original write request from a queued record."""
    headers = {
        key: value
        for key, value in mutation.headers.items()
        if key.lower() not in _DROPPED_HEADERS
    }
    return httpx.Request(
        mutation.method,
        mutation.url,
        headers=headers,
        content=mutation.body.encode("utf-8") if mutation.body else None,
    )


async def process_mutation_queue(worker: ServiceWorker) -> int:
    """Attempt every queued mutation once, in enqueue order.

    A record is deleted when its replay gets a 2xx response and left in
    place otherwise, to be tried again on the next trigger. The whole
    snapshot is claimed before the first send, so an overlapping replay
    skips every record this one will attempt. Every connected client then
    receives ``SYNC_COMPLETE`` with the number of records attempted.

    Returns:
        The number of records attempted.

    Raises:
        QueueError: A stored record has no id.
    """
    mutations = [m for m in worker.queue.get_all() if m.id not in worker.replaying]
    for mutation in mutations:
        if mutation.id is None:
            raise QueueError(f"Queued mutation {mutation.method} {mutation.url} has no id")
    claimed = {m.id for m in mutations}
    worker.replaying.update(claimed)
    info(f"Processing {len(mutations)} queued mutations")

    try:
        for mutation in mutations:
            try:
                # Cleared from the queue while earlier records were in flight.
                if worker.queue.get(mutation.id) is None:
                    debug(f"Mutation {mutation.id} left the queue before replay")
                    continue
                response = await worker.network_fetch(build_request(mutation))
            except httpx.TransportError as exc:
                warning(f"Error syncing mutation {mutation.method} {mutation.url}: {exc}")
                continue
            finally:
                worker.replaying.discard(mutation.id)
                claimed.discard(mutation.id)

            if response.is_success:
                worker.queue.delete(mutation.id)
                debug(f"Successfully synced mutation: {mutation.method} {mutation.url}")
            else:
                warning(
                    f"Failed to sync mutation {mutation.method} {mutation.url}: "
                    f"HTTP {response.status_code}"
                )
    finally:
        worker.replaying.difference_update(claimed)

    message = {"type": MessageType.SYNC_COMPLETE.value, "count": len(mutations)}
    for client in worker.clients.match_all():
        client.post_message(dict(message))
    return len(mutations)
