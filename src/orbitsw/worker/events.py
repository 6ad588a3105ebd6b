"""Events, client contexts, and the background-sync registration.

The worker reacts to five kinds of events, each a small dataclass handed to
:meth:`~orbitsw.worker.registry.ServiceWorker.dispatch`:

* :class:`InstallEvent` / :class:`ActivateEvent` -- lifecycle.
* :class:`FetchEvent` -- one intercepted request.
* :class:`MessageEvent` -- a control message from a page context, with
  optional :class:`ReplyPort` objects for the answer.
* :class:`SyncEvent` -- a background-sync trigger for a tag.

Page contexts are anything implementing :class:`Client`; the worker keeps
them in a :class:`ClientRegistry` and broadcasts notifications to all of
them.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import httpx


@dataclass
class InstallEvent:
    pass


@dataclass
class ActivateEvent:
    pass


@dataclass
class FetchEvent:
    request: httpx.Request
    client_id: Optional[str] = None


@dataclass
class SyncEvent:
    tag: str


class ReplyPort:
    """One end of a reply channel handed to the worker with a message.

    The worker calls :meth:`post_message`; the sender awaits
    :meth:`receive`.
    """

    def __init__(self) -> None:
        self._messages: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def post_message(self, message: dict[str, Any]) -> None:
        self._messages.put_nowait(message)

    async def receive(self) -> dict[str, Any]:
        return await self._messages.get()

    def pending(self) -> int:
        """Number of replies posted but not yet received."""
        return self._messages.qsize()


@dataclass
class MessageEvent:
    data: Any
    ports: list[ReplyPort] = field(default_factory=list)
    source: Optional[str] = None

    def reply(self, message: dict[str, Any]) -> bool:
        """Post *message* to the first reply port, if any was supplied."""
        if not self.ports:
            return False
        self.ports[0].post_message(message)
        return True


@runtime_checkable
class Client(Protocol):
    """A page context the worker can notify."""

    id: str

    def post_message(self, message: dict[str, Any]) -> None: ...


_client_ids = itertools.count(1)


def next_client_id() -> str:
    return f"client-{next(_client_ids)}"


class ClientRegistry:
    """Connected page contexts, and which of them this worker controls."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._controlled: set[str] = set()

    def connect(self, client: Client) -> None:
        self._clients[client.id] = client

    def disconnect(self, client_id: str) -> None:
        self._clients.pop(client_id, None)
        self._controlled.discard(client_id)

    def get(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def match_all(self) -> list[Client]:
        return list(self._clients.values())

    def claim(self) -> int:
        """Take control of every connected client. Returns how many were newly claimed."""
        newly = set(self._clients) - self._controlled
        self._controlled.update(newly)
        return len(newly)

    def is_controlled(self, client_id: str) -> bool:
        return client_id in self._controlled

    def __len__(self) -> int:
        return len(self._clients)


class BackgroundSync:
    """Pending background-sync tags.

    Registering a tag that is already pending is a no-op. The host fires
    pending tags when connectivity returns; see
    :meth:`~orbitsw.worker.registry.ServiceWorker.run_pending_syncs`.
    """

    def __init__(self, supported: bool = True) -> None:
        self.supported = supported
        self._tags: list[str] = []

    def register(self, tag: str) -> None:
        if tag not in self._tags:
            self._tags.append(tag)

    def get_tags(self) -> list[str]:
        return list(self._tags)

    def take(self) -> list[str]:
        """Return and forget every pending tag."""
        tags, self._tags = self._tags, []
        return tags
