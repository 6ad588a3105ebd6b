"""Canonical Pydantic models shared across all orbitsw modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`QueueConfig`, :class:`NetworkConfig`,
    :class:`OutputConfig`, and :class:`GlobalConfig`.

**Worker records** -- persisted by the stores or exchanged with page contexts:
    :class:`QueuedMutation`, :class:`CachedResponse`, :class:`RouteKind`,
    :class:`WorkerState`, and :class:`MessageType`.

The defaults below are the values the DevOrbit web client ships with; the
cache version is the knob that rotates generations on deploy.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field


STATIC_ASSETS: list[str] = [
    "/",
    "/index.html",
    "/manifest.json",
]

CACHEABLE_API_PATTERNS: list[str] = [
    "/api/v1/skills",
    "/api/v1/projects",
    "/api/v1/resources",
    "/api/v1/stats",
    "/api/v1/activities/heatmap",
    "/api/v1/stats/progress",
]


# --- Config ---


class CacheConfig(BaseModel):
    """Cache generation naming, allow-list, and freshness settings.

    The static and API generations are named ``<prefix>-<version>`` and
    ``<prefix>-api-<version>``. Bumping ``version`` makes the next
    activation delete every older generation.
    """

    name_prefix: str = Field(default="devorbit", description="Prefix for generation names")
    version: str = Field(default="v1", description="Generation version tag")
    api_ttl_seconds: int = Field(
        default=300, description="Age after which a cached API entry counts as stale"
    )
    timestamp_header: str = Field(
        default="sw-cache-time",
        description="Header stamped on cached API entries (ms since epoch)",
    )
    static_assets: list[str] = Field(
        default_factory=lambda: list(STATIC_ASSETS),
        description="Shell assets precached on install",
    )
    cacheable_paths: list[str] = Field(
        default_factory=lambda: list(CACHEABLE_API_PATTERNS),
        description="Read-only API routes eligible for response caching",
    )

    @property
    def static_cache_name(self) -> str:
        return f"{self.name_prefix}-{self.version}"

    @property
    def api_cache_name(self) -> str:
        return f"{self.name_prefix}-api-{self.version}"


class QueueConfig(BaseModel):
    """Location of the durable mutation queue and the background-sync tag."""

    database: str = Field(default="devorbit-sw", description="Queue database name")
    store: str = Field(default="devorbit-offline-queue", description="Queue store name")
    sync_tag: str = Field(default="sync-mutations", description="Background-sync tag")


class NetworkConfig(BaseModel):
    """Settings for the worker's own network client.

    ``timeout`` defaults to ``None``: a hung request blocks its handler
    until the origin answers.
    """

    timeout: Optional[float] = Field(default=None, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = True


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/orbitsw/config.json``.

    Loaded and saved by :func:`~orbitsw.config.load_global_config` and
    :func:`~orbitsw.config.save_global_config`. See
    :func:`~orbitsw.config.resolve_config` for the precedence chain.
    """

    origin: Optional[str] = Field(
        default=None, description="Origin the shell assets and API live on"
    )
    api_prefix: str = Field(default="/api/", description="Path prefix routed to the API cache")
    cache: CacheConfig = Field(default_factory=CacheConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Worker records ---


class QueuedMutation(BaseModel):
    """A write request captured while offline, awaiting replay.

    ``id`` is assigned by :class:`~orbitsw.queue.MutationQueue` when the
    record is added and is ``None`` before that. Records are never updated
    in place: a replay either deletes them or leaves them untouched.
    """

    id: Optional[int] = None
    url: str
    method: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    timestamp: int = Field(description="Enqueue time in milliseconds since epoch")


class CachedResponse(BaseModel):
    """A response as persisted inside a cache generation.

    Headers are kept as a list of pairs so repeated headers survive the
    round trip. ``body`` holds the decoded payload.
    """

    url: str
    status_code: int
    reason_phrase: str = ""
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""


class RouteKind(str, enum.Enum):
    """Which strategy the router picked for a request."""

    MUTATION = "mutation"
    API = "api"
    STATIC = "static"


class WorkerState(str, enum.Enum):
    """Lifecycle of a worker, from construction to controlling its clients."""

    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"


class MessageType(str, enum.Enum):
    """Control and notification message types exchanged with page contexts."""

    SKIP_WAITING = "SKIP_WAITING"
    CLEAR_CACHE = "CLEAR_CACHE"
    GET_QUEUE_SIZE = "GET_QUEUE_SIZE"
    SYNC_COMPLETE = "SYNC_COMPLETE"
