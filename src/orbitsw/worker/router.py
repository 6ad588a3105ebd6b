"""Request classification for the fetch handler."""

from __future__ import annotations

import httpx

from orbitsw.models import RouteKind


def classify(request: httpx.Request, api_prefix: str = "/api/") -> RouteKind:
    """Pick the strategy for *request*.

    Any non-GET request is a mutation. GET requests under *api_prefix* go
    to the network-first API strategy, which decides per path whether the
    response may be cached. Everything else is a static asset.
    """
    if request.method.upper() != "GET":
        return RouteKind.MUTATION
    if request.url.path.startswith(api_prefix):
        return RouteKind.API
    return RouteKind.STATIC


def is_cacheable(path: str, patterns: list[str]) -> bool:
    """True if *path* contains one of the allow-listed API routes."""
    return any(pattern in path for pattern in patterns)
