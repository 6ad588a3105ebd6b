"""Fetch command -- send one request through the worker.

Useful for seeing exactly what an application would get back: a live
response, a cached one (stale or not), the 503 offline body, or the 202
acknowledgement for a queued write.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import typer

from orbitsw.commands import common
from orbitsw.exceptions import ConnectionError_, InvalidUsageError
from orbitsw.output import debug, format_response, info, warning
from orbitsw.transport import OfflineTransport

_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


def parse_header(raw: str) -> tuple[str, str]:
    """Split a ``Name: value`` header argument.

    Raises:
        InvalidUsageError: If there is no colon or the name is empty.
    """
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise InvalidUsageError(f"Invalid header {raw!r}, expected 'Name: value'")
    return name.strip(), value.strip()


def resolve_url(origin: Optional[str], path: str) -> str:
    """Resolve *path* against *origin*; absolute URLs pass through.

    Raises:
        InvalidUsageError: If *path* is relative and no origin is configured.
    """
    if path.startswith(("http://", "https://")):
        return path
    if not origin:
        raise InvalidUsageError(
            f"Cannot resolve relative path {path!r}: no origin configured (use --origin)"
        )
    return str(httpx.URL(origin).join(path))


def fetch_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE)."),
    path: str = typer.Argument(help="Path relative to the origin, or an absolute URL."),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Raw request body."),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Extra header as 'Name: value' (repeatable)."
    ),
) -> None:
    """Send a request through the offline worker and print the response.

    Example::

        orbitsw fetch GET /api/v1/skills
        orbitsw fetch POST /api/v1/activities --body '{"type": "CODING"}' \\
            -H 'Content-Type: application/json'
    """
    method = method.upper()
    if method not in _METHODS:
        raise InvalidUsageError(f"Unsupported method: {method}")

    config = common.context_config(ctx)
    url = resolve_url(config.origin, path)
    headers = dict(parse_header(h) for h in header)

    async def _fetch() -> tuple[httpx.Response, list[str]]:
        async with common.open_worker(config) as worker:
            async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
                kwargs: dict[str, Any] = {"headers": headers}
                if body is not None:
                    kwargs["content"] = body
                response = await client.request(method, url, **kwargs)
            return response, worker.sync.get_tags()

    try:
        response, pending = common.run(_fetch())
    except httpx.TransportError as exc:
        raise ConnectionError_(f"{method} {url} failed and no offline fallback applied: {exc}") from exc

    info(f"HTTP {response.status_code} {response.reason_phrase or ''}")
    cached_at = response.headers.get(config.cache.timestamp_header)
    if cached_at:
        debug(f"Served from cache ({config.cache.timestamp_header}: {cached_at})")
    if pending:
        warning("Request queued offline; run 'orbitsw queue replay' once back online.")

    data = _extract_body(response)
    if data is not None:
        format_response(data)


def _extract_body(response: httpx.Response) -> Any:
    """JSON-decoded body, raw text, or ``None`` for an empty body."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
