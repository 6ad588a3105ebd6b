"""orbitsw -- offline-first request layer for the DevOrbit API.

This package intercepts requests made through an :mod:`httpx` client and
routes them through a worker that keeps the application usable while the
network is down:

* static shell assets are served cache-first and refreshed in the background,
* allow-listed read-only API routes are fetched network-first and fall back
  to the last good response,
* writes made while offline are queued durably and replayed on reconnect.

Typical use::

    worker = create_worker(config)
    async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
        resp = await client.get("https://devorbit.app/api/v1/skills")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    transport: The :mod:`httpx` transport that feeds the worker.
    session: Page-side companion that tracks worker and queue state.
"""

__version__ = "0.3.0"
