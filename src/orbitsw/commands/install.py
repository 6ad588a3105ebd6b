"""Install command -- precache the shell and rotate cache generations."""

from __future__ import annotations

from typing import Any

import typer

from orbitsw.commands import common
from orbitsw.models import WorkerState
from orbitsw.output import format_response, info, success, warning


def install_command(ctx: typer.Context) -> None:
    """Install and activate the worker.

    Precaches the configured shell assets from the origin, then deletes
    every cache generation that does not belong to the current version.

    Example::

        orbitsw --origin https://devorbit.app install
    """
    config = common.context_config(ctx)
    if not config.origin:
        warning("No origin configured; set one with --origin or 'orbitsw config set origin URL'")

    async def _install() -> dict[str, Any]:
        async with common.open_worker(config) as worker:
            precached = await worker.install()
            if worker.state != WorkerState.ACTIVATED:
                await worker.activate()
            return {
                "state": worker.state.value,
                "precached": precached or [],
                "deleted_generations": worker.last_activation or [],
                "static_cache": config.cache.static_cache_name,
                "api_cache": config.cache.api_cache_name,
            }

    report = common.run(_install())
    info(f"Precached {len(report['precached'])} of {len(config.cache.static_assets)} assets")
    format_response(report)
    success("Worker installed and active.")
