"""Cache commands -- list, clear, and rotate cache generations."""

from __future__ import annotations

import typer

from orbitsw.commands import common
from orbitsw.exceptions import CacheError
from orbitsw.models import MessageType
from orbitsw.output import format_response, info, print_table, success
from orbitsw.worker import ReplyPort


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("list")
def cache_list(ctx: typer.Context) -> None:
    """List cache generations on disk with their entry counts."""
    config = common.context_config(ctx)
    current = {config.cache.static_cache_name, config.cache.api_cache_name}
    worker = common.open_worker(config)
    try:
        rows = [
            [name, str(len(worker.storage.open(name))), "yes" if name in current else "no"]
            for name in worker.storage.keys()
        ]
    finally:
        common.run(worker.aclose())

    if not rows:
        info("No cache generations.")
        return
    print_table(["NAME", "ENTRIES", "CURRENT"], rows, title="Cache generations")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Delete the current static and API generations."""
    config = common.context_config(ctx)

    async def _clear() -> dict:
        async with common.open_worker(config) as worker:
            port = ReplyPort()
            await worker.post_message({"type": MessageType.CLEAR_CACHE.value}, ports=[port])
            return await port.receive()

    reply = common.run(_clear())
    if not reply.get("success"):
        raise CacheError(reply.get("error") or "Failed to clear cache")
    success("Cache cleared.")


@cache_app.command("rotate")
def cache_rotate(ctx: typer.Context) -> None:
    """Delete every generation that does not match the configured version."""
    config = common.context_config(ctx)

    async def _rotate() -> list[str]:
        async with common.open_worker(config) as worker:
            return await worker.activate()

    deleted = common.run(_rotate())
    format_response({"deleted": deleted})
    success(f"Deleted {len(deleted)} stale generation(s).")
