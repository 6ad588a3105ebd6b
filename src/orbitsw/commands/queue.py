"""Queue commands -- inspect and replay writes captured while offline.

Provides the ``orbitsw queue`` sub-command group. Replay goes through the
worker's own background-sync path, so the result is exactly what a
reconnecting page would trigger.
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from orbitsw.commands import common
from orbitsw.exceptions import QueueError
from orbitsw.models import MessageType
from orbitsw.output import format_response, info, print_table, success, warning
from orbitsw.worker import ReplyPort


queue_app = typer.Typer(no_args_is_help=True)


@queue_app.command("size")
def queue_size(ctx: typer.Context) -> None:
    """Show how many writes are waiting to be replayed."""
    config = common.context_config(ctx)

    async def _size() -> dict:
        async with common.open_worker(config) as worker:
            port = ReplyPort()
            await worker.post_message({"type": MessageType.GET_QUEUE_SIZE.value}, ports=[port])
            return await port.receive()

    reply = common.run(_size())
    if "error" in reply:
        raise QueueError(f"Failed to get queue size: {reply['error']}")
    format_response({"count": reply["count"]})


@queue_app.command("list")
def queue_list(ctx: typer.Context) -> None:
    """List queued writes in replay order."""
    config = common.context_config(ctx)
    worker = common.open_worker(config)
    try:
        mutations = worker.queue.get_all()
    finally:
        common.run(worker.aclose())

    if not mutations:
        info("Queue is empty.")
        return

    rows = [
        [
            str(m.id),
            m.method,
            m.url,
            datetime.fromtimestamp(m.timestamp / 1000, tz=timezone.utc).isoformat(timespec="seconds"),
            str(len(m.body.encode("utf-8"))),
        ]
        for m in mutations
    ]
    print_table(["ID", "METHOD", "URL", "QUEUED AT", "BODY BYTES"], rows, title="Offline queue")


@queue_app.command("replay")
def queue_replay(ctx: typer.Context) -> None:
    """Replay every queued write now.

    Successful writes leave the queue; failed ones stay for the next
    replay.
    """
    config = common.context_config(ctx)
    tag = config.queue.sync_tag

    async def _replay() -> tuple[int, int]:
        async with common.open_worker(config) as worker:
            worker.sync.register(tag)
            results = await worker.run_pending_syncs()
            return results.get(tag) or 0, worker.queue.count()

    attempted, remaining = common.run(_replay())
    format_response({"attempted": attempted, "remaining": remaining})
    if remaining:
        warning(f"{remaining} mutation(s) still queued; they will be retried on the next replay.")
    else:
        success("Queue drained.")


@queue_app.command("clear")
def queue_clear(ctx: typer.Context) -> None:
    """Discard every queued write without replaying it.

    Asks for confirmation unless ``--force`` is active.
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Discard all queued writes?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    config = common.context_config(ctx)
    worker = common.open_worker(config)
    try:
        removed = worker.queue.clear()
    finally:
        common.run(worker.aclose())
    success(f"Discarded {removed} queued mutation(s).")
