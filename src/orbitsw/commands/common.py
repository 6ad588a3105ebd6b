"""Helpers shared by the sub-commands."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Coroutine, TypeVar

import typer

from orbitsw.models import GlobalConfig

if TYPE_CHECKING:
    from orbitsw.worker import ServiceWorker

T = TypeVar("T")


def context_config(ctx: typer.Context) -> GlobalConfig:
    """Resolve the effective config, honouring the root ``--origin`` flag."""
    from orbitsw.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(cli_origin=obj.get("origin"))


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion on a fresh event loop."""
    return asyncio.run(coro)


def open_worker(config: GlobalConfig) -> ServiceWorker:
    """Build the worker the commands operate on."""
    from orbitsw.worker import create_worker

    return create_worker(config)
