"""Config commands -- view and modify global configuration.

Provides the ``orbitsw config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~orbitsw.models.GlobalConfig`): the origin, cache version and
TTL, queue location, and network settings.
"""

from __future__ import annotations

from typing import Any

import typer

from orbitsw.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        orbitsw config show
        orbitsw --json config show
    """
    from orbitsw.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the field's current value.

    Raises:
        typer.Exit: With code 2 when the value cannot be converted.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, float) or (current is None and key.endswith("timeout")):
        if value.lower() in ("none", "null", ""):
            return None
        try:
            return float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.version')."
    ),
    value: str = typer.Argument(help="Value to set (comma-separated for lists)."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the
    existing field's type and the result is validated against
    :class:`~orbitsw.models.GlobalConfig` before saving.

    Example::

        orbitsw config set origin https://devorbit.app
        orbitsw config set cache.version v2
        orbitsw config set cache.api_ttl_seconds 600
    """
    from orbitsw.config import load_global_config, save_global_config
    from orbitsw.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    coerced = _coerce(key, target[final_key], value)
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from orbitsw.config import save_global_config
    from orbitsw.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
