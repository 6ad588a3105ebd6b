"""Typer application and CLI entry point for orbitsw.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``install``, ``fetch``, ``queue``, ``cache``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. :class:`~orbitsw.exceptions.OrbitError` maps to its
exit code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`orbitsw.config`: Global configuration resolution.
    :mod:`orbitsw.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from orbitsw import __version__
from orbitsw.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="orbitsw",
    help="Offline-first request worker for the DevOrbit web client.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"orbitsw {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    origin: Optional[str] = typer.Option(
        None, "--origin", help="Origin serving the shell and API (overrides config)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~orbitsw.output.OutputManager` from
    CLI flags, and stores shared options (``origin``, ``force``) in the
    Typer context so that sub-commands can read them via ``ctx.obj``.
    """
    from orbitsw.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["origin"] = origin
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app`.

    Safe to call more than once.
    """
    if getattr(app, "_orbitsw_registered", False):
        return

    from orbitsw.commands.cache import cache_app
    from orbitsw.commands.config import config_app
    from orbitsw.commands.fetch import fetch_command
    from orbitsw.commands.install import install_command
    from orbitsw.commands.queue import queue_app

    app.command("install")(install_command)
    app.command("fetch")(fetch_command)
    app.add_typer(queue_app, name="queue", help="Offline mutation queue.")
    app.add_typer(cache_app, name="cache", help="Cache generations.")
    app.add_typer(config_app, name="config", help="Configuration management.")
    app._orbitsw_registered = True  # type: ignore[attr-defined]


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from orbitsw.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``orbitsw`` console script.

    Unhandled :class:`~orbitsw.exceptions.OrbitError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from orbitsw.exceptions import OrbitError
        from orbitsw.output import error

        if isinstance(exc, OrbitError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
