"""Built-in CLI sub-commands for orbitsw.

* :mod:`~orbitsw.commands.install` -- install and activate the worker.
* :mod:`~orbitsw.commands.fetch` -- send one request through the worker.
* :mod:`~orbitsw.commands.queue` -- inspect and replay queued writes.
* :mod:`~orbitsw.commands.cache` -- list, clear, and rotate generations.
* :mod:`~orbitsw.commands.config` -- view and modify global settings.

Each module exports either a :class:`typer.Typer` sub-application or a
plain callback registered directly on the root app.
"""
