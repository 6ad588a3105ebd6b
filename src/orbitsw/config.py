"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for orbitsw:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.orbitsw/`` on macOS and Windows. Cache generations live under
  :func:`get_cache_dir`, the mutation queue and crash logs under
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~orbitsw.models.GlobalConfig`
  JSON file storing the origin, cache naming, queue location, and output
  defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a half-written config.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from orbitsw.exceptions import ConfigError
from orbitsw.models import GlobalConfig

_APP_NAME = "orbitsw"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "orbitsw.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/orbitsw/`` (default ``~/.config/orbitsw/``).
    On macOS/Windows: ``~/.orbitsw/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory holding the cache generations.

    Everything under it can be deleted at any time; the worker re-creates
    generations on demand.

    On Linux/BSD: ``$XDG_CACHE_HOME/orbitsw/`` (default ``~/.cache/orbitsw/``).
    On macOS/Windows: ``~/.orbitsw/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (mutation queue, crash logs).

    Unlike the cache directory this holds state that must survive: queued
    writes that have not reached the origin yet.

    On Linux/BSD: ``$XDG_DATA_HOME/orbitsw/`` (default ``~/.local/share/orbitsw/``).
    On macOS/Windows: ``~/.orbitsw/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~orbitsw.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./orbitsw.json``.

    A repository can pin the origin or cache version it develops against
    without touching the user's global config.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base*."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_origin: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_origin``, ``cli_format``)
        2. Environment variables (``ORBITSW_ORIGIN``, ``ORBITSW_CACHE_VERSION``)
        3. Project config (``./orbitsw.json``)
        4. User config (``~/.config/orbitsw/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is invalid.
    """
    config = load_global_config()

    project = load_project_config()
    if project:
        try:
            config = GlobalConfig.model_validate(
                _merge(config.model_dump(mode="json"), project)
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    env_origin = os.environ.get("ORBITSW_ORIGIN")
    if env_origin:
        config.origin = env_origin
    env_version = os.environ.get("ORBITSW_CACHE_VERSION")
    if env_version:
        config.cache.version = env_version

    if cli_origin is not None:
        config.origin = cli_origin
    if cli_format is not None:
        config.output.format = cli_format

    return config
