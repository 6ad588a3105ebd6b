"""Tests for orbitsw.config — XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from orbitsw.config import (
    _atomic_write,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_global_config,
    load_project_config,
    resolve_config,
    save_global_config,
)
from orbitsw.exceptions import ConfigError
from orbitsw.models import CacheConfig, GlobalConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_xdg_env_vars_respected(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "orbitsw"
        assert get_cache_dir() == isolated_config / "cache" / "orbitsw"
        assert get_data_dir() == isolated_config / "data" / "orbitsw"

    def test_dirs_created(self, isolated_config: Path) -> None:
        assert get_config_dir().is_dir()
        assert get_data_dir().is_dir()

    def test_xdg_defaults_under_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("orbitsw.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_cache_dir() == tmp_path / ".cache" / "orbitsw"

    def test_non_xdg_platform_uses_dot_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("orbitsw.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".orbitsw"
        assert get_cache_dir() == tmp_path / ".orbitsw" / "cache"
        assert get_data_dir() == tmp_path / ".orbitsw" / "data"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_failure_leaves_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        with patch("orbitsw.config.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError):
                _atomic_write(target, "data")
        assert not target.exists()
        assert [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")] == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config.origin is None
        assert config.cache.static_cache_name == "devorbit-v1"
        assert config.cache.api_cache_name == "devorbit-api-v1"
        assert config.cache.api_ttl_seconds == 300
        assert config.queue.database == "devorbit-sw"
        assert config.queue.store == "devorbit-offline-queue"
        assert config.queue.sync_tag == "sync-mutations"
        assert config.network.timeout is None

    def test_save_and_load(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(origin="https://devorbit.app", cache=CacheConfig(version="v3")))
        loaded = load_global_config()
        assert loaded.origin == "https://devorbit.app"
        assert loaded.cache.static_cache_name == "devorbit-v3"

    def test_invalid_json_raises(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{not json")
        with pytest.raises(ConfigError):
            load_global_config()

    def test_invalid_shape_raises(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"cache": {"api_ttl_seconds": "soon"}})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Project config and precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_project_config_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_project_config_not_an_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "orbitsw.json", ["nope"])
        with pytest.raises(ConfigError):
            load_project_config()

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(origin="https://global.example", cache=CacheConfig(version="v2")))
        _write_json(isolated_config / "orbitsw.json", {"origin": "https://project.example"})

        config = resolve_config()
        assert config.origin == "https://project.example"
        # Nested sections merge rather than replace.
        assert config.cache.version == "v2"

    def test_env_overrides_project(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(isolated_config / "orbitsw.json", {"origin": "https://project.example"})
        monkeypatch.setenv("ORBITSW_ORIGIN", "https://env.example")
        monkeypatch.setenv("ORBITSW_CACHE_VERSION", "v9")

        config = resolve_config()
        assert config.origin == "https://env.example"
        assert config.cache.static_cache_name == "devorbit-v9"

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORBITSW_ORIGIN", "https://env.example")
        config = resolve_config(cli_origin="https://cli.example", cli_format="json")
        assert config.origin == "https://cli.example"
        assert config.output.format == "json"

    def test_invalid_project_values(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "orbitsw.json", {"cache": {"static_assets": "not-a-list"}})
        with pytest.raises(ConfigError):
            resolve_config()
