"""Tests for the disk-backed cache generations."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from orbitsw.cache import CacheStorage, portable_headers
from orbitsw.exceptions import CacheError


@pytest.fixture()
def storage(tmp_path: Path):
    s = CacheStorage(tmp_path)
    yield s
    s.close()


def _response(body: bytes = b'{"ok": true}', status_code: int = 200, **headers: str) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "application/json", **headers},
        content=body,
    )


# ------------------------------------------------------------------ #
# Entries
# ------------------------------------------------------------------ #


class TestMatchPut:
    def test_miss_returns_none(self, storage: CacheStorage) -> None:
        assert storage.open("devorbit-v1").match("https://devorbit.test/") is None

    def test_put_then_match(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        cache.put("https://devorbit.test/manifest.json", _response(b'{"name": "DevOrbit"}'))

        hit = cache.match("https://devorbit.test/manifest.json")
        assert hit is not None
        assert hit.status_code == 200
        assert hit.json() == {"name": "DevOrbit"}
        assert hit.headers["content-type"] == "application/json"

    def test_match_accepts_httpx_url(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        cache.put(httpx.URL("https://devorbit.test/"), _response(b"<html></html>"))
        assert cache.match("https://devorbit.test/") is not None

    def test_query_string_is_part_of_the_key(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-api-v1")
        cache.put("https://devorbit.test/api/v1/skills?page=1", _response(b"[1]"))
        assert cache.match("https://devorbit.test/api/v1/skills?page=2") is None
        assert cache.match("https://devorbit.test/api/v1/skills?page=1") is not None

    def test_method_is_part_of_the_key(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        cache.put("https://devorbit.test/", _response())
        assert cache.match("https://devorbit.test/", method="HEAD") is None

    def test_extra_headers_only_on_stored_copy(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-api-v1")
        live = _response()
        cache.put("https://devorbit.test/api/v1/stats", live, extra_headers={"sw-cache-time": "123"})

        assert "sw-cache-time" not in live.headers
        hit = cache.match("https://devorbit.test/api/v1/stats")
        assert hit.headers["sw-cache-time"] == "123"

    def test_extra_headers_replace_existing(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-api-v1")
        cache.put(
            "https://devorbit.test/api/v1/stats",
            _response(**{"sw-cache-time": "1"}),
            extra_headers={"sw-cache-time": "2"},
        )
        hit = cache.match("https://devorbit.test/api/v1/stats")
        assert hit.headers.get_list("sw-cache-time") == ["2"]

    def test_reason_phrase_survives(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        cache.put("https://devorbit.test/", _response())
        assert cache.match("https://devorbit.test/").reason_phrase == "OK"

    def test_delete_entry(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        cache.put("https://devorbit.test/", _response())
        assert cache.delete("https://devorbit.test/") is True
        assert cache.delete("https://devorbit.test/") is False
        assert len(cache) == 0

    def test_entries_persist_across_instances(self, tmp_path: Path) -> None:
        first = CacheStorage(tmp_path)
        first.open("devorbit-v1").put("https://devorbit.test/", _response(b"shell"))
        first.close()

        second = CacheStorage(tmp_path)
        try:
            assert second.open("devorbit-v1").match("https://devorbit.test/").content == b"shell"
        finally:
            second.close()


class TestPortableHeaders:
    def test_drops_wire_encoding_headers(self) -> None:
        headers = httpx.Headers({
            "content-type": "text/html",
            "content-encoding": "gzip",
            "content-length": "42",
            "transfer-encoding": "chunked",
        })
        assert portable_headers(headers) == [("content-type", "text/html")]

    def test_keeps_repeated_headers(self) -> None:
        headers = httpx.Headers([("set-cookie", "a=1"), ("set-cookie", "b=2")])
        assert portable_headers(headers) == [("set-cookie", "a=1"), ("set-cookie", "b=2")]


# ------------------------------------------------------------------ #
# Generations
# ------------------------------------------------------------------ #


class TestGenerations:
    def test_open_creates_generation(self, storage: CacheStorage) -> None:
        storage.open("devorbit-v1")
        assert storage.has("devorbit-v1")
        assert storage.keys() == ["devorbit-v1"]

    def test_open_returns_same_instance(self, storage: CacheStorage) -> None:
        assert storage.open("devorbit-v1") is storage.open("devorbit-v1")

    def test_keys_sorted(self, storage: CacheStorage) -> None:
        for name in ["devorbit-v2", "devorbit-api-v1", "devorbit-v1"]:
            storage.open(name)
        assert storage.keys() == ["devorbit-api-v1", "devorbit-v1", "devorbit-v2"]

    def test_generations_are_independent(self, storage: CacheStorage) -> None:
        storage.open("devorbit-v1").put("https://devorbit.test/", _response())
        assert storage.open("devorbit-v2").match("https://devorbit.test/") is None

    def test_delete_removes_everything(self, storage: CacheStorage, tmp_path: Path) -> None:
        storage.open("devorbit-v0").put("https://devorbit.test/", _response())
        assert storage.delete("devorbit-v0") is True
        assert not storage.has("devorbit-v0")
        assert not (tmp_path / "generations" / "devorbit-v0").exists()

    def test_delete_missing_generation(self, storage: CacheStorage) -> None:
        assert storage.delete("devorbit-v9") is False

    def test_reopen_after_delete_is_empty(self, storage: CacheStorage) -> None:
        storage.open("devorbit-v1").put("https://devorbit.test/", _response())
        storage.delete("devorbit-v1")
        assert len(storage.open("devorbit-v1")) == 0

    @pytest.mark.parametrize("name", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_names_rejected(self, storage: CacheStorage, name: str) -> None:
        with pytest.raises(CacheError):
            storage.open(name)


# ------------------------------------------------------------------ #
# Precache
# ------------------------------------------------------------------ #


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestAddAll:
    def test_stores_every_url(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")
        urls = ["https://devorbit.test/", "https://devorbit.test/manifest.json"]

        async def scenario() -> list[str]:
            async with _client(lambda r: httpx.Response(200, text=r.url.path)) as client:
                return await cache.add_all(client, urls)

        assert asyncio.run(scenario()) == urls
        assert cache.match("https://devorbit.test/manifest.json").text == "/manifest.json"

    def test_non_2xx_stores_nothing(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/manifest.json":
                return httpx.Response(404)
            return httpx.Response(200, text="ok")

        async def scenario() -> None:
            async with _client(handler) as client:
                await cache.add_all(
                    client, ["https://devorbit.test/", "https://devorbit.test/manifest.json"]
                )

        with pytest.raises(CacheError, match="HTTP 404"):
            asyncio.run(scenario())
        assert len(cache) == 0

    def test_network_failure_stores_nothing(self, storage: CacheStorage) -> None:
        cache = storage.open("devorbit-v1")

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async def scenario() -> None:
            async with _client(handler) as client:
                await cache.add_all(client, ["https://devorbit.test/"])

        with pytest.raises(CacheError, match="Failed to fetch"):
            asyncio.run(scenario())
        assert len(cache) == 0
