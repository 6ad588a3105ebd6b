"""Named cache generations persisted with :mod:`diskcache`.

A *generation* is a named response store such as ``devorbit-v1`` or
``devorbit-api-v1``. Each generation is an independent
:class:`diskcache.Cache` directory under the storage root, so rotating a
generation is a matter of deleting its directory in full; there is no
per-entry migration.

Entries are keyed by SHA-256 hashes of ``METHOD|URL`` and hold a
:class:`~orbitsw.models.CachedResponse` dump. Request headers play no part
in matching.

See Also:
    :class:`~orbitsw.models.CacheConfig` -- generation naming and the
    API allow-list.
"""

from __future__ import annotations

import hashlib
import re
import shutil
from pathlib import Path
from typing import Any, Iterable, Optional

import diskcache
import httpx

from orbitsw.exceptions import CacheError
from orbitsw.models import CachedResponse

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

# The stored body is already decoded, so these no longer describe it.
_UNPORTABLE_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def portable_headers(headers: httpx.Headers) -> list[tuple[str, str]]:
    """Return *headers* as pairs, minus those tied to the original wire encoding."""
    return [
        (key, value)
        for key, value in headers.multi_items()
        if key.lower() not in _UNPORTABLE_HEADERS
    ]


class CacheGeneration:
    """One named, disk-backed response store.

    Obtained from :meth:`CacheStorage.open`; do not construct directly.

    Args:
        name: Generation name (e.g. ``devorbit-api-v1``).
        directory: Directory backing the :class:`diskcache.Cache`.

    Example::

        static = storage.open("devorbit-v1")
        static.put("https://devorbit.app/", response)
        hit = static.match("https://devorbit.app/")
    """

    def __init__(self, name: str, directory: Path) -> None:
        self.name = name
        self._directory = directory
        self._cache = diskcache.Cache(str(directory))

    def match(self, url: str | httpx.URL, method: str = "GET") -> Optional[httpx.Response]:
        """Look up a stored response.

        Returns:
            A fresh :class:`httpx.Response` rebuilt from the stored entry,
            or ``None`` on a miss.
        """
        raw = self._cache.get(self._make_key(method, str(url)))
        if raw is None:
            return None
        entry = CachedResponse.model_validate(raw)
        return httpx.Response(
            status_code=entry.status_code,
            headers=entry.headers,
            content=entry.body,
            request=httpx.Request(method.upper(), entry.url),
            extensions={"reason_phrase": entry.reason_phrase.encode("ascii", "replace")},
        )

    def put(
        self,
        url: str | httpx.URL,
        response: httpx.Response,
        method: str = "GET",
        extra_headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Store *response* (which must already be read) under *url*.

        Args:
            url: The request URL the entry answers.
            response: A fully read response.
            method: Request method forming the key.
            extra_headers: Headers to set on the stored copy only, such as
                a fetch timestamp. The caller's response is not modified.
        """
        headers = portable_headers(response.headers)
        if extra_headers:
            lowered = {k.lower() for k in extra_headers}
            headers = [(k, v) for k, v in headers if k.lower() not in lowered]
            headers.extend(extra_headers.items())
        entry = CachedResponse(
            url=str(url),
            status_code=response.status_code,
            reason_phrase=response.reason_phrase or "",
            headers=headers,
            body=response.content,
        )
        self._cache.set(self._make_key(method, str(url)), entry.model_dump())

    def delete(self, url: str | httpx.URL, method: str = "GET") -> bool:
        """Remove a single entry. Returns ``True`` if it existed."""
        return bool(self._cache.delete(self._make_key(method, str(url))))

    def clear(self) -> None:
        """Remove all entries but keep the generation."""
        self._cache.clear()

    async def add_all(self, client: httpx.AsyncClient, urls: Iterable[str]) -> list[str]:
        """Fetch every URL and store the responses, all or nothing.

        Args:
            client: Network client used for the fetches.
            urls: Absolute URLs to precache.

        Returns:
            The URLs that were stored.

        Raises:
            CacheError: If any fetch fails at the network layer or returns
                a non-2xx status. Nothing is stored in that case.
        """
        fetched: list[tuple[str, httpx.Response]] = []
        for url in urls:
            try:
                response = await client.get(url)
            except httpx.TransportError as exc:
                raise CacheError(f"Failed to fetch {url}: {exc}") from exc
            if not response.is_success:
                raise CacheError(f"Failed to fetch {url}: HTTP {response.status_code}")
            fetched.append((url, response))

        for url, response in fetched:
            self.put(url, response)
        return [url for url, _ in fetched]

    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": len(self._cache),
            "directory": str(self._directory),
        }

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)

    def _make_key(self, method: str, url: str) -> str:
        """Generate a cache key from method and URL."""
        raw = f"{method.upper()}|{url}"
        return hashlib.sha256(raw.encode()).hexdigest()


class CacheStorage:
    """The set of cache generations living under one root directory.

    Args:
        root: Storage root. Generations are created as sub-directories of
            ``root / "generations"``.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root) / "generations"
        self._root.mkdir(parents=True, exist_ok=True)
        self._open: dict[str, CacheGeneration] = {}

    def open(self, name: str) -> CacheGeneration:
        """Return the generation called *name*, creating it if needed.

        Raises:
            CacheError: If *name* is not a valid generation name.
        """
        self._check_name(name)
        generation = self._open.get(name)
        if generation is None:
            generation = CacheGeneration(name, self._root / name)
            self._open[name] = generation
        return generation

    def has(self, name: str) -> bool:
        return name in self._open or (self._root / name).is_dir()

    def keys(self) -> list[str]:
        """Names of every generation on disk, sorted."""
        names = {p.name for p in self._root.iterdir() if p.is_dir()}
        names.update(self._open)
        return sorted(names)

    def delete(self, name: str) -> bool:
        """Delete a whole generation.

        Returns:
            ``True`` if the generation existed.
        """
        self._check_name(name)
        existed = self.has(name)
        generation = self._open.pop(name, None)
        if generation is not None:
            generation.close()
        directory = self._root / name
        if directory.is_dir():
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                raise CacheError(f"Cannot delete cache generation '{name}': {exc}") from exc
        return existed

    def close(self) -> None:
        """Close every open generation."""
        for generation in self._open.values():
            generation.close()
        self._open.clear()

    @staticmethod
    def _check_name(name: str) -> None:
        if not _NAME_RE.match(name):
            raise CacheError(f"Invalid cache generation name: {name!r}")
