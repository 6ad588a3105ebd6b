"""Disk-backed cache generations for the worker.

This package provides :class:`CacheStorage`, the set of named response
stores (*generations*) the worker serves from, and :class:`CacheGeneration`,
a single store. Both the cache-first static strategy and the network-first
API strategy read and write through it; activation deletes generations that
no longer match the configured version.
"""

from orbitsw.cache.storage import CacheGeneration, CacheStorage, portable_headers

__all__ = ["CacheGeneration", "CacheStorage", "portable_headers"]
