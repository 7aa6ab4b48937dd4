"""
Surveillance Cache

Per-source TTL cache for normalised data points, injected into each adapter at
construction so tests can swap in a deterministic or no-op implementation.

Cache failures are never fatal: a failed read is a miss, a failed write is
logged and dropped. Concurrent writers for the same key race safely
(last writer wins; staleness within the TTL is accepted).
"""
from __future__ import annotations

import asyncio
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from diskcache import Cache

from .types import SurveillanceDataPoint
from surveillance.utils import get_logger

logger = get_logger(__name__)

_KEY_SANITIZER = re.compile(r"[\\/. ]")


def sanitize_key(key: str) -> str:
    """Normalise a cache key to a filesystem/document-id safe token."""
    return _KEY_SANITIZER.sub("_", key)[:128]


class SurveillanceCache:
    """Interface: async get/set of data point lists with a TTL."""

    async def get(self, key: str) -> Optional[List[SurveillanceDataPoint]]:
        raise NotImplementedError

    async def set(self, key: str, data_points: List[SurveillanceDataPoint], ttl_seconds: float) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources; in-process caches hold none."""
        return None


class NullCache(SurveillanceCache):
    """Never stores anything; every lookup is a miss."""

    async def get(self, key: str) -> Optional[List[SurveillanceDataPoint]]:
        return None

    async def set(self, key: str, data_points: List[SurveillanceDataPoint], ttl_seconds: float) -> None:
        return None


class MemoryCache(SurveillanceCache):
    """Process-local cache, the default for a single-worker deployment."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, List[Dict[str, Any]]]] = {}

    async def get(self, key: str) -> Optional[List[SurveillanceDataPoint]]:
        entry = self._entries.get(sanitize_key(key))
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            self._entries.pop(sanitize_key(key), None)
            return None
        return [SurveillanceDataPoint.from_dict(dp) for dp in payload]

    async def set(self, key: str, data_points: List[SurveillanceDataPoint], ttl_seconds: float) -> None:
        payload = [dp.to_dict() for dp in data_points]
        self._entries[sanitize_key(key)] = (self._clock() + ttl_seconds, payload)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DiskSurveillanceCache(SurveillanceCache):
    """
    Persistent cache shared by all workers on one host.

    diskcache is synchronous, so reads and writes run in a worker thread to
    keep the event loop free while adapters fan out.
    """

    def __init__(self, directory: str):
        self.directory = directory
        self._cache = Cache(directory)
        logger.info(f"DiskSurveillanceCache initialized at {directory}")

    async def get(self, key: str) -> Optional[List[SurveillanceDataPoint]]:
        try:
            payload = await asyncio.to_thread(self._cache.get, sanitize_key(key))
        except Exception as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None
        if payload is None:
            return None
        return [SurveillanceDataPoint.from_dict(dp) for dp in payload]

    async def set(self, key: str, data_points: List[SurveillanceDataPoint], ttl_seconds: float) -> None:
        payload = [dp.to_dict() for dp in data_points]
        try:
            await asyncio.to_thread(self._cache.set, sanitize_key(key), payload, expire=ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")

    def close(self) -> None:
        self._cache.close()


def build_cache(backend: str, directory: Optional[str] = None) -> SurveillanceCache:
    """Create the cache named by configuration ("memory", "disk" or "none")."""
    if backend == "disk":
        if not directory:
            raise ValueError("disk cache backend requires a directory")
        return DiskSurveillanceCache(directory)
    if backend == "none":
        return NullCache()
    return MemoryCache()
