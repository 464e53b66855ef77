"""
In-memory probe cache keyed by canonical path and invalidated by mtime.

Probing is the expensive step of every classification, so results are kept
for the life of the process. An entry is reused only while the file's
modification time is exactly the one seen before probing; there is no
expiry and no size limit. Failed probes are never stored.

Concurrent lookups for one path share a single ffprobe run: each key has
its own asyncio.Lock and waiters re-check the entry once they hold it.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union, Protocol

from .errors import FilesystemError, ProbeError
from .models import ProbeMetadata, ProbeRecord

logger = logging.getLogger(__name__)


class Prober(Protocol):
    async def probe(self, path: Union[str, Path]) -> ProbeMetadata: ...


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    probes: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "probes": self.probes,
            "failures": self.failures,
        }


class ProbeCache:
    """Memoizes prober output per file."""

    def __init__(self, prober: Prober):
        self.prober = prober
        self.stats = CacheStats()
        self._entries: Dict[str, ProbeRecord] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self._key(path) in self._entries

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return os.path.realpath(path)

    @staticmethod
    def _current_mtime(key: str) -> float:
        try:
            return os.stat(key).st_mtime
        except FileNotFoundError as e:
            raise FilesystemError(f"File not found: {key}", path=key) from e
        except OSError as e:
            raise FilesystemError(f"Cannot stat {key}: {e}", path=key) from e

    def _lookup(self, key: str, mtime: float):
        record = self._entries.get(key)
        if record is not None and record.mtime_at_probe == mtime:
            return record.metadata
        return None

    async def get_metadata(self, path: Union[str, Path]) -> ProbeMetadata:
        """
        Return probe metadata for path, probing only when needed.

        Raises:
            FilesystemError: the file cannot be stat-ed.
            ProbeError: ffprobe failed; nothing is cached.
        """
        key = self._key(path)
        mtime = self._current_mtime(key)

        cached = self._lookup(key, mtime)
        if cached is not None:
            self.stats.hits += 1
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another waiter may have probed while we queued
                mtime = self._current_mtime(key)
                cached = self._lookup(key, mtime)
                if cached is not None:
                    self.stats.hits += 1
                    return cached

                self.stats.misses += 1
                self.stats.probes += 1
                if key in self._entries:
                    logger.debug(f"[Cache] mtime changed, re-probing {key}")
                try:
                    metadata = await self.prober.probe(key)
                except ProbeError:
                    self.stats.failures += 1
                    raise

                self._entries[key] = ProbeRecord(mtime_at_probe=mtime, metadata=metadata)
                return metadata
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def invalidate(self, path: Union[str, Path]) -> bool:
        """Drop the entry for path. Returns True if one existed."""
        return self._entries.pop(self._key(path), None) is not None

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"[Cache] Cleared {count} entries")
        return count
