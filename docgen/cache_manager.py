from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Any, NamedTuple, Optional

from docgen.config import cache_max_entries, cache_ttl_seconds
from docgen.model import DocumentKind

logger = logging.getLogger("docgen")


class CacheKey(NamedTuple):
    kind: str
    source_id: str
    last_modified_ms: int

    def __str__(self) -> str:
        return f"{self.kind}:{self.source_id}:{self.last_modified_ms}"


def to_epoch_ms(value: Any) -> int:
    """Normalize datetime / ISO string / epoch number to epoch milliseconds; missing -> 0."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise TypeError("last_modified must not be a bool")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(moment.timestamp() * 1000)
    if isinstance(value, date):
        return to_epoch_ms(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    return to_epoch_ms(datetime.fromisoformat(text.replace("Z", "+00:00")))


def content_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def make_cache_key(kind: DocumentKind | str, source_id: Any, last_modified: Any = None) -> CacheKey:
    kind_value = getattr(kind, "value", kind)
    return CacheKey(str(kind_value), str(source_id), to_epoch_ms(last_modified))


class CachedPdf(NamedTuple):
    pdf: bytes
    page_count: int = 1
    clipped_writes: int = 0


class DocumentCache:
    """In-memory PDF byte cache with TTL and bounded size.

    - Entries are keyed by the ``CacheKey`` tuple itself.
    - TTL counts from insertion; reads never extend it.
    - When full, the least recently read or written entry is evicted.
    - Values are immutable ``bytes`` plus the page count recorded at render
      time; callers can share them freely.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, max_entries: Optional[int] = None):
        self._ttl = cache_ttl_seconds() if ttl_seconds is None else max(0.0, float(ttl_seconds))
        self._max_entries = cache_max_entries() if max_entries is None else max(1, int(max_entries))
        self._store: OrderedDict[CacheKey, tuple[CachedPdf, float]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def _now(self) -> float:
        return time.monotonic()

    def _prune_expired_unlocked(self) -> None:
        now = self._now()
        expired_keys = [key for key, (_entry, inserted_at) in self._store.items() if now - inserted_at >= self._ttl]
        for key in expired_keys:
            self._store.pop(key, None)
        self._expirations += len(expired_keys)

    def _enforce_max_entries_unlocked(self) -> None:
        while len(self._store) > self._max_entries:
            key, _ = self._store.popitem(last=False)
            self._evictions += 1
            logger.info("PDF cache evicted %s", key)

    def get(self, key: CacheKey) -> Optional[CachedPdf]:
        with self._lock:
            item = self._store.get(key)
            if item is not None and self._now() - item[1] >= self._ttl:
                self._store.pop(key, None)
                self._expirations += 1
                item = None
            if item is None:
                self._misses += 1
                return None
            self._store.move_to_end(key)
            self._hits += 1
            return item[0]

    def put(self, key: CacheKey, value: bytes, page_count: int = 1, clipped_writes: int = 0) -> None:
        if not isinstance(key, CacheKey):
            raise TypeError(f"cache keys must be CacheKey, got {type(key).__name__}")
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"cache values must be bytes, got {type(value).__name__}")
        if self._ttl <= 0:
            return
        entry = CachedPdf(bytes(value), int(page_count), int(clipped_writes))
        with self._lock:
            self._prune_expired_unlocked()
            self._store[key] = (entry, self._now())
            self._store.move_to_end(key)
            self._enforce_max_entries_unlocked()

    def invalidate(self, kind: DocumentKind | str, source_id: Any = None) -> int:
        """Drop every entry for `kind` (optionally one source). Returns entries removed."""
        kind_value = str(getattr(kind, "value", kind))
        source = None if source_id is None else str(source_id)
        with self._lock:
            doomed = [
                key for key in self._store
                if key.kind == kind_value and (source is None or key.source_id == source)
            ]
            for key in doomed:
                self._store.pop(key, None)
        if doomed:
            target = kind_value if source is None else f"{kind_value}:{source}"
            logger.info("PDF cache invalidated %d entr%s for %s", len(doomed), "y" if len(doomed) == 1 else "ies", target)
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            self._prune_expired_unlocked()
            return {
                "size": len(self._store),
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
                "keys": [str(key) for key in self._store],
            }

    def __len__(self) -> int:
        with self._lock:
            self._prune_expired_unlocked()
            return len(self._store)


cache = DocumentCache()
