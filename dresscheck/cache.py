"""Content-addressed result cache with a fixed time-to-live.

``ResultCache`` is the interface the pipeline depends on. Two
implementations are provided: an in-process memory cache and a
memory-plus-JSON-file cache that survives restarts.
"""

import copy
import hashlib
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 3600


class CacheEntry(BaseModel):
    """A cached value with its absolute expiry time (epoch seconds)."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def make_key(namespace: str, *parts: Any) -> str:
    """Stable sha256 key over a namespace and JSON-serialisable parts."""
    payload = json.dumps(_to_jsonable(list(parts)), sort_keys=True, ensure_ascii=False, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{namespace}:{digest}"


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ResultCache(ABC):
    """get/set/expire interface shared by all cache backends."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store a value, overwriting any previous entry for the key."""

    @abstractmethod
    def expire(self, key: str) -> None:
        """Remove an entry."""

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        return 0


class MemoryTTLCache(ResultCache):
    """Thread-safe in-process cache. Last writer wins.

    Values are stored in their JSON form and handed out as copies, so a
    caller mutating its result never changes what later readers see.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock=time.time):
        super().__init__(ttl_seconds)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(key=key, value=copy.deepcopy(_to_jsonable(value)), expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry

    def expire(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class FileTTLCache(MemoryTTLCache):
    """Memory cache backed by one JSON file per key.

    Values are stored as JSON, so callers get plain dicts/lists back from
    entries loaded from disk and re-validate them into models.
    """

    def __init__(self, cache_dir: str = ".cache/dresscheck", ttl_seconds: float = DEFAULT_TTL_SECONDS, clock=time.time):
        super().__init__(ttl_seconds, clock)
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _get_cache_path(self, key: str) -> Path:
        namespace, _, digest = key.partition(":")
        safe_namespace = "".join(ch if ch.isalnum() else "_" for ch in namespace) or "entry"
        if not digest:
            digest = hashlib.md5(key.encode()).hexdigest()
        return self.cache_dir / f"{safe_namespace}_{digest[:32]}.json"

    def get(self, key: str) -> Optional[Any]:
        value = super().get(key)
        if value is not None:
            return value

        cache_path = self._get_cache_path(key)
        if not cache_path.exists():
            return None

        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                entry = CacheEntry.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Invalid cache file {cache_path.name}: {e}")
            cache_path.unlink(missing_ok=True)
            return None

        if entry.key != key or entry.is_expired(self._clock()):
            cache_path.unlink(missing_ok=True)
            return None

        with self._lock:
            self._entries[key] = entry
        logger.debug(f"Loaded {key} from file cache")
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        super().set(key, value, ttl_seconds)
        with self._lock:
            entry = self._entries[key]

        cache_path = self._get_cache_path(key)
        tmp_path = cache_path.with_suffix(f".{threading.get_ident()}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(entry.model_dump(mode="json"), f, ensure_ascii=False)
            tmp_path.replace(cache_path)
        except OSError as e:
            logger.warning(f"Could not write cache file {cache_path.name}: {e}")
            tmp_path.unlink(missing_ok=True)

    def expire(self, key: str) -> None:
        super().expire(key)
        self._get_cache_path(key).unlink(missing_ok=True)

    def purge_expired(self) -> int:
        super().purge_expired()
        removed = 0
        now = self._clock()
        for cache_path in self.cache_dir.glob("*.json"):
            try:
                with open(cache_path, "r", encoding="utf-8") as f:
                    expires_at = json.load(f).get("expires_at", 0)
            except (OSError, ValueError):
                expires_at = 0
            if now >= expires_at:
                cache_path.unlink(missing_ok=True)
                removed += 1
        return removed


def cached_call(cache: Optional[ResultCache], key: str, compute, decode=None):
    """Return the cached value for ``key`` or compute, store and return it.

    ``decode`` turns a stored value back into the caller's type; it is
    needed for file-backed caches that hand back plain JSON.
    """
    if cache is not None:
        hit = cache.get(key)
        if hit is not None:
            logger.debug(f"Cache hit for {key}")
            return decode(hit) if decode else hit

    value = compute()
    if cache is not None and value is not None:
        cache.set(key, value)
    return value
