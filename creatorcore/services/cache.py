from __future__ import annotations

import hashlib
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import orjson

from creatorcore.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CacheRecord:
    payload: Any
    cached_at: float
    stale_after: float
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.stale_after

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[CacheRecord]: ...

    def set(self, key: str, payload: Any) -> None: ...

    def evict_expired(self) -> int: ...


class InMemoryTTLCache:
    """Keyed store whose entries go stale after ``ttl_seconds`` and expire after ``max_stale_seconds`` more."""

    def __init__(
        self,
        ttl_seconds: float,
        max_stale_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_stale_seconds = max_stale_seconds
        self._clock = clock
        self._records: Dict[str, CacheRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheRecord]:
        now = self._clock()
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if record.is_expired(now):
                del self._records[key]
                return None
            return record

    def set(self, key: str, payload: Any) -> None:
        now = self._clock()
        record = CacheRecord(
            payload=payload,
            cached_at=now,
            stale_after=now + self.ttl_seconds,
            expires_at=now + self.ttl_seconds + self.max_stale_seconds,
        )
        with self._lock:
            self._records[key] = record

    def evict_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)


def make_cache_key(namespace: str, *, org_id: str, role: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Tenant + role + query parameters, hashed so keys stay short."""
    encoded = orjson.dumps(
        {"org_id": org_id, "role": role, "params": dict(params or {})},
        option=orjson.OPT_SORT_KEYS,
        default=str,
    )
    return f"{namespace}:{hashlib.sha256(encoded).hexdigest()}"


class StaleWhileRevalidateView:
    """
    Serve aggregate views from cache.

    Fresh hits return immediately. Stale hits also return immediately and
    schedule one background refresh per key. Refresh failures and cache write
    failures are logged and never reach the caller.
    """

    def __init__(
        self,
        cache: CacheBackend,
        executor: Optional[ThreadPoolExecutor] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache = cache
        self._clock = clock
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="view-cache")
        self._inflight: set[str] = set()
        self._lock = threading.Lock()

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        record = self._read(key)
        if record is not None:
            if not record.is_fresh(self._clock()):
                self._schedule_refresh(key, loader)
            return record.payload
        payload = loader()
        self._write(key, payload)
        return payload

    def _read(self, key: str) -> Optional[CacheRecord]:
        try:
            return self.cache.get(key)
        except Exception:
            logger.exception("View cache read failed", extra={"cache_key": key})
            return None

    def _write(self, key: str, payload: Any) -> None:
        try:
            self.cache.set(key, payload)
        except Exception:
            logger.exception("View cache write failed", extra={"cache_key": key})

    def _schedule_refresh(self, key: str, loader: Callable[[], Any]) -> None:
        with self._lock:
            if key in self._inflight:
                return
            self._inflight.add(key)
        try:
            self._executor.submit(self._refresh, key, loader)
        except RuntimeError:
            with self._lock:
                self._inflight.discard(key)
            logger.exception("View cache refresh could not be scheduled", extra={"cache_key": key})

    def _refresh(self, key: str, loader: Callable[[], Any]) -> None:
        try:
            self._write(key, loader())
        except Exception:
            logger.exception("View cache refresh failed", extra={"cache_key": key})
        finally:
            with self._lock:
                self._inflight.discard(key)


_view_cache: Optional[StaleWhileRevalidateView] = None


def get_view_cache() -> StaleWhileRevalidateView:
    global _view_cache
    if _view_cache is None:
        _view_cache = StaleWhileRevalidateView(
            InMemoryTTLCache(
                ttl_seconds=settings.VIEW_CACHE_TTL_SECONDS,
                max_stale_seconds=settings.VIEW_CACHE_MAX_STALE_SECONDS,
            )
        )
    return _view_cache
