"""Result cache contract, in-process TTL backend, and key composition."""

from __future__ import annotations

import copy
import hashlib
import json
import threading
import time
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

KEY_PREFIX = "wip-report:v1:"


class ResultCache(Protocol):
    def get(self, key: str) -> dict[str, Any] | None: ...

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None: ...


class InMemoryResultCache:
    """Thread-safe dict with per-entry expiry. Shared across requests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 1024) -> None:
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            now = self._clock()
            if len(self._entries) >= self._max_entries and key not in self._entries:
                self._evict(now)
            self._entries[key] = (now + ttl_seconds, copy.deepcopy(value))

    def _evict(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        if len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda key: self._entries[key][0])
            del self._entries[oldest]


def build_cache_key(
    *,
    scope: str,
    subject: str | int,
    strategy: str,
    mode: str | None = None,
    fiscal_year: str | int | None = None,
    fiscal_month: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    sub_service_line_group: str | None = None,
    window: tuple[str | None, str | None] = (None, None),
) -> str:
    """Deterministic key over the full request record plus the source strategy.

    Values are normalized to strings and serialized with sorted keys, so the
    same filters always map to the same key regardless of argument order.
    ``window`` holds the resolved ISO dates so a defaulted fiscal year rolls
    over to a new key.
    """

    record = {
        "window": list(window),
        "scope": scope,
        "subject": str(subject),
        "strategy": strategy,
        "mode": mode,
        "fiscal_year": None if fiscal_year is None else str(fiscal_year),
        "fiscal_month": fiscal_month,
        "start_date": start_date,
        "end_date": end_date,
        "sub_service_line_group": sub_service_line_group,
    }
    canonical = json.dumps(record, sort_keys=True, separators=(",", ":"))
    return KEY_PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@lru_cache
def get_result_cache() -> InMemoryResultCache:
    """Process-wide cache instance."""

    return InMemoryResultCache()
