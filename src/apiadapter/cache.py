# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Response cache collaborators.

The orchestrator only reads and writes through the CacheCollaborator protocol;
entries are keyed by (cache_id, request_id) where request_id is the request
fingerprint. Implementations may be synchronous or asynchronous.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, Union

from .http.models import RequestDescriptor


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    is_stale: bool = False


class CacheCollaborator(Protocol):
    """Read/write contract consulted for cacheable GET requests."""

    def get_cached_data(
        self, cache_id: str, request_id: str, descriptor: RequestDescriptor
    ) -> Union[CacheEntry, None, Awaitable[CacheEntry | None]]: ...

    def cache_data(
        self, cache_id: str, request_id: str, payload: Mapping[str, Any], descriptor: RequestDescriptor
    ) -> Union[bool, Awaitable[bool]]: ...


@dataclass
class _StoredEntry:
    data: Any
    stored_at: float


class MemoryCache(CacheCollaborator):
    """
    In-process cache with time-based staleness.

    Entries older than `stale_after` seconds are served as stale (the caller is
    notified and a fresh request still goes out). `stale_after=None` never marks
    entries stale. Buckets are namespaced by cache_id.
    """

    def __init__(self, *, stale_after: float | None = 300.0, clock: Callable[[], float] = time.monotonic):
        self.stale_after = stale_after
        self._clock = clock
        self._buckets: dict[str, dict[str, _StoredEntry]] = {}

    def _bucket(self, cache_id: str) -> dict[str, _StoredEntry]:
        namespace_key = str(cache_id or "default")
        bucket = self._buckets.get(namespace_key)
        if bucket is None:
            bucket = {}
            self._buckets[namespace_key] = bucket
        return bucket

    def get_cached_data(self, cache_id: str, request_id: str, descriptor: RequestDescriptor) -> CacheEntry | None:  # noqa: ARG002
        stored = self._bucket(cache_id).get(request_id)
        if stored is None:
            return None
        is_stale = self.stale_after is not None and (self._clock() - stored.stored_at) >= self.stale_after
        return CacheEntry(data=stored.data, is_stale=is_stale)

    def cache_data(
        self, cache_id: str, request_id: str, payload: Mapping[str, Any], descriptor: RequestDescriptor  # noqa: ARG002
    ) -> bool:
        if "data" not in payload:
            return False
        self._bucket(cache_id)[request_id] = _StoredEntry(data=payload["data"], stored_at=self._clock())
        return True

    def invalidate(self, cache_id: str | None = None) -> None:
        """Drop one cache_id namespace, or everything when cache_id is None."""
        if cache_id is None:
            self._buckets.clear()
        else:
            self._buckets.pop(str(cache_id), None)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())


__all__ = ["CacheCollaborator", "CacheEntry", "MemoryCache"]
