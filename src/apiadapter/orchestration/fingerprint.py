# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request fingerprints used as deduplication keys and cache request ids."""

from __future__ import annotations

import hashlib
import itertools
import json
import time
from collections.abc import Mapping
from typing import Any

from ..http.models import RequestDescriptor

_unique_counter = itertools.count()


def _unique_token() -> str:
    # Wall-clock plus a counter so two uploads in the same tick still differ.
    return f"{time.time_ns()}-{next(_unique_counter)}"


def is_serializable_body(body: Any) -> bool:
    """Return False for bodies that cannot be compared by value (bytes, streams, file objects)."""
    if body is None or isinstance(body, (str, int, float, bool)):
        return True
    if isinstance(body, (bytes, bytearray, memoryview)):
        return False
    if hasattr(body, "read") or hasattr(body, "__aiter__"):
        return False
    if isinstance(body, Mapping):
        return all(is_serializable_body(value) for value in body.values())
    if isinstance(body, (list, tuple)):
        return all(is_serializable_body(value) for value in body)
    return False


def fingerprint_fields(url: str, descriptor: RequestDescriptor) -> dict[str, Any]:
    """
    Dispatch-relevant fields of a request.

    Multipart and binary bodies are replaced by a unique token: they cannot be
    compared, so such requests are never deduplicated.
    """
    body: Any = descriptor.body
    if descriptor.files or not is_serializable_body(body):
        body = _unique_token()
    return {
        "method": descriptor.method,
        "url": url,
        "headers": {str(k).lower(): v for k, v in descriptor.headers.items()},
        "body": body,
        "params": dict(descriptor.params) if descriptor.params else None,
        "cache_id": descriptor.cache_id,
    }


def fingerprint_request(url: str, descriptor: RequestDescriptor) -> str:
    """Return a stable sha256 hex digest identifying the network call a descriptor produces."""
    payload = json.dumps(
        fingerprint_fields(url, descriptor),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


__all__ = ["fingerprint_fields", "fingerprint_request", "is_serializable_body"]
