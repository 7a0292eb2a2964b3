# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header helpers.

Header names are case-insensitive (RFC 9110), but callers, header stores and
`rotate_headers` hooks all exchange plain dicts. Lookups and merges go through
these helpers so `Authorization` and `authorization` are one header.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


def iter_header_items(headers: Any) -> Iterator[tuple[str, str | None]]:
    """
    Yield (name, value) pairs from any header container.

    Accepts plain dicts, httpx.Headers, objects exposing `.items()` and
    iterables of pairs. Unusable containers yield nothing.
    """
    if not headers:
        return
    if isinstance(headers, Mapping) or callable(getattr(headers, "items", None)):
        pairs = headers.items()
    else:
        pairs = headers
    try:
        for key, value in pairs:
            if key is None or not str(key).strip():
                continue
            yield str(key).strip(), None if value is None else str(value)
    except (TypeError, ValueError):
        return


def normalize_headers(headers: Any) -> dict[str, str]:
    """Lowercase-keyed copy; used for response headers."""
    return {name.lower(): value or "" for name, value in iter_header_items(headers)}


def header_value(headers: Any, name: str, default: str = "") -> str:
    if not name:
        return default
    wanted = name.lower()
    for key, value in iter_header_items(headers):
        if key.lower() == wanted:
            return default if value is None else value.strip()
    return default


def has_header(headers: Any, name: str) -> bool:
    return bool(header_value(headers, name))


def merge_headers(*layers: Any) -> dict[str, str]:
    """
    Merge header layers left to right; later layers win.

    Names compare case-insensitively and the spelling of the winning layer is
    kept, so a call-level `authorization` replaces a default `Authorization`.
    """
    merged: dict[str, str] = {}
    spelling: dict[str, str] = {}
    for layer in layers:
        for key, value in iter_header_items(layer):
            if value is None:
                continue
            previous = spelling.get(key.lower())
            if previous is not None and previous != key:
                del merged[previous]
            spelling[key.lower()] = key
            merged[key] = value
    return merged


__all__ = ["has_header", "header_value", "iter_header_items", "merge_headers", "normalize_headers"]
