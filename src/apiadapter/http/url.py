# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Resource URL resolution."""

from __future__ import annotations

import re

_ABSOLUTE_URL_RE = re.compile(r"^https?:", re.IGNORECASE)


def is_absolute_url(path: str) -> bool:
    return bool(_ABSOLUTE_URL_RE.match(str(path or "")))


def build_resource_url(host_url: str, path: str) -> str:
    """
    Resolve a request path against the adapter host.

    Absolute http(s) URLs are returned unchanged. Everything else is appended to
    `host_url`, with exactly one slash between the two.

    Example:
      ("https://api.example.com/", "/users") -> https://api.example.com/users
    """
    raw_path = str(path or "")
    if is_absolute_url(raw_path):
        return raw_path
    host = str(host_url or "").rstrip("/")
    if not raw_path:
        return host
    if not host:
        return raw_path
    return f"{host}/{raw_path.lstrip('/')}"


__all__ = ["build_resource_url", "is_absolute_url"]
