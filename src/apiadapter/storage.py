# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Persistent default request headers.

DefaultHeaders holds the headers sent with every request (typically auth tokens
rotated by the server). It is loaded from a HeaderStore at startup and on
`reload()`, merged on every rotation and written back to the store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from .config import DEFAULT_HEADER_STORE_KEY, AdapterSettings
from .http.headers import merge_headers

logger = logging.getLogger(__name__)


class HeaderStore(Protocol):
    def get(self, key: str) -> Mapping[str, str] | None: ...

    def set(self, key: str, value: Mapping[str, str]) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryHeaderStore(HeaderStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Mapping[str, Mapping[str, str]] | None = None):
        self._data: dict[str, dict[str, str]] = {key: dict(value) for key, value in (initial or {}).items()}

    def get(self, key: str) -> Mapping[str, str] | None:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: Mapping[str, str]) -> None:
        self._data[key] = dict(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileHeaderStore(HeaderStore):
    """
    Store backed by one JSON object on disk.

    Writes go through a temporary file and an atomic replace. A missing or
    unreadable file reads as empty.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Could not read header store %s: %s", self.path, exc)
            return {}
        try:
            loaded = json.loads(raw) if raw.strip() else {}
        except ValueError as exc:
            logger.warning("Ignoring corrupt header store %s: %s", self.path, exc)
            return {}
        return loaded if isinstance(loaded, dict) else {}

    def _write_all(self, data: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Mapping[str, str] | None:
        value = self._read_all().get(key)
        if not isinstance(value, Mapping):
            return None
        return {str(k): str(v) for k, v in value.items()}

    def set(self, key: str, value: Mapping[str, str]) -> None:
        data = self._read_all()
        data[key] = dict(value)
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


def create_default_header_store(settings: AdapterSettings) -> HeaderStore:
    """JSON file store when a path is configured, in-memory store otherwise."""
    if settings.header_store_path:
        return JsonFileHeaderStore(settings.header_store_path)
    return MemoryHeaderStore()


class DefaultHeaders:
    """Adapter-wide default request headers backed by a HeaderStore."""

    def __init__(self, store: HeaderStore, *, key: str = DEFAULT_HEADER_STORE_KEY):
        self.store = store
        self.key = key
        self._headers: dict[str, str] = {}

    def reload(self) -> dict[str, str]:
        """Merge the persisted headers into memory (startup and focus-regain)."""
        persisted = self.store.get(self.key)
        if persisted:
            self._headers = merge_headers(self._headers, persisted)
        return self.snapshot()

    def snapshot(self) -> dict[str, str]:
        return dict(self._headers)

    def patch(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        """Merge `headers` into the defaults and persist the result."""
        if not headers:
            return self.snapshot()
        self._headers = merge_headers(self._headers, headers)
        self.store.set(self.key, self._headers)
        return self.snapshot()

    def clear(self) -> None:
        self._headers.clear()
        self.store.remove(self.key)

    def __getitem__(self, name: str) -> str:
        return self._headers[name]

    def __contains__(self, name: object) -> bool:
        return name in self._headers

    def __len__(self) -> int:
        return len(self._headers)


__all__ = [
    "DefaultHeaders",
    "HeaderStore",
    "JsonFileHeaderStore",
    "MemoryHeaderStore",
    "create_default_header_store",
]
