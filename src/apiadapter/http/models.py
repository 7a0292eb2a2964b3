# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request/response data models shared by the adapter, orchestrator and transports."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..config import AdapterSettings
from .headers import merge_headers, normalize_headers

Headers = dict[str, str]

MaybeAwaitable = Union[Any, Awaitable[Any]]


@dataclass(frozen=True)
class RequestHandleController:
    """Handed to `get_request_controller` so callers can abort their own attempt."""

    cancel_request: Callable[[], None]


@dataclass
class RequestDescriptor:
    """
    Per-call request options.

    The dispatch fields (method, headers, body, params, files, cache_id) define the
    request's identity for deduplication. `label` only appears in failure messages, and
    the hook fields are never part of the identity.
    """

    method: str = "GET"
    headers: Headers = field(default_factory=dict)
    body: Any = None
    params: Mapping[str, Any] | None = None
    files: Mapping[str, Any] | None = None
    label: str = "operation"
    cache_id: str | None = None
    timeout: float | None = None
    on_server_success: Callable[[HttpResponse], MaybeAwaitable] | None = None
    get_stale_while_revalidate: Callable[[Any], Any] | None = None
    process_response: Callable[[HttpResponse], Union[HttpResponse, Awaitable[HttpResponse]]] | None = None
    get_request_controller: Callable[[RequestHandleController], Any] | None = None

    def __post_init__(self) -> None:
        self.method = (self.method or "GET").upper()
        self.headers = {str(k): str(v) for k, v in (self.headers or {}).items()}

    @property
    def is_read(self) -> bool:
        return self.method == "GET"


@dataclass
class HttpRequest:
    """Normalized request representation consumed by Transport implementations."""

    url: str
    method: str = "GET"
    headers: Headers = field(default_factory=dict)
    body: Any = None
    params: Mapping[str, Any] | None = None
    files: Mapping[str, Any] | None = None
    timeout: float | None = None
    with_credentials: bool = True

    @classmethod
    def from_descriptor(
        cls,
        url: str,
        descriptor: RequestDescriptor,
        *,
        default_headers: Mapping[str, str] | None = None,
        settings: AdapterSettings | None = None,
    ) -> HttpRequest:
        """Merge default headers under the per-call headers and copy the dispatch fields."""
        return cls(
            url=url,
            method=descriptor.method,
            headers=merge_headers(default_headers, descriptor.headers),
            body=descriptor.body,
            params=descriptor.params,
            files=descriptor.files,
            timeout=descriptor.timeout,
            with_credentials=settings.with_credentials if settings is not None else True,
        )


@dataclass
class HttpResponse:
    """Normalized HTTP response handed back to callers."""

    status_code: int
    headers: Headers = field(default_factory=dict)
    data: Any = None
    text: str = ""
    content: bytes = b""
    url: str | None = None
    from_cache: bool = False
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def from_cache_entry(cls, data: Any, *, url: str | None = None) -> HttpResponse:
        return cls(status_code=200, data=data, url=url, from_cache=True)

    @classmethod
    def build(
        cls,
        status_code: int,
        *,
        headers: Mapping[object, object] | None = None,
        content: bytes = b"",
        encoding: str | None = None,
        url: str | None = None,
    ) -> HttpResponse:
        """Decode a raw body: JSON when it parses, text otherwise."""
        try:
            text = content.decode(encoding or "utf-8", errors="replace")
        except LookupError:
            text = content.decode("utf-8", errors="replace")
        data: Any = text
        if text:
            try:
                data = json.loads(text)
            except ValueError:
                data = text
        return cls(
            status_code=status_code,
            headers=normalize_headers(headers),
            data=data,
            text=text,
            content=content,
            url=url,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HttpResponse:
        """Build a response from a plain mapping (stubbed or recorded responses)."""
        status_code = int(data.get("status_code") or 200)
        body = data.get("data", data.get("body"))
        if isinstance(body, (bytes, bytearray, memoryview)):
            return cls.build(status_code, headers=data.get("headers"), content=bytes(body), url=data.get("url"))
        text = body if isinstance(body, str) else ("" if body is None else json.dumps(body))
        return cls(
            status_code=status_code,
            headers=normalize_headers(data.get("headers")),
            data=body,
            text=text,
            content=text.encode("utf-8"),
            url=data.get("url"),
        )


ResponseProcessor = Callable[[HttpResponse], Union[HttpResponse, Awaitable[HttpResponse]]]
