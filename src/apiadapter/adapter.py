# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level API adapter: the public get/post/put/patch/delete surface."""

from __future__ import annotations

import json
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import replace
from typing import Any

from .cache import CacheCollaborator
from .config import AdapterSettings, load_adapter_settings
from .http.client import Transport, create_default_transport
from .http.headers import has_header
from .http.models import HttpResponse, RequestDescriptor
from .orchestration.controller import RequestController
from .orchestration.orchestrator import RequestOrchestrator
from .storage import DefaultHeaders, HeaderStore, create_default_header_store

JSON_CONTENT_TYPE = "application/json"


def build_descriptor(
    options: RequestDescriptor | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
    *,
    method: str,
) -> RequestDescriptor:
    """Combine caller options and keyword overrides into a fresh descriptor for `method`."""
    if options is None:
        base = RequestDescriptor()
    elif isinstance(options, RequestDescriptor):
        base = options
    else:
        base = RequestDescriptor(**dict(options))
    fields = dict(overrides)
    fields["method"] = method
    return replace(base, **fields)


def apply_default_request_options(descriptor: RequestDescriptor) -> RequestDescriptor:
    """
    Body normalization for POST/PUT/PATCH.

    Dict and list bodies are JSON-encoded and labelled application/json unless the
    caller already set a Content-Type. Multipart uploads keep their Content-Type
    unset so the transport can add the boundary.
    """
    if descriptor.body is None or descriptor.files or has_header(descriptor.headers, "Content-Type"):
        return descriptor
    if isinstance(descriptor.body, (dict, list)):
        headers = dict(descriptor.headers)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        return replace(descriptor, body=json.dumps(descriptor.body), headers=headers)
    return descriptor


class APIAdapter:
    """
    Convenience wrapper that wires one transport, header store, cache and controller
    into a single RequestOrchestrator.

    All calls made through one adapter share its deduplication queue, default
    headers and cancellation registry. The adapter must be used from one event loop.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        settings: AdapterSettings | None = None,
        controller: RequestController | None = None,
        cache: CacheCollaborator | None = None,
        header_store: HeaderStore | None = None,
    ):
        self.settings = settings or load_adapter_settings()
        self.transport = transport if transport is not None else create_default_transport(self.settings)
        self.header_store = header_store if header_store is not None else create_default_header_store(self.settings)
        self.default_headers = DefaultHeaders(self.header_store, key=self.settings.header_store_key)
        self.default_headers.reload()
        self.controller = controller if controller is not None else RequestController()
        self.orchestrator = RequestOrchestrator(
            self.transport,
            settings=self.settings,
            controller=self.controller,
            cache=cache,
            default_headers=self.default_headers,
        )

    async def request(
        self,
        method: str,
        path: str,
        options: RequestDescriptor | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> HttpResponse:
        descriptor = build_descriptor(options, overrides, method=method.upper())
        if descriptor.method in {"POST", "PUT", "PATCH"}:
            descriptor = apply_default_request_options(descriptor)
        return await self.orchestrator.fetch(path, descriptor)

    async def get(self, path: str, options: RequestDescriptor | Mapping[str, Any] | None = None, **overrides: Any) -> HttpResponse:
        return await self.request("GET", path, options, **overrides)

    async def post(self, path: str, options: RequestDescriptor | Mapping[str, Any] | None = None, **overrides: Any) -> HttpResponse:
        return await self.request("POST", path, options, **overrides)

    async def put(self, path: str, options: RequestDescriptor | Mapping[str, Any] | None = None, **overrides: Any) -> HttpResponse:
        return await self.request("PUT", path, options, **overrides)

    async def patch(self, path: str, options: RequestDescriptor | Mapping[str, Any] | None = None, **overrides: Any) -> HttpResponse:
        return await self.request("PATCH", path, options, **overrides)

    async def delete(self, path: str, options: RequestDescriptor | Mapping[str, Any] | None = None, **overrides: Any) -> HttpResponse:
        return await self.request("DELETE", path, options, **overrides)

    async def logout(self) -> None:
        """Forget the default headers, in memory and in the header store."""
        self.default_headers.clear()

    def patch_default_request_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        return self.default_headers.patch(headers)

    def reload_default_headers(self) -> dict[str, str]:
        """Re-read persisted headers, e.g. after another process rotated them."""
        return self.default_headers.reload()

    def cancel_pending_requests(self, reason: str | None = None) -> int:
        return self.orchestrator.cancel_pending_requests(reason)

    async def aclose(self) -> None:
        with suppress(Exception):
            if hasattr(self.transport, "aclose"):
                await self.transport.aclose()

    async def __aenter__(self) -> APIAdapter:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()


def create_api_adapter(
    transport: Transport | None = None,
    *,
    settings: AdapterSettings | None = None,
    controller: RequestController | None = None,
    cache: CacheCollaborator | None = None,
    header_store: HeaderStore | None = None,
) -> APIAdapter:
    """Factory for an adapter with environment-backed settings."""
    return APIAdapter(
        transport,
        settings=settings,
        controller=controller,
        cache=cache,
        header_store=header_store,
    )


__all__ = ["APIAdapter", "apply_default_request_options", "build_descriptor", "create_api_adapter"]
