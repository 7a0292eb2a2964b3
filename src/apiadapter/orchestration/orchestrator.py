# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Per-request pipeline.

One logical request (one pending group in the queue) moves through
CHECK_CACHE -> IN_FLIGHT -> (RETRY -> IN_FLIGHT)* -> SETTLED:

- CHECK_CACHE: cacheable GETs consult the cache; a fresh hit settles the group
  without a network call, a stale hit notifies the caller and continues.
- IN_FLIGHT: one transport attempt with its own cancellation handle.
- RETRY: immediate re-issue, decided by the controller hook or the default
  heuristic. There is no backoff.
- SETTLED: every waiter receives the same response or the same exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..cache import CacheCollaborator, CacheEntry
from ..config import AdapterSettings, load_adapter_settings
from ..errors import (
    RequestCancelledError,
    RequestFailedError,
    SessionExpiredError,
    TransportError,
    categorize_exception,
    format_failure_message,
)
from ..http.client import Transport
from ..http.models import HttpRequest, HttpResponse, RequestDescriptor, RequestHandleController
from ..http.retry import RetryConfig, should_retry
from ..http.url import build_resource_url
from ..storage import DefaultHeaders, MemoryHeaderStore
from ..utils.awaitables import call_best_effort, resolve_maybe_awaitable
from .cancellation import CancellationHandle, CancellationRegistry
from .controller import RequestController
from .queue import Reject, RequestQueue, Resolve

logger = logging.getLogger(__name__)


class AttemptOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    RETRY = "RETRY"
    FAIL = "FAIL"


@dataclass
class AttemptResult:
    outcome: AttemptOutcome
    response: HttpResponse | None = None
    error: BaseException | None = None


def _coerce_cache_entry(value: Any) -> CacheEntry | None:
    if value is None or isinstance(value, CacheEntry):
        return value
    if isinstance(value, Mapping) and "data" in value:
        is_stale = value.get("is_stale", value.get("isStale", False))
        return CacheEntry(data=value["data"], is_stale=bool(is_stale))
    logger.debug("Ignoring unrecognised cache entry of type %s", type(value).__name__)
    return None


class RequestOrchestrator:
    """
    Deduplicated, cached, retried request execution for one adapter.

    Owns the adapter's shared state: the deduplication queue, the cancellation
    registry and (by reference) the default headers and controller hooks.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        settings: AdapterSettings | None = None,
        controller: RequestController | None = None,
        cache: CacheCollaborator | None = None,
        default_headers: DefaultHeaders | None = None,
        queue: RequestQueue | None = None,
        registry: CancellationRegistry | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.settings = settings or load_adapter_settings()
        self.transport = transport
        self.controller = controller if controller is not None else RequestController()
        self.cache = cache
        self.default_headers = (
            default_headers
            if default_headers is not None
            else DefaultHeaders(MemoryHeaderStore(), key=self.settings.header_store_key)
        )
        self.queue = queue if queue is not None else RequestQueue()
        self.registry = registry if registry is not None else CancellationRegistry()
        self.retry_config = retry_config or RetryConfig.from_settings(self.settings)

    async def fetch(self, path: str, descriptor: RequestDescriptor | None = None) -> HttpResponse:
        """Resolve `path`, join or start its pending group and wait for the shared result."""
        descriptor = descriptor or RequestDescriptor()
        url = build_resource_url(self.settings.host_url, path)
        # Snapshot per call so headers rotated by an earlier response are picked up.
        default_headers = self.default_headers.snapshot()

        async def run(request_id: str, resolve: Resolve, reject: Reject) -> None:
            await self._run(request_id, resolve, reject, url=url, descriptor=descriptor, default_headers=default_headers)

        return await self.queue.enqueue(url, descriptor, run)

    def cancel_pending_requests(self, reason: str | None = None) -> int:
        """Cancel every in-flight transport attempt."""
        return self.registry.cancel_all(reason=reason)

    def _is_cacheable(self, descriptor: RequestDescriptor) -> bool:
        return self.cache is not None and descriptor.is_read and bool(descriptor.cache_id)

    async def _run(
        self,
        request_id: str,
        resolve: Resolve,
        reject: Reject,
        *,
        url: str,
        descriptor: RequestDescriptor,
        default_headers: dict[str, str],
    ) -> None:
        if self._is_cacheable(descriptor):
            entry = await self._read_cache(request_id, descriptor)
            if entry is not None and not entry.is_stale:
                logger.debug("Cache hit for '%s' (%s)", descriptor.label, descriptor.cache_id)
                resolve(HttpResponse.from_cache_entry(entry.data, url=url))
                return
            if entry is not None:
                logger.debug("Stale cache hit for '%s', revalidating", descriptor.label)
                await call_best_effort(
                    descriptor.get_stale_while_revalidate,
                    entry.data,
                    logger=logger,
                    description=f"Stale-while-revalidate hook for '{descriptor.label}'",
                )

        request = HttpRequest.from_descriptor(url, descriptor, default_headers=default_headers, settings=self.settings)
        attempt = 0
        while True:
            result = await self._attempt(request, descriptor, attempt)
            if result.outcome is AttemptOutcome.RETRY:
                attempt += 1
                logger.debug("Retrying '%s' (retry %d)", descriptor.label, attempt)
                continue
            if result.outcome is AttemptOutcome.FAIL:
                reject(result.error or RequestFailedError(f"Error: '{descriptor.label}' failed", label=descriptor.label))
                return
            break

        response = await self._complete(result.response, request_id, descriptor, default_headers)
        resolve(response)

    async def _attempt(self, request: HttpRequest, descriptor: RequestDescriptor, attempt: int) -> AttemptResult:
        handle = CancellationHandle(descriptor.label)
        if descriptor.get_request_controller is not None:
            descriptor.get_request_controller(RequestHandleController(cancel_request=handle.cancel))
        self.registry.register(handle)

        try:
            response = await self.transport.send(request, handle.token)
        except asyncio.CancelledError:
            self.registry.discard(handle)
            raise
        except TransportError as error:
            return await self._classify_failure(error, attempt, handle, descriptor)
        except Exception as exc:  # noqa: BLE001
            error = TransportError(str(exc), category=categorize_exception(exc))
            error.__cause__ = exc
            return await self._classify_failure(error, attempt, handle, descriptor)

        self.registry.discard(handle)
        return AttemptResult(AttemptOutcome.SUCCESS, response=response)

    async def _classify_failure(
        self,
        error: TransportError,
        attempt: int,
        handle: CancellationHandle,
        descriptor: RequestDescriptor,
    ) -> AttemptResult:
        retry = await self._controller_wants_retry(error, attempt)
        if not retry:
            retry = should_retry(error, attempt, self.retry_config)

        error = await self._rewrite_error(error)
        self.controller.emit_error(error)
        self.registry.discard(handle)

        message, server_message = format_failure_message(descriptor.label, error)
        if server_message is not None and server_message in self.settings.session_expiry_messages:
            cancelled = self.registry.cancel_all(exclude=handle)
            logger.warning(
                "'%s' reported %r; cancelled %d other in-flight request(s)",
                descriptor.label,
                server_message,
                cancelled,
            )
            return AttemptResult(
                AttemptOutcome.FAIL,
                error=SessionExpiredError(server_message, label=descriptor.label, cause=error),
            )

        if retry:
            return AttemptResult(AttemptOutcome.RETRY, error=error)

        logger.debug("'%s' failed after %d attempt(s): %s", descriptor.label, attempt + 1, message)
        error_cls = RequestCancelledError if error.cancelled else RequestFailedError
        return AttemptResult(AttemptOutcome.FAIL, error=error_cls(message, label=descriptor.label, cause=error))

    async def _controller_wants_retry(self, error: TransportError, attempt: int) -> bool:
        hook = self.controller.should_retry_request
        if hook is None:
            return False
        try:
            return bool(await resolve_maybe_awaitable(hook(error, attempt)))
        except Exception as exc:  # noqa: BLE001
            logger.warning("should_retry_request hook failed: %s", exc)
            return False

    async def _rewrite_error(self, error: TransportError) -> TransportError:
        hook = self.controller.process_response_error
        if hook is None:
            return error
        try:
            rewritten = await resolve_maybe_awaitable(hook(error))
        except Exception as exc:  # noqa: BLE001
            logger.warning("process_response_error hook failed: %s", exc)
            return error
        if isinstance(rewritten, TransportError):
            return rewritten
        if rewritten is not None:
            logger.debug("process_response_error returned %s; keeping the original error", type(rewritten).__name__)
        return error

    async def _complete(
        self,
        response: HttpResponse,
        request_id: str,
        descriptor: RequestDescriptor,
        default_headers: dict[str, str],
    ) -> HttpResponse:
        # Controller-level processing always runs before the call-level processor.
        if self.controller.process_response is not None:
            response = await resolve_maybe_awaitable(self.controller.process_response(response))
        if descriptor.process_response is not None:
            response = await resolve_maybe_awaitable(descriptor.process_response(response))

        if self.controller.rotate_headers is not None:
            rotated = self.controller.rotate_headers(dict(response.headers), dict(default_headers))
            if rotated:
                self.default_headers.patch(rotated)

        if self._is_cacheable(descriptor):
            await self._write_cache(request_id, descriptor, response)

        await call_best_effort(
            descriptor.on_server_success,
            response,
            logger=logger,
            description=f"on_server_success hook for '{descriptor.label}'",
        )
        return response

    async def _read_cache(self, request_id: str, descriptor: RequestDescriptor) -> CacheEntry | None:
        if self.cache is None or not descriptor.cache_id:
            return None
        try:
            value = await resolve_maybe_awaitable(self.cache.get_cached_data(descriptor.cache_id, request_id, descriptor))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache lookup for '%s' failed: %s", descriptor.cache_id, exc)
            return None
        return _coerce_cache_entry(value)

    async def _write_cache(self, request_id: str, descriptor: RequestDescriptor, response: HttpResponse) -> None:
        if self.cache is None or not descriptor.cache_id:
            return
        try:
            stored = await resolve_maybe_awaitable(
                self.cache.cache_data(descriptor.cache_id, request_id, {"data": response.data}, descriptor)
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Caching response for '%s' failed: %s", descriptor.cache_id, exc)
            return
        if stored is False:
            logger.debug("Cache declined response for '%s'", descriptor.cache_id)


__all__ = ["AttemptOutcome", "AttemptResult", "RequestOrchestrator"]
