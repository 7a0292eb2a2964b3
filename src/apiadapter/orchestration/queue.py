# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Deduplication queue.

Concurrent calls with the same fingerprint join one pending group and share the
result of a single network call. A group exists only while its call is
outstanding; once settled, an identical call starts a new group.

The lookup-then-insert in `enqueue` contains no await, so on a single event loop
group membership cannot race.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..http.models import RequestDescriptor
from .fingerprint import fingerprint_request

logger = logging.getLogger(__name__)

Resolve = Callable[[Any], None]
Reject = Callable[[BaseException], None]
GroupRunner = Callable[[str, Resolve, Reject], Awaitable[None]]


class RequestQueue:
    """Fingerprint -> waiting futures, in enqueue order."""

    def __init__(self) -> None:
        self._groups: dict[str, list[asyncio.Future[Any]]] = {}
        self._runners: set[asyncio.Task[None]] = set()

    def enqueue(self, url: str, descriptor: RequestDescriptor, runner: GroupRunner) -> asyncio.Future[Any]:
        """
        Join or start the pending group for this request.

        `runner(request_id, resolve, reject)` is scheduled once per group, only
        for the caller that created it.
        """
        request_id = fingerprint_request(url, descriptor)
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[Any] = loop.create_future()

        group = self._groups.get(request_id)
        if group is not None:
            group.append(waiter)
            logger.debug("Joined pending request %s (%d waiting)", request_id[:12], len(group))
            return waiter

        self._groups[request_id] = [waiter]
        task = loop.create_task(self._run_group(request_id, runner))
        self._runners.add(task)
        task.add_done_callback(self._runners.discard)
        return waiter

    async def _run_group(self, request_id: str, runner: GroupRunner) -> None:
        settled = False

        def resolve(payload: Any) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            self.resolve_group(request_id, payload)

        def reject(error: BaseException) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            self.reject_group(request_id, error)

        try:
            await runner(request_id, resolve, reject)
        except asyncio.CancelledError:
            if not settled:
                self.cancel_group(request_id)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Request runner for %s raised %r", request_id[:12], exc)
            if not settled:
                self.reject_group(request_id, exc)
            else:
                logger.warning("Request %s failed after settling: %s", request_id[:12], exc)
        else:
            if not settled:
                # A runner that returns without settling would strand its waiters.
                self.reject_group(request_id, RuntimeError("Request finished without a result"))

    def resolve_group(self, request_id: str, payload: Any) -> None:
        group = self._groups.pop(request_id, None)
        if not group:
            return
        for waiter in group:
            if not waiter.done():
                waiter.set_result(payload)

    def reject_group(self, request_id: str, error: BaseException) -> None:
        group = self._groups.pop(request_id, None)
        if not group:
            return
        for waiter in group:
            if not waiter.done():
                waiter.set_exception(error)

    def cancel_group(self, request_id: str) -> None:
        group = self._groups.pop(request_id, None)
        for waiter in group or ():
            waiter.cancel()

    def waiting(self, request_id: str) -> int:
        return len(self._groups.get(request_id, ()))

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    async def drain(self) -> None:
        """Wait for every scheduled group runner to finish."""
        while self._runners:
            await asyncio.gather(*list(self._runners), return_exceptions=True)


__all__ = ["RequestQueue"]
