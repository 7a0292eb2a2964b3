# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Cooperative cancellation for transport attempts.

Every transport attempt gets its own CancellationToken wrapped in a
CancellationHandle. Handles live in the adapter's CancellationRegistry while the
attempt is outstanding so a session-expiry signal can abort all of them at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterator
from contextlib import suppress
from typing import TypeVar

from ..errors import CANCELLED_API_REQUEST_MESSAGE, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal observed by a Transport."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> bool:
        """Signal cancellation. Returns False when the token was already cancelled."""
        if self._event.is_set():
            return False
        self.reason = reason or CANCELLED_API_REQUEST_MESSAGE
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise TransportError.cancelled_attempt(self.reason)

    async def wait(self) -> str | None:
        await self._event.wait()
        return self.reason

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token fires first.

        On cancellation the pending work is cancelled and TransportError(cancelled=True)
        is raised with the cancellation reason.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()

        if work.done() and not work.cancelled():
            return work.result()
        raise TransportError.cancelled_attempt(self.reason)


class CancellationHandle:
    """Cancellation handle for exactly one transport attempt."""

    __slots__ = ("label", "token")

    def __init__(self, label: str = "operation"):
        self.label = label
        self.token = CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self, reason: str | None = None) -> bool:
        return self.token.cancel(reason)

    def __repr__(self) -> str:
        return f"CancellationHandle(label={self.label!r}, cancelled={self.cancelled})"


class CancellationRegistry:
    """Outstanding cancellation handles, in registration order."""

    def __init__(self) -> None:
        self._handles: list[CancellationHandle] = []

    def open(self, label: str = "operation") -> CancellationHandle:
        handle = CancellationHandle(label)
        self._handles.append(handle)
        return handle

    def register(self, handle: CancellationHandle) -> None:
        if handle not in self._handles:
            self._handles.append(handle)

    def discard(self, handle: CancellationHandle) -> None:
        with suppress(ValueError):
            self._handles.remove(handle)

    def snapshot(self) -> list[CancellationHandle]:
        return list(self._handles)

    def cancel_all(self, *, exclude: CancellationHandle | None = None, reason: str | None = None) -> int:
        """
        Cancel every registered handle except `exclude`.

        Iterates a copy; cancelling wakes the owning attempt which then removes its
        own handle. Handles that were already cancelled are skipped.
        """
        cancelled = 0
        for handle in self.snapshot():
            if handle is exclude:
                continue
            if handle.cancel(reason):
                cancelled += 1
        if cancelled:
            logger.debug("Cancelled %d in-flight request(s)", cancelled)
        return cancelled

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, handle: object) -> bool:
        return handle in self._handles

    def __iter__(self) -> Iterator[CancellationHandle]:
        return iter(self.snapshot())


__all__ = ["CancellationHandle", "CancellationRegistry", "CancellationToken"]
