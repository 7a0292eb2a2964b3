# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Helpers for hooks that may be plain callables or coroutine functions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any


async def resolve_maybe_awaitable(value: Any) -> Any:
    """Await `value` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_best_effort(
    hook: Callable[..., Any] | None,
    *args: Any,
    logger: logging.Logger,
    description: str,
) -> Any:
    """
    Invoke an optional hook whose failure must not affect the request outcome.

    Exceptions are logged (with traceback at DEBUG) and swallowed; returns None
    in that case.
    """
    if hook is None:
        return None
    try:
        return await resolve_maybe_awaitable(hook(*args))
    except Exception as exc:  # noqa: BLE001
        logger.warning("%s failed: %s", description, exc)
        logger.debug("%s traceback", description, exc_info=True)
        return None


__all__ = ["call_best_effort", "resolve_maybe_awaitable"]
