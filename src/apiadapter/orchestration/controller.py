# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Adapter-wide request hooks and error-event listeners."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Union

from ..errors import TransportError
from ..http.models import Headers, ResponseProcessor

logger = logging.getLogger(__name__)

HeaderRotator = Callable[[Headers, Headers], Mapping[str, str]]
ErrorProcessor = Callable[[TransportError], Union[TransportError, None, Awaitable[Union[TransportError, None]]]]
RetryDecider = Callable[[TransportError, int], Union[bool, Awaitable[bool]]]
ErrorListener = Callable[[TransportError], object]


@dataclass
class RequestController:
    """
    Optional hooks consulted by the orchestrator on every request.

    - rotate_headers(response_headers, request_default_headers) -> headers merged into the defaults
    - process_response(response) -> response, runs before the call-level processor
    - process_response_error(error) -> replacement error (None keeps the original)
    - should_retry_request(error, attempt) -> True forces a retry
    Any hook except rotate_headers may be a coroutine function.
    """

    rotate_headers: HeaderRotator | None = None
    process_response: ResponseProcessor | None = None
    process_response_error: ErrorProcessor | None = None
    should_retry_request: RetryDecider | None = None
    error_listeners: list[ErrorListener] = field(default_factory=list)

    def subscribe(self, listener: ErrorListener) -> Callable[[], None]:
        """Register an error listener; returns a callable that unsubscribes it."""
        self.error_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.error_listeners:
                self.error_listeners.remove(listener)

        return unsubscribe

    def emit_error(self, error: TransportError) -> None:
        # One listener's failure must not keep the others from running.
        for listener in list(self.error_listeners):
            try:
                listener(error)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error listener %r failed: %s", listener, exc)


__all__ = ["ErrorListener", "HeaderRotator", "RequestController"]
