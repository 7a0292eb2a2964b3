# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process transports for tests and offline use."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Union

from ..errors import TransportError
from .client import Transport
from .models import HttpRequest, HttpResponse

if TYPE_CHECKING:
    from ..orchestration.cancellation import CancellationToken

StubResult = Union[HttpResponse, TransportError]
StubOutcome = Union[StubResult, Callable[[HttpRequest], Union[StubResult, Awaitable[StubResult]]]]


class StubTransport(Transport):
    """
    Deterministic, programmable Transport.

    Outcomes are registered per URL as a sequence consumed one per call (the last one
    repeats). An outcome is a response, a TransportError to raise, or a (possibly
    async) callable producing either. Responses with status >= 400 are raised as
    TransportError like a real transport would. `delay` keeps each call pending so tests can overlap them.
    """

    def __init__(self, responses: dict[str, Sequence[StubOutcome] | StubOutcome] | None = None, *, delay: float = 0.0):
        self._outcomes: dict[str, list[StubOutcome]] = {}
        self._served: dict[str, int] = {}
        self.delay = delay
        self.requests: list[HttpRequest] = []
        self.closed = False
        for url, outcome in (responses or {}).items():
            self.add(url, outcome)

    def add(self, url: str, outcome: Sequence[StubOutcome] | StubOutcome) -> None:
        if isinstance(outcome, (list, tuple)):
            self._outcomes[url] = list(outcome)
        else:
            self._outcomes[url] = [outcome]
        self._served[url] = 0

    def calls_to(self, url: str) -> int:
        return sum(1 for request in self.requests if request.url == url)

    def _next_outcome(self, request: HttpRequest) -> StubOutcome:
        outcomes = self._outcomes.get(request.url)
        if not outcomes:
            return TransportError("No stubbed response configured")
        index = self._served[request.url]
        self._served[request.url] = index + 1
        return outcomes[min(index, len(outcomes) - 1)]

    async def _respond(self, request: HttpRequest) -> HttpResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        outcome = self._next_outcome(request)
        if callable(outcome):
            outcome = outcome(request)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        if isinstance(outcome, TransportError):
            raise outcome
        if outcome.status_code >= 400:
            raise TransportError(f"Request failed with status code {outcome.status_code}", response=outcome)
        return outcome

    async def send(self, request: HttpRequest, token: CancellationToken) -> HttpResponse:
        self.requests.append(request)
        return await token.run(self._respond(request))

    async def aclose(self) -> None:
        self.closed = True
