# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..config import AdapterSettings, load_adapter_settings
from .models import HttpRequest, HttpResponse

if TYPE_CHECKING:
    from ..orchestration.cancellation import CancellationToken


class Transport(Protocol):
    """
    Minimal protocol for issuing HTTP requests.

    `send` returns the response for 2xx/3xx statuses and raises TransportError
    otherwise; the error carries the response when the server answered. The token
    must be honoured cooperatively (see CancellationToken.run).
    """

    async def send(self, request: HttpRequest, token: CancellationToken) -> HttpResponse: ...

    async def aclose(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_transport(settings: AdapterSettings | None = None) -> Transport:
    """Factory for the default httpx-backed transport."""
    from .httpx_client import HttpxTransport

    return HttpxTransport(settings or load_adapter_settings())
