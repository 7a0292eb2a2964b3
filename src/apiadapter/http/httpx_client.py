# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from ..config import AdapterSettings, load_adapter_settings
from ..errors import TransportError, categorize_exception
from .client import Transport
from .models import HttpRequest, HttpResponse

if TYPE_CHECKING:
    from ..orchestration.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Asynchronous httpx client wrapper."""

    def __init__(self, settings: AdapterSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_adapter_settings()
        self._client = client or httpx.AsyncClient(
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    def _build_request(self, request: HttpRequest) -> httpx.Request:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)

        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": request.params,
            "timeout": request.timeout if request.timeout is not None else self.settings.timeout,
        }
        if request.files:
            kwargs["files"] = request.files
            if isinstance(request.body, dict):
                kwargs["data"] = request.body
        elif isinstance(request.body, (dict, list)):
            kwargs["json"] = request.body
        elif request.body is not None:
            kwargs["content"] = request.body

        built = self._client.build_request(request.method, request.url, **kwargs)
        if not request.with_credentials:
            # The client merges its cookie jar into every request; strip it for anonymous calls.
            built.headers.pop("Cookie", None)
        return built

    async def send(self, request: HttpRequest, token: CancellationToken) -> HttpResponse:
        try:
            resp = await token.run(self._client.send(self._build_request(request)))
        except TransportError:
            raise
        except httpx.HTTPError as exc:
            logger.debug("Transport failure for %s %s: %s", request.method, request.url, exc)
            raise TransportError(str(exc), category=categorize_exception(exc)) from exc

        response = HttpResponse.build(
            resp.status_code,
            headers=resp.headers,
            content=resp.content,
            encoding=resp.encoding,
            url=str(resp.url),
        )
        if resp.status_code >= 400:
            raise TransportError(f"Request failed with status code {resp.status_code}", response=response)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()
