# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP transport exports."""

from .adapters import StubTransport
from .client import Transport, create_default_transport
from .headers import has_header, header_value, merge_headers, normalize_headers
from .httpx_client import HttpxTransport
from .models import Headers, HttpRequest, HttpResponse, RequestDescriptor, RequestHandleController
from .retry import RetryConfig, build_default_retry_config, should_retry
from .url import build_resource_url, is_absolute_url

__all__ = [
    "Headers",
    "HttpRequest",
    "HttpResponse",
    "HttpxTransport",
    "RequestDescriptor",
    "RequestHandleController",
    "RetryConfig",
    "StubTransport",
    "Transport",
    "build_default_retry_config",
    "build_resource_url",
    "create_default_transport",
    "has_header",
    "header_value",
    "is_absolute_url",
    "merge_headers",
    "normalize_headers",
    "should_retry",
]
