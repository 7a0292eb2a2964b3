# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
apiadapter package entrypoint.

Client-side request orchestration on top of an injectable async transport:
concurrent identical requests collapse into one network call, cacheable reads
consult a pluggable cache, transient failures are retried, a session-expiry
response cancels every other in-flight request, and rotating auth headers are
carried across calls.
"""

from .adapter import APIAdapter, create_api_adapter
from .cache import CacheCollaborator, CacheEntry, MemoryCache
from .config import AdapterSettings, load_adapter_settings
from .errors import (
    CANCELLED_API_REQUEST_MESSAGE,
    ErrorCategory,
    RequestCancelledError,
    RequestFailedError,
    SessionExpiredError,
    TransportError,
)
from .http import (
    HttpRequest,
    HttpResponse,
    HttpxTransport,
    RequestDescriptor,
    RetryConfig,
    StubTransport,
    Transport,
    create_default_transport,
)
from .log import setup_logging
from .orchestration import RequestController, RequestOrchestrator
from .storage import DefaultHeaders, HeaderStore, JsonFileHeaderStore, MemoryHeaderStore
from .version import __version__

__all__ = [
    "APIAdapter",
    "AdapterSettings",
    "CANCELLED_API_REQUEST_MESSAGE",
    "CacheCollaborator",
    "CacheEntry",
    "DefaultHeaders",
    "ErrorCategory",
    "HeaderStore",
    "HttpRequest",
    "HttpResponse",
    "HttpxTransport",
    "JsonFileHeaderStore",
    "MemoryCache",
    "MemoryHeaderStore",
    "RequestCancelledError",
    "RequestController",
    "RequestDescriptor",
    "RequestFailedError",
    "RequestOrchestrator",
    "RetryConfig",
    "SessionExpiredError",
    "StubTransport",
    "Transport",
    "TransportError",
    "create_api_adapter",
    "create_default_transport",
    "load_adapter_settings",
    "setup_logging",
    "__version__",
]
