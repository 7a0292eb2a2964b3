# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy, exception types and failure-message helpers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .http.models import HttpResponse

CANCELLED_API_REQUEST_MESSAGE = "API request was cancelled"
GENERIC_FAILURE_MESSAGE = "Something went wrong"

_REQUEST_FAILED_RE = re.compile(r"request\sfailed", re.IGNORECASE)


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SSL_ERROR = "SSL_ERROR"
    DNS_ERROR = "DNS_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    CANCELLED = "CANCELLED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    import socket
    import ssl as ssl_module

    import httpx

    if isinstance(exc, TransportError):
        return exc.category

    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorCategory.HTTP_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        cause = exc.__context__ or exc.__cause__
        if cause is not None and not isinstance(cause, httpx.HTTPError):
            nested = categorize_exception(cause)
            if nested not in (ErrorCategory.UNKNOWN_ERROR, ErrorCategory.CONNECTION_ERROR):
                return nested
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string for a transport failure without a usable message."""
    mapping = {
        ErrorCategory.TIMEOUT: "Network timeout while waiting for the server",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.HTTP_ERROR: "",
        ErrorCategory.CANCELLED: CANCELLED_API_REQUEST_MESSAGE,
        ErrorCategory.UNKNOWN_ERROR: "",
        None: "",
    }
    return mapping.get(category, "")


class TransportError(Exception):
    """
    Failure raised by a Transport.

    `response` is set when the server answered with an error status; it is None for
    connectivity failures and cancelled attempts.
    """

    def __init__(
        self,
        message: str = "",
        *,
        response: HttpResponse | None = None,
        category: ErrorCategory | None = None,
        cancelled: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.response = response
        self.cancelled = cancelled
        if category is None:
            if cancelled:
                category = ErrorCategory.CANCELLED
            elif response is not None:
                category = ErrorCategory.HTTP_ERROR
            else:
                category = ErrorCategory.UNKNOWN_ERROR
        self.category = category

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None

    @classmethod
    def cancelled_attempt(cls, reason: str | None = None) -> TransportError:
        return cls(reason or CANCELLED_API_REQUEST_MESSAGE, cancelled=True)


class RequestFailedError(Exception):
    """Terminal failure of a logical request, shared by every caller waiting on it."""

    def __init__(self, message: str, *, label: str = "operation", cause: TransportError | None = None):
        super().__init__(message)
        self.message = message
        self.label = label
        self.cause = cause

    @property
    def response(self) -> HttpResponse | None:
        return self.cause.response if self.cause is not None else None

    @property
    def status_code(self) -> int | None:
        return self.cause.status_code if self.cause is not None else None

    @property
    def category(self) -> ErrorCategory:
        return self.cause.category if self.cause is not None else ErrorCategory.UNKNOWN_ERROR


class RequestCancelledError(RequestFailedError):
    """The transport attempt was cancelled through its request controller or a session-expiry cascade."""


class SessionExpiredError(RequestFailedError):
    """The server reported an expired session; the message is the raw server phrase."""


def extract_server_message(data: Any) -> str | None:
    """
    Pull a human-readable message out of an error response body.

    Prefers `message` (string, or list of strings joined by newlines), then
    `errors[].message` joined by newlines. Returns None when the body carries
    neither.
    """
    if not isinstance(data, Mapping):
        return None
    message = data.get("message")
    if isinstance(message, str):
        return message
    if isinstance(message, list):
        return "\n".join(item for item in message if isinstance(item, str))
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        return "\n".join(
            str(item.get("message")) if isinstance(item, Mapping) else str(item) for item in errors
        )
    return None


def format_failure_message(label: str, error: TransportError) -> tuple[str, str | None]:
    """
    Build the caller-facing failure message for a transport error.

    Returns (formatted_message, server_message). server_message is the raw text
    extracted from the response body, or None when no response body was received.
    """
    response = error.response
    if response is not None and response.data:
        server_message = extract_server_message(response.data) or GENERIC_FAILURE_MESSAGE
        return f"Error: '{label}' failed with message \"{server_message}\"", server_message

    message = error.message or error_category_to_reason(error.category)
    if message and not _REQUEST_FAILED_RE.search(message):
        return f"Error: '{label}' failed with message \"{message}\"", None
    return f"Error: '{label}' failed. {GENERIC_FAILURE_MESSAGE}", None


__all__ = [
    "CANCELLED_API_REQUEST_MESSAGE",
    "ErrorCategory",
    "RequestCancelledError",
    "RequestFailedError",
    "SessionExpiredError",
    "TransportError",
    "categorize_exception",
    "error_category_to_reason",
    "extract_server_message",
    "format_failure_message",
]
