# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
import socket

import httpx

from apiadapter import config
from apiadapter.config import DEFAULT_USER_AGENT, SESSION_EXPIRY_MESSAGES, AdapterSettings
from apiadapter.errors import (
    ErrorCategory,
    TransportError,
    categorize_exception,
    error_category_to_reason,
    extract_server_message,
    format_failure_message,
)
from apiadapter.http.models import HttpResponse
from apiadapter.log import resolve_log_level


def test_adapter_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("APIADAPTER_HOST_URL", "https://api.example.com")
    monkeypatch.setenv("APIADAPTER_HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("APIADAPTER_MAX_RETRIES", "4")
    monkeypatch.setenv("APIADAPTER_RETRY_STATUS_BLACKLIST", "400, 403")
    monkeypatch.setenv("APIADAPTER_USER_AGENT", "CustomAgent/1.0")
    monkeypatch.setenv("APIADAPTER_WITH_CREDENTIALS", "no")
    monkeypatch.setenv("APIADAPTER_HTTP_VERIFY_SSL", "0")
    monkeypatch.setenv("APIADAPTER_HEADER_STORE_PATH", "/tmp/headers.json")
    monkeypatch.setenv("APIADAPTER_HEADER_STORE_KEY", "tokens")

    settings = config.load_adapter_settings()

    assert settings.host_url == "https://api.example.com"
    assert settings.timeout == 5.5
    assert settings.max_retries == 4
    assert settings.retry_status_blacklist == frozenset({400, 403})
    assert settings.user_agent == "CustomAgent/1.0"
    assert settings.with_credentials is False
    assert settings.verify_ssl is False
    assert settings.header_store_path == "/tmp/headers.json"
    assert settings.header_store_key == "tokens"


def test_adapter_settings_invalid_env_fall_back(monkeypatch):
    monkeypatch.setenv("APIADAPTER_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("APIADAPTER_MAX_RETRIES", "-3")
    monkeypatch.setenv("APIADAPTER_RETRY_STATUS_BLACKLIST", "400,teapot")

    settings = config.load_adapter_settings()

    assert settings.timeout == AdapterSettings.timeout
    assert settings.max_retries == 2
    assert settings.retry_status_blacklist == frozenset({400, 401, 500})
    assert DEFAULT_USER_AGENT in settings.user_agent
    assert settings.session_expiry_messages == SESSION_EXPIRY_MESSAGES


def test_load_adapter_settings_reads_env_at_call_time(monkeypatch):
    monkeypatch.setenv("APIADAPTER_HTTP_TIMEOUT", "7.7")
    assert config.load_adapter_settings().timeout == 7.7
    monkeypatch.setenv("APIADAPTER_HTTP_TIMEOUT", "8.8")
    assert config.load_adapter_settings().timeout == 8.8


def test_resolve_log_level(monkeypatch):
    monkeypatch.delenv("APIADAPTER_LOG_LEVEL", raising=False)
    assert resolve_log_level() == logging.WARNING
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level("nonsense") == logging.WARNING
    monkeypatch.setenv("APIADAPTER_LOG_LEVEL", "error")
    assert resolve_log_level() == logging.ERROR


def test_categorize_exception_maps_httpx_and_socket_errors():
    request = httpx.Request("GET", "http://example")
    assert categorize_exception(httpx.ReadTimeout("slow", request=request)) == ErrorCategory.TIMEOUT
    assert categorize_exception(httpx.ConnectError("refused", request=request)) == ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(socket.gaierror("nope")) == ErrorCategory.DNS_ERROR
    assert categorize_exception(ConnectionResetError()) == ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(RuntimeError("boom")) == ErrorCategory.UNKNOWN_ERROR
    assert categorize_exception(TransportError.cancelled_attempt()) == ErrorCategory.CANCELLED


def test_transport_error_category_defaults():
    assert TransportError("x").category == ErrorCategory.UNKNOWN_ERROR
    assert TransportError("x", response=HttpResponse(status_code=502)).category == ErrorCategory.HTTP_ERROR
    cancelled = TransportError.cancelled_attempt("stop")
    assert cancelled.cancelled is True
    assert cancelled.message == "stop"
    assert cancelled.status_code is None


def test_extract_server_message_variants():
    assert extract_server_message({"message": "Bad input"}) == "Bad input"
    assert extract_server_message({"message": ["first", 3, "second"]}) == "first\nsecond"
    assert extract_server_message({"errors": [{"message": "a"}, {"message": "b"}]}) == "a\nb"
    assert extract_server_message({"errors": []}) is None
    assert extract_server_message({"detail": "ignored"}) is None
    assert extract_server_message("plain text") is None


def test_format_failure_message_with_response_body():
    error = TransportError(
        "Request failed with status code 422",
        response=HttpResponse(status_code=422, data={"message": "Email is taken"}),
    )
    message, server_message = format_failure_message("Creating user", error)
    assert message == "Error: 'Creating user' failed with message \"Email is taken\""
    assert server_message == "Email is taken"

    unknown_body = TransportError("x", response=HttpResponse(status_code=503, data={"status": "down"}))
    message, server_message = format_failure_message("Loading", unknown_body)
    assert message == "Error: 'Loading' failed with message \"Something went wrong\""
    assert server_message == "Something went wrong"


def test_format_failure_message_without_response():
    message, server_message = format_failure_message("Loading", TransportError("Connection refused"))
    assert message == "Error: 'Loading' failed with message \"Connection refused\""
    assert server_message is None

    message, _ = format_failure_message("Loading", TransportError("Network request failed"))
    assert message == "Error: 'Loading' failed. Something went wrong"

    message, _ = format_failure_message("Loading", TransportError("", category=ErrorCategory.TIMEOUT))
    assert message == f"Error: 'Loading' failed with message \"{error_category_to_reason(ErrorCategory.TIMEOUT)}\""

    message, _ = format_failure_message("Loading", TransportError(""))
    assert message == "Error: 'Loading' failed. Something went wrong"
