# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for apiadapter."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"apiadapter/{__version__}"
DEFAULT_HEADER_STORE_KEY = "defaultRequestHeaders"

# Statuses that are never retried by the default heuristic.
FAILED_REQUEST_RETRY_STATUS_BLACKLIST: frozenset[int] = frozenset({400, 401, 500})
MAX_REQUEST_RETRY_COUNT = 2

# Server messages that mean the session is gone; seeing one aborts every other in-flight request.
SESSION_EXPIRY_MESSAGES: tuple[str, ...] = (
    "User session timed out",
    "Session timed out",
    "Invalid token",
    "Session expired",
    "User session expired",
)


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _status_set_env(name: str, default: frozenset[int]) -> frozenset[int]:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        return default


@dataclass
class AdapterSettings:
    """Adapter and transport defaults."""

    host_url: str = ""
    timeout: float = 30.0
    max_retries: int = MAX_REQUEST_RETRY_COUNT
    retry_status_blacklist: frozenset[int] = FAILED_REQUEST_RETRY_STATUS_BLACKLIST
    session_expiry_messages: tuple[str, ...] = SESSION_EXPIRY_MESSAGES
    user_agent: str = DEFAULT_USER_AGENT
    with_credentials: bool = True
    verify_ssl: bool = True
    header_store_path: str | None = None
    header_store_key: str = DEFAULT_HEADER_STORE_KEY

    @classmethod
    def from_env(cls) -> "AdapterSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_retries = _int_env("APIADAPTER_MAX_RETRIES", cls.max_retries)
        if max_retries < 0:
            max_retries = cls.max_retries
        return cls(
            host_url=os.getenv("APIADAPTER_HOST_URL", cls.host_url),
            timeout=_float_env("APIADAPTER_HTTP_TIMEOUT", cls.timeout),
            max_retries=max_retries,
            retry_status_blacklist=_status_set_env("APIADAPTER_RETRY_STATUS_BLACKLIST", cls.retry_status_blacklist),
            user_agent=os.getenv("APIADAPTER_USER_AGENT", cls.user_agent),
            with_credentials=_bool_env("APIADAPTER_WITH_CREDENTIALS", cls.with_credentials),
            verify_ssl=_bool_env("APIADAPTER_HTTP_VERIFY_SSL", cls.verify_ssl),
            header_store_path=os.getenv("APIADAPTER_HEADER_STORE_PATH") or None,
            header_store_key=os.getenv("APIADAPTER_HEADER_STORE_KEY", cls.header_store_key),
        )


def load_adapter_settings() -> AdapterSettings:
    """Load adapter settings from environment with sensible defaults."""
    return AdapterSettings.from_env()
