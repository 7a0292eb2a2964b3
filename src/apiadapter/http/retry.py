# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Retry policy for failed transport attempts.

Retries are immediate re-issues: there is no backoff and no retry budget.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import (
    FAILED_REQUEST_RETRY_STATUS_BLACKLIST,
    MAX_REQUEST_RETRY_COUNT,
    AdapterSettings,
    load_adapter_settings,
)
from ..errors import TransportError


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy derived from AdapterSettings."""

    max_retries: int = MAX_REQUEST_RETRY_COUNT
    status_blacklist: frozenset[int] = FAILED_REQUEST_RETRY_STATUS_BLACKLIST

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_settings(cls, settings: AdapterSettings) -> RetryConfig:
        """Build a retry config from the shared AdapterSettings."""
        return cls(
            max_retries=max(0, settings.max_retries),
            status_blacklist=frozenset(settings.retry_status_blacklist),
        )


def build_default_retry_config() -> RetryConfig:
    """Create a RetryConfig from environment-backed AdapterSettings."""
    return RetryConfig.from_settings(load_adapter_settings())


def should_retry(error: TransportError, attempt: int, config: RetryConfig | None = None) -> bool:
    """
    Default retry heuristic.

    Only failures where the server answered are retried, never blacklisted
    statuses, and at most `max_retries` times (`attempt` counts from 0).
    Connectivity failures and cancelled attempts have no response and are not retried.
    """
    cfg = config or RetryConfig()
    if error.cancelled or error.response is None:
        return False
    if error.response.status_code in cfg.status_blacklist:
        return False
    return attempt < cfg.max_retries


__all__ = ["RetryConfig", "build_default_retry_config", "should_retry"]
