# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for apiadapter."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "APIADAPTER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# httpx logs every request at INFO; only let it through when debugging the adapter itself.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(level: str | None = None) -> int:
    """Map a level name (or the environment default) to a logging level number."""
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = resolve_log_level(level)
    logging.basicConfig(level=effective_level, format=LOG_FORMAT)
    transport_level = logging.DEBUG if effective_level <= logging.DEBUG else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


__all__ = ["LOG_LEVEL_ENV", "resolve_log_level", "setup_logging"]
