# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared helpers."""

from .awaitables import call_best_effort, resolve_maybe_awaitable

__all__ = ["call_best_effort", "resolve_maybe_awaitable"]
