# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request orchestration: deduplication, cancellation, hooks and the per-request pipeline."""

from .cancellation import CancellationHandle, CancellationRegistry, CancellationToken
from .controller import RequestController
from .fingerprint import fingerprint_request
from .orchestrator import AttemptOutcome, AttemptResult, RequestOrchestrator
from .queue import RequestQueue

__all__ = [
    "AttemptOutcome",
    "AttemptResult",
    "CancellationHandle",
    "CancellationRegistry",
    "CancellationToken",
    "RequestController",
    "RequestOrchestrator",
    "RequestQueue",
    "fingerprint_request",
]
