# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio

import pytest

from apiadapter.errors import CANCELLED_API_REQUEST_MESSAGE, TransportError
from apiadapter.orchestration.cancellation import CancellationHandle, CancellationRegistry, CancellationToken


@pytest.mark.asyncio
async def test_token_cancel_is_one_shot():
    token = CancellationToken()
    assert token.cancelled is False
    token.raise_if_cancelled()

    assert token.cancel() is True
    assert token.cancel("again") is False
    assert token.reason == CANCELLED_API_REQUEST_MESSAGE
    assert await token.wait() == CANCELLED_API_REQUEST_MESSAGE

    with pytest.raises(TransportError) as exc_info:
        token.raise_if_cancelled()
    assert exc_info.value.cancelled is True


@pytest.mark.asyncio
async def test_token_run_returns_result_when_not_cancelled():
    async def work():
        await asyncio.sleep(0)
        return "done"

    assert await CancellationToken().run(work()) == "done"


@pytest.mark.asyncio
async def test_token_run_aborts_pending_work():
    token = CancellationToken()
    finished = asyncio.Event()

    async def never():
        try:
            await asyncio.Event().wait()
        finally:
            finished.set()

    asyncio.get_running_loop().call_soon(token.cancel, "logged out")
    with pytest.raises(TransportError, match="logged out"):
        await token.run(never())

    await asyncio.wait_for(finished.wait(), timeout=1)


@pytest.mark.asyncio
async def test_token_run_after_cancel_raises_immediately():
    token = CancellationToken()
    token.cancel()

    async def work():
        return "unreachable"

    with pytest.raises(TransportError):
        await token.run(work())


def test_registry_cancel_all_skips_excluded_and_already_cancelled():
    registry = CancellationRegistry()
    first = registry.open("first")
    second = registry.open("second")
    third = CancellationHandle("third")
    registry.register(third)
    registry.register(third)
    assert len(registry) == 3

    third.cancel()
    assert registry.cancel_all(exclude=first) == 1
    assert second.cancelled is True
    assert first.cancelled is False

    registry.discard(second)
    registry.discard(second)
    assert second not in registry
    assert [handle.label for handle in registry] == ["first", "third"]
