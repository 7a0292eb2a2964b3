# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import io

import pytest

from apiadapter.http.models import RequestDescriptor
from apiadapter.orchestration.fingerprint import fingerprint_fields, fingerprint_request, is_serializable_body
from apiadapter.orchestration.queue import RequestQueue

URL = "https://api.example.com/users"


def test_fingerprint_ignores_label_hooks_and_header_case():
    plain = RequestDescriptor(headers={"X-Tenant": "t1"}, label="Loading users")
    decorated = RequestDescriptor(
        headers={"x-tenant": "t1"},
        label="Other label",
        on_server_success=lambda response: None,
        process_response=lambda response: response,
        timeout=1.0,
    )
    assert fingerprint_request(URL, plain) == fingerprint_request(URL, decorated)


def test_fingerprint_distinguishes_dispatch_fields():
    base = fingerprint_request(URL, RequestDescriptor())
    assert fingerprint_request(URL, RequestDescriptor(params={"page": 2})) != base
    assert fingerprint_request(URL, RequestDescriptor(cache_id="users")) != base
    assert fingerprint_request(URL, RequestDescriptor(method="DELETE")) != base
    assert fingerprint_request(URL + "/1", RequestDescriptor()) != base


def test_multipart_and_binary_bodies_never_share_a_fingerprint():
    upload = RequestDescriptor(method="POST", files={"file": ("a.txt", b"abc")})
    assert fingerprint_request(URL, upload) != fingerprint_request(URL, upload)

    raw = RequestDescriptor(method="POST", body=b"\x00\x01")
    assert fingerprint_request(URL, raw) != fingerprint_request(URL, raw)

    assert is_serializable_body({"a": [1, "b", None]}) is True
    assert is_serializable_body(io.BytesIO(b"x")) is False
    assert fingerprint_fields(URL, RequestDescriptor(method="POST", body={"a": 1}))["body"] == {"a": 1}


@pytest.mark.asyncio
async def test_concurrent_identical_requests_share_one_runner():
    queue = RequestQueue()
    calls: list[str] = []

    async def runner(request_id, resolve, reject):  # noqa: ARG001
        calls.append(request_id)
        await asyncio.sleep(0.01)
        resolve({"data": ["ada", "grace"]})

    waiters = [queue.enqueue(URL, RequestDescriptor(label="Loading users"), runner) for _ in range(3)]
    assert len(queue) == 1
    assert queue.waiting(fingerprint_request(URL, RequestDescriptor())) == 3

    results = await asyncio.gather(*waiters)

    assert len(calls) == 1
    assert results[0] is results[1] is results[2]
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_shared_rejection_is_the_same_exception():
    queue = RequestQueue()
    error = RuntimeError("boom")

    async def runner(request_id, resolve, reject):  # noqa: ARG001
        await asyncio.sleep(0)
        reject(error)

    first = queue.enqueue(URL, RequestDescriptor(), runner)
    second = queue.enqueue(URL, RequestDescriptor(), runner)

    for waiter in (first, second):
        with pytest.raises(RuntimeError) as exc_info:
            await waiter
        assert exc_info.value is error


@pytest.mark.asyncio
async def test_settled_group_is_not_reused():
    queue = RequestQueue()
    calls = 0

    async def runner(request_id, resolve, reject):  # noqa: ARG001
        nonlocal calls
        calls += 1
        resolve(calls)

    assert await queue.enqueue(URL, RequestDescriptor(), runner) == 1
    assert await queue.enqueue(URL, RequestDescriptor(), runner) == 2
    await queue.drain()
    assert calls == 2


@pytest.mark.asyncio
async def test_runner_exception_rejects_the_group():
    queue = RequestQueue()

    async def runner(request_id, resolve, reject):  # noqa: ARG001
        raise ValueError("bad payload")

    with pytest.raises(ValueError, match="bad payload"):
        await queue.enqueue(URL, RequestDescriptor(), runner)
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_runner_without_result_and_double_settle():
    queue = RequestQueue()

    async def silent(request_id, resolve, reject):  # noqa: ARG001
        return None

    with pytest.raises(RuntimeError, match="without a result"):
        await queue.enqueue(URL, RequestDescriptor(), silent)

    async def twice(request_id, resolve, reject):  # noqa: ARG001
        resolve("first")
        resolve("second")
        reject(RuntimeError("ignored"))

    assert await queue.enqueue(URL, RequestDescriptor(), twice) == "first"
