import asyncio

import pytest

from keyed_pubsub import PubSubError, SubscriberTimeoutError, with_timeout


@pytest.mark.asyncio
async def test_result_propagates():
    async def work():
        return 42

    assert await with_timeout(work(), 100) == 42


@pytest.mark.asyncio
async def test_failure_propagates_unchanged():
    async def work():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await with_timeout(work(), 100)


@pytest.mark.asyncio
async def test_deadline_raises_timeout():
    gate = asyncio.Event()

    async def work():
        await gate.wait()

    loop = asyncio.get_running_loop()
    start = loop.time()
    with pytest.raises(SubscriberTimeoutError) as exc_info:
        await with_timeout(work(), 50, key="a")

    assert loop.time() - start < 1.0
    assert exc_info.value.key == "a"
    assert exc_info.value.timeout_ms == 50
    assert isinstance(exc_info.value, TimeoutError)
    gate.set()


@pytest.mark.asyncio
async def test_abandoned_work_keeps_running():
    gate = asyncio.Event()
    finished = []

    async def work():
        await gate.wait()
        finished.append(True)

    with pytest.raises(SubscriberTimeoutError):
        await with_timeout(work(), 20)

    gate.set()
    for _ in range(5):
        await asyncio.sleep(0)
    assert finished == [True]


@pytest.mark.asyncio
async def test_abandoned_failure_is_discarded():
    gate = asyncio.Event()

    async def work():
        await gate.wait()
        raise RuntimeError("late failure")

    with pytest.raises(SubscriberTimeoutError):
        await with_timeout(work(), 20)

    gate.set()
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout", [0, -5, None])
async def test_disabled_deadline(timeout):
    async def work():
        await asyncio.sleep(0.01)
        return "done"

    assert await with_timeout(work(), timeout) == "done"


@pytest.mark.asyncio
async def test_accepts_futures():
    future = asyncio.get_running_loop().create_future()
    future.set_result("ready")
    assert await with_timeout(future, 100) == "ready"


@pytest.mark.asyncio
async def test_cancelled_work_is_a_failure():
    future = asyncio.get_running_loop().create_future()
    future.cancel()
    with pytest.raises(PubSubError, match="cancelled"):
        await with_timeout(future, 100)


@pytest.mark.asyncio
async def test_cancelling_caller_cancels_work():
    started = asyncio.Event()
    gate = asyncio.Event()

    async def work():
        started.set()
        await gate.wait()

    inner = asyncio.ensure_future(work())
    outer = asyncio.ensure_future(with_timeout(inner, 5000))
    await started.wait()
    outer.cancel()

    with pytest.raises(asyncio.CancelledError):
        await outer
    await asyncio.sleep(0)
    assert inner.cancelled()


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout", [100, 0, None])
async def test_cancelled_work_is_a_failure_with_or_without_deadline(timeout):
    async def work():
        future = asyncio.get_running_loop().create_future()
        future.cancel()
        await future

    with pytest.raises(PubSubError, match="cancelled"):
        await with_timeout(work(), timeout, key="a")


@pytest.mark.asyncio
async def test_failure_propagates_without_deadline():
    async def work():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await with_timeout(work(), 0)
