import asyncio
from datetime import timedelta

import pytest

from restqueue.core.broker import Broker
from restqueue.core.coordinator import Coordinator
from restqueue.domain.errors import ShuttingDownError
from restqueue.domain.models import WaitOutcome

# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def test_context_manager_shuts_down_on_exit() -> None:
    async with Broker() as broker:
        assert not broker.coordinator.is_shutting_down
    assert broker.coordinator.is_shutting_down


async def test_uses_supplied_coordinator() -> None:
    coordinator = Coordinator()
    async with Broker(coordinator) as broker:
        broker.put("orders", "widget")
    assert coordinator.try_dequeue("orders") == ("widget", True)


async def test_exit_releases_blocked_consumer() -> None:
    broker = Broker()
    async with broker:
        task = asyncio.create_task(
            broker.get("orders", timeout=timedelta(seconds=30))
        )
        await asyncio.sleep(0.01)
    result = await asyncio.wait_for(task, timeout=1)
    assert result.outcome is WaitOutcome.SHUT_DOWN


# ---------------------------------------------------------------------------
# put / get
# ---------------------------------------------------------------------------

async def test_put_then_get() -> None:
    async with Broker() as broker:
        broker.put("orders", "widget")
        result = await broker.get("orders")
        assert result.outcome is WaitOutcome.FULFILLED
        assert result.value == "widget"


async def test_get_empty_without_timeout_does_not_wait() -> None:
    async with Broker() as broker:
        result = await asyncio.wait_for(broker.get("orders"), timeout=0.5)
        assert result.outcome is WaitOutcome.TIMED_OUT
        assert broker.stats("orders").waiters == 0


async def test_get_prefers_buffered_value_over_waiting() -> None:
    async with Broker() as broker:
        broker.put("orders", "ready")
        result = await broker.get("orders", timeout=timedelta(seconds=5))
        assert result.value == "ready"
        assert broker.stats("orders").waiters == 0


async def test_get_waits_for_put() -> None:
    async with Broker() as broker:
        task = asyncio.create_task(broker.get("orders", timeout=timedelta(seconds=2)))
        await asyncio.sleep(0.05)
        broker.put("orders", "gadget")
        result = await asyncio.wait_for(task, timeout=1)
        assert result.value == "gadget"
        assert broker.stats("orders").pending == 0


async def test_get_times_out() -> None:
    async with Broker() as broker:
        loop = asyncio.get_running_loop()
        start = loop.time()
        result = await broker.get("orders", timeout=timedelta(milliseconds=100))
        assert result.outcome is WaitOutcome.TIMED_OUT
        assert loop.time() - start >= 0.09


async def test_get_aborted() -> None:
    async with Broker() as broker:
        abort = asyncio.Event()
        task = asyncio.create_task(
            broker.get("orders", timeout=timedelta(seconds=5), abort=abort)
        )
        await asyncio.sleep(0.01)
        abort.set()
        result = await asyncio.wait_for(task, timeout=1)
        assert result.outcome is WaitOutcome.CLIENT_CANCELLED


async def test_concurrent_consumers_no_loss_no_duplicates() -> None:
    async with Broker() as broker:
        consumers = [
            asyncio.create_task(broker.get("jobs", timeout=timedelta(seconds=2)))
            for _ in range(20)
        ]
        await asyncio.sleep(0.01)
        for i in range(25):
            broker.put("jobs", str(i))
        results = await asyncio.gather(*consumers)
        received = [r.value for r in results]
        assert received == [str(i) for i in range(20)]
        leftover = [(await broker.get("jobs")).value for _ in range(5)]
        assert leftover == [str(i) for i in range(20, 25)]


async def test_get_after_shutdown() -> None:
    broker = Broker()
    broker.put("orders", "kept")
    broker.shutdown()
    assert (await broker.get("orders", timeout=timedelta(seconds=1))).value == "kept"
    with pytest.raises(ShuttingDownError):
        await broker.get("orders", timeout=timedelta(seconds=1))


async def test_take_does_not_register_waiter() -> None:
    async with Broker() as broker:
        assert broker.take("orders").outcome is WaitOutcome.TIMED_OUT
        assert broker.stats("orders").waiters == 0
        broker.put("orders", "widget")
        assert broker.take("orders").value == "widget"


async def test_wait_blocks_until_put() -> None:
    async with Broker() as broker:
        task = asyncio.create_task(broker.wait("orders", timedelta(seconds=2)))
        await asyncio.sleep(0.01)
        assert broker.stats("orders").waiters == 1
        broker.put("orders", "gadget")
        result = await asyncio.wait_for(task, timeout=1)
        assert result.value == "gadget"
