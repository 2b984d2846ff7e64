"""
Broker — the consumer/producer facade over a Coordinator.

Broker is an async context manager. On __aexit__ it shuts the coordinator
down, which releases every blocked consumer with a SHUT_DOWN outcome.

Usage
-----
    from restqueue import Broker, WaitOutcome

    async with Broker() as broker:
        broker.put("orders", "widget")

        result = await broker.get("orders")
        assert result.value == "widget"

        # Block for up to two seconds
        result = await broker.get("orders", timeout=timedelta(seconds=2))
        if result.outcome is WaitOutcome.TIMED_OUT:
            ...

Dequeue protocol
----------------
get() first tries the buffer. Only on a miss, and only when the caller
asked to wait, does it register a waiter and block in wait_for_value().
The waiter is always deregistered before get() returns.
"""
from __future__ import annotations

import asyncio
import dataclasses
from datetime import timedelta
from types import TracebackType

from restqueue.core.coordinator import Coordinator
from restqueue.core.wait import wait_for_value
from restqueue.domain.models import QueueStats, WaitOutcome, WaitResult


@dataclasses.dataclass
class Broker:
    """
    Async context manager owning one Coordinator.

    Parameters
    ----------
    coordinator : the registry to operate on (a fresh one by default)
    """

    coordinator: Coordinator = dataclasses.field(default_factory=Coordinator)

    async def __aenter__(self) -> "Broker":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # ------------------------------------------------------------------ #
    # Queue operations                                                     #
    # ------------------------------------------------------------------ #

    def put(self, name: str, value: str) -> None:
        """Enqueue a value. Never blocks, never fails."""
        self.coordinator.enqueue(name, value)

    async def get(
        self,
        name: str,
        timeout: timedelta | None = None,
        abort: asyncio.Event | None = None,
    ) -> WaitResult:
        """
        Dequeue one value from `name`.

        timeout=None means do not wait: an empty queue yields TIMED_OUT at
        once. Otherwise block up to `timeout`, or until `abort` is set.
        Raises ShuttingDownError if the broker is shutting down and the
        value is not immediately available.
        """
        result = self.take(name)
        if result.found or timeout is None:
            return result
        return await self.wait(name, timeout, abort)

    def take(self, name: str) -> WaitResult:
        """Dequeue without waiting. An empty queue yields TIMED_OUT."""
        value, found = self.coordinator.try_dequeue(name)
        if found:
            return WaitResult.fulfilled(value)  # type: ignore[arg-type]
        return WaitResult.of(WaitOutcome.TIMED_OUT)

    async def wait(
        self,
        name: str,
        timeout: timedelta,
        abort: asyncio.Event | None = None,
    ) -> WaitResult:
        """
        Register a waiter on `name` and block for a value.

        Callers check the buffer with take() first. Raises ShuttingDownError
        once the broker is shutting down.
        """
        waiter = self.coordinator.register_waiter(name, timeout)
        return await wait_for_value(self.coordinator, waiter, abort)

    def stats(self, name: str) -> QueueStats:
        """Read-only snapshot of one queue."""
        return self.coordinator.stats(name)

    def shutdown(self) -> None:
        """Release every blocked consumer. Idempotent."""
        self.coordinator.shutdown()
