"""
Coordinator — the registry of named queues and the only way to mutate them.

Consistency domain
------------------
Every public method is synchronous and never awaits. Called from the event
loop thread, each one therefore runs to completion before any other
coroutine is scheduled: the event loop serialises them exactly like a single
global lock would, and no operation can be interleaved with another.

None of them can block either. Hand-off to a waiter is a single
Future.set_result attempt; if the waiter's consumer has already walked away
(its cell is resolved or abandoned) the attempt fails instantly and the
value moves on to the next waiter or into the buffer.

  producer: enqueue("orders", "widget")
              ├─ oldest live waiter? ── try_deliver ──> consumer wakes
              └─ none                ── buffer.append

  consumer: try_dequeue("orders")  ── hit ──> value
              └─ miss ── register_waiter ── wait_for_value (outside) ──┐
                                       cancel_waiter  <── finally ──────┘

Queue invariant
---------------
After any method returns, a queue never holds both buffered values and
registered waiters: enqueue prefers live waiters over the buffer, and a
consumer only registers after try_dequeue found the buffer empty.

Queues are created on first reference and never removed, so the number of
names grows for the lifetime of the process.
"""
from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
from collections import OrderedDict, deque
from datetime import timedelta

from restqueue.core.waiter import Waiter
from restqueue.domain.errors import ShuttingDownError
from restqueue.domain.models import QueueStats

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class _NamedQueue:
    """Per-name state: pending values and waiters, both in arrival order."""

    pending: deque[str] = dataclasses.field(default_factory=deque)
    waiters: OrderedDict[int, Waiter] = dataclasses.field(default_factory=OrderedDict)


@dataclasses.dataclass
class Coordinator:
    """
    Owns every named queue.

    Usage
    -----
        coordinator = Coordinator()
        coordinator.enqueue("orders", "widget")
        value, found = coordinator.try_dequeue("orders")

        waiter = coordinator.register_waiter("orders", timedelta(seconds=2))
        result = await wait_for_value(coordinator, waiter)  # deregisters on exit
    """

    _queues: dict[str, _NamedQueue] = dataclasses.field(
        default_factory=dict, init=False, repr=False
    )
    _tokens: itertools.count = dataclasses.field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )
    _shutting_down: bool = dataclasses.field(default=False, init=False)

    # ------------------------------------------------------------------ #
    # Producer side                                                        #
    # ------------------------------------------------------------------ #

    def enqueue(self, name: str, value: str) -> None:
        """Hand `value` to the oldest live waiter on `name`, or buffer it."""
        queue = self._queue(name)
        if not self._hand_off(name, queue, value):
            queue.pending.append(value)

    def restore(self, name: str, value: str) -> None:
        """
        Put back a value whose consumer vanished after the hand-off.

        Goes to the oldest live waiter like enqueue, otherwise to the *head*
        of the buffer so it keeps its place ahead of later values.
        """
        queue = self._queue(name)
        if not self._hand_off(name, queue, value):
            queue.pending.appendleft(value)
            logger.info("Returned an undelivered value to the head of %r", name)

    # ------------------------------------------------------------------ #
    # Consumer side                                                        #
    # ------------------------------------------------------------------ #

    def try_dequeue(self, name: str) -> tuple[str | None, bool]:
        """Pop the oldest buffered value. Returns (value, found)."""
        queue = self._queue(name)
        if not queue.pending:
            return None, False
        return queue.pending.popleft(), True

    def register_waiter(self, name: str, timeout: timedelta | None = None) -> Waiter:
        """
        Append a new waiter to `name` and return it.

        The deadline is fixed here, at registration. Raises ShuttingDownError
        once shutdown() has been called.
        """
        if self._shutting_down:
            raise ShuttingDownError()
        loop = asyncio.get_running_loop()
        deadline = None
        if timeout is not None:
            deadline = loop.time() + max(timeout.total_seconds(), 0.0)
        waiter = Waiter(
            token=next(self._tokens),
            queue_name=name,
            cell=loop.create_future(),
            deadline=deadline,
        )
        self._queue(name).waiters[waiter.token] = waiter
        logger.debug("Registered waiter %d on %r", waiter.token, name)
        return waiter

    def cancel_waiter(self, name: str, token: int) -> None:
        """
        Deregister a waiter. Safe to call any number of times.

        A waiter that was already fulfilled (and therefore already popped by
        enqueue) or already cancelled is simply not found.
        """
        queue = self._queues.get(name)
        if queue is None:
            return
        waiter = queue.waiters.pop(token, None)
        if waiter is not None:
            waiter.abandon()

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def shutdown(self) -> None:
        """
        Signal every registered waiter, on every queue, that the broker is
        going away. Buffered values are left untouched. Idempotent.
        """
        if self._shutting_down:
            return
        self._shutting_down = True
        signalled = 0
        for queue in self._queues.values():
            while queue.waiters:
                _, waiter = queue.waiters.popitem(last=False)
                if waiter.signal_shutdown():
                    signalled += 1
        logger.info("Coordinator shutting down; signalled %d waiter(s)", signalled)

    # ------------------------------------------------------------------ #
    # Inspection                                                           #
    # ------------------------------------------------------------------ #

    def stats(self, name: str) -> QueueStats:
        """Snapshot of one queue. Does not create it."""
        queue = self._queues.get(name)
        if queue is None:
            return QueueStats(name=name)
        return QueueStats(
            name=name, pending=len(queue.pending), waiters=len(queue.waiters)
        )

    def queue_names(self) -> list[str]:
        """Every name referenced so far, in first-use order."""
        return list(self._queues)

    def _hand_off(self, name: str, queue: _NamedQueue, value: str) -> bool:
        """Pop waiters oldest-first until one accepts `value`. One attempt each."""
        while queue.waiters:
            _, waiter = queue.waiters.popitem(last=False)
            if waiter.try_deliver(value):
                logger.debug("Handed value to waiter %d on %r", waiter.token, name)
                return True
            logger.warning(
                "Waiter %d on %r was abandoned before hand-off; skipping",
                waiter.token,
                name,
            )
        return False

    def _queue(self, name: str) -> _NamedQueue:
        queue = self._queues.get(name)
        if queue is None:
            queue = self._queues[name] = _NamedQueue()
        return queue
