"""
wait_for_value — the consumer's blocking wait, outside the coordinator.

A registered waiter is released by whichever of these happens first:

  value delivered   → the cell resolves with WaitResult(FULFILLED, value)
  shutdown          → the cell resolves with WaitResult(SHUT_DOWN)
  caller aborted    → the optional `abort` event is set
  deadline reached  → asyncio.wait() returns with nothing done

The cell and the abort event are awaited together with
asyncio.wait(FIRST_COMPLETED) and the deadline is its timeout, so no source
can starve another. When several are ready at once the cell wins: a value
that reached the consumer is returned rather than dropped.

Whatever happens, the waiter is deregistered before this function returns or
raises. After that point no enqueue can target it. If the calling task is
cancelled after a value was handed over, the value is put back at the head
of its queue.
"""
from __future__ import annotations

import asyncio
import logging

from restqueue.core.coordinator import Coordinator
from restqueue.core.waiter import Waiter
from restqueue.domain.models import WaitOutcome, WaitResult

logger = logging.getLogger(__name__)


async def wait_for_value(
    coordinator: Coordinator,
    waiter: Waiter,
    abort: asyncio.Event | None = None,
) -> WaitResult:
    """Block until `waiter` is fulfilled, times out, is aborted or shut down."""
    loop = asyncio.get_running_loop()
    watched: set[asyncio.Future] = {waiter.cell}
    abort_task: asyncio.Task[bool] | None = None
    if abort is not None:
        abort_task = asyncio.create_task(
            abort.wait(), name=f"restqueue-abort-{waiter.token}"
        )
        watched.add(abort_task)

    remaining = None
    if waiter.deadline is not None:
        remaining = max(waiter.deadline - loop.time(), 0.0)

    try:
        await asyncio.wait(
            watched, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        handed_over = waiter.delivered()
        if handed_over is not None and handed_over.found:
            coordinator.restore(waiter.queue_name, handed_over.value)
        raise
    finally:
        coordinator.cancel_waiter(waiter.queue_name, waiter.token)
        if abort_task is not None:
            abort_task.cancel()

    result = waiter.delivered()
    if result is None:
        if abort is not None and abort.is_set():
            result = WaitResult.of(WaitOutcome.CLIENT_CANCELLED)
        else:
            result = WaitResult.of(WaitOutcome.TIMED_OUT)

    logger.info(
        "Waiter %d on %r finished: %s",
        waiter.token,
        waiter.queue_name,
        result.outcome.value,
    )
    return result
