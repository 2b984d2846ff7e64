"""
Waiter — a single-use, single-slot delivery cell for one blocked consumer.

The cell is an asyncio.Future resolved at most once, in one of two ways:

  try_deliver(value)  → WaitResult(FULFILLED, value)
  signal_shutdown()   → WaitResult(SHUT_DOWN)

or abandoned (cancelled) by the consumer when it stops listening. Every
method is a single non-blocking attempt that reports success instantly;
none of them waits for the consumer. A producer that loses the race against
an abandoning consumer simply sees False and keeps its value.

The Coordinator owns the waiter's membership in a queue; the consumer owns
the read side of the cell (see restqueue.core.wait).
"""
from __future__ import annotations

import asyncio
import dataclasses

from restqueue.domain.models import WaitOutcome, WaitResult


@dataclasses.dataclass(eq=False)
class Waiter:
    """
    One registered consumer.

    Parameters
    ----------
    token      : identifier unique for the coordinator's lifetime
    queue_name : the queue this waiter is registered on
    cell       : one-slot mailbox, created on the running event loop
    deadline   : loop.time() at which the wait expires, or None for no limit
    """

    token: int
    queue_name: str
    cell: asyncio.Future[WaitResult] = dataclasses.field(repr=False)
    deadline: float | None = None

    @property
    def resolved(self) -> bool:
        """True once the cell holds a result or has been abandoned."""
        return self.cell.done()

    def try_deliver(self, value: str) -> bool:
        """Hand `value` to the consumer. False if the cell is no longer open."""
        return self._try_resolve(WaitResult.fulfilled(value))

    def signal_shutdown(self) -> bool:
        """Tell the consumer the broker is going away. False if already resolved."""
        return self._try_resolve(WaitResult.of(WaitOutcome.SHUT_DOWN))

    def abandon(self) -> None:
        """Close the cell without a result; later deliveries fail."""
        if not self.cell.done():
            self.cell.cancel()

    def delivered(self) -> WaitResult | None:
        """The result placed in the cell, or None if empty or abandoned."""
        if not self.cell.done() or self.cell.cancelled():
            return None
        return self.cell.result()

    def _try_resolve(self, result: WaitResult) -> bool:
        if self.cell.done():
            return False
        self.cell.set_result(result)
        return True
