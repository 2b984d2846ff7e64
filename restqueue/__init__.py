"""
restqueue — in-memory named queues with blocking dequeue over HTTP.

Producers PUT values into a named queue; consumers GET them back, either
immediately or by blocking up to a timeout. A value that arrives while
consumers are blocked is handed straight to the one that has waited
longest, bypassing the buffer.

    PUT /orders?v=widget          → 200
    GET /orders                   → 200 "widget"
    GET /orders                   → 404 (empty)
    GET /orders?timeout=2         → blocks up to 2 s for a value

Quick start
-----------
    import asyncio
    from datetime import timedelta
    from restqueue import Broker

    async def main():
        async with Broker() as broker:
            consumer = asyncio.create_task(
                broker.get("orders", timeout=timedelta(seconds=2))
            )
            await asyncio.sleep(0)
            broker.put("orders", "gadget")
            result = await consumer
            print(result.value)  # gadget

    asyncio.run(main())

Run the server with `restqueue --port 8080`.

Architecture
------------
  domain/ — pure value types (WaitOutcome, WaitResult, QueueStats) and errors
  core/   — Waiter, Coordinator, the multiplexed wait, Broker facade
  api/    — FastAPI binding
  cli     — typer entry point running uvicorn with graceful shutdown
"""
from __future__ import annotations

from restqueue.config import ServerConfig
from restqueue.core.broker import Broker
from restqueue.core.coordinator import Coordinator
from restqueue.core.wait import wait_for_value
from restqueue.core.waiter import Waiter
from restqueue.domain.errors import (
    ClientInputError,
    InvalidTimeoutError,
    RestQueueError,
    ShuttingDownError,
)
from restqueue.domain.models import QueueStats, WaitOutcome, WaitResult

__all__ = [
    # Domain models
    "QueueStats",
    "WaitOutcome",
    "WaitResult",
    # Errors
    "RestQueueError",
    "ClientInputError",
    "InvalidTimeoutError",
    "ShuttingDownError",
    # Core
    "Broker",
    "Coordinator",
    "Waiter",
    "wait_for_value",
    # Configuration
    "ServerConfig",
]
