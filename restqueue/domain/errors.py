"""
Exception hierarchy for restqueue.

RestQueueError
├── ClientInputError      — missing or malformed request parameter
│   └── InvalidTimeoutError — timeout value is not an integer
└── ShuttingDownError     — the coordinator no longer accepts waiters

An empty queue and a client that hangs up while waiting are *outcomes*
(see WaitOutcome), not exceptions.
"""

from __future__ import annotations


class RestQueueError(Exception):
    """Base class for all restqueue exceptions."""


class ClientInputError(RestQueueError):
    """
    Raised when a request parameter is missing or malformed.

    Never raised after coordinator state has been touched: validation
    happens before any enqueue or waiter registration.
    """

    def __init__(self, parameter: str, message: str) -> None:
        self.parameter = parameter
        super().__init__(f"{parameter}: {message}")


class InvalidTimeoutError(ClientInputError):
    """Raised when the timeout parameter does not parse as an integer."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__("timeout", f"expected an integer number of seconds, got {raw!r}")


class ShuttingDownError(RestQueueError):
    """Raised when a waiter is registered after shutdown has begun."""

    def __init__(self, message: str = "server closed") -> None:
        super().__init__(message)
