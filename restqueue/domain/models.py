"""
Domain models for restqueue — backed by Pydantic v2.

All models are frozen (immutable) value types. They describe what a
consumer observes; the mutable queue state itself lives only inside the
Coordinator and is never handed out.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class WaitOutcome(str, Enum):
    """Terminal states of a blocked consumer. Exactly one fires per waiter."""

    FULFILLED = "fulfilled"
    TIMED_OUT = "timed_out"
    CLIENT_CANCELLED = "client_cancelled"
    SHUT_DOWN = "shut_down"


class WaitResult(BaseModel):
    """
    What a consumer gets back from a dequeue attempt.

    outcome — how the attempt ended
    value   — the delivered value; set only when outcome is FULFILLED

    An immediate dequeue on an empty queue is reported as TIMED_OUT: the
    caller's (zero-length) window elapsed with nothing to take.
    """

    model_config = ConfigDict(frozen=True)

    outcome: WaitOutcome
    value: str | None = None

    @model_validator(mode="after")
    def _value_only_when_fulfilled(self) -> "WaitResult":
        if self.outcome is WaitOutcome.FULFILLED and self.value is None:
            raise ValueError("a fulfilled result must carry a value")
        if self.outcome is not WaitOutcome.FULFILLED and self.value is not None:
            raise ValueError(f"a {self.outcome.value} result cannot carry a value")
        return self

    @classmethod
    def fulfilled(cls, value: str) -> "WaitResult":
        return cls(outcome=WaitOutcome.FULFILLED, value=value)

    @classmethod
    def of(cls, outcome: WaitOutcome) -> "WaitResult":
        """Factory for the value-less outcomes."""
        return cls(outcome=outcome)

    @property
    def found(self) -> bool:
        return self.outcome is WaitOutcome.FULFILLED


class QueueStats(BaseModel):
    """
    Read-only snapshot of one named queue.

    name    — queue name
    pending — number of buffered, undelivered values
    waiters — number of currently registered waiters

    At most one of pending / waiters is non-zero.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    pending: int = 0
    waiters: int = 0
