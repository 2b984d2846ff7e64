import pytest
from pydantic import ValidationError

from restqueue.domain.models import QueueStats, WaitOutcome, WaitResult

# ---------------------------------------------------------------------------
# WaitOutcome
# ---------------------------------------------------------------------------


def test_wait_outcome_values():
    assert WaitOutcome.FULFILLED.value == "fulfilled"
    assert WaitOutcome.TIMED_OUT.value == "timed_out"
    assert WaitOutcome.CLIENT_CANCELLED.value == "client_cancelled"
    assert WaitOutcome.SHUT_DOWN.value == "shut_down"


def test_wait_outcome_is_str_enum():
    assert isinstance(WaitOutcome.FULFILLED, str)


# ---------------------------------------------------------------------------
# WaitResult
# ---------------------------------------------------------------------------


def test_fulfilled_carries_value():
    result = WaitResult.fulfilled("widget")
    assert result.outcome is WaitOutcome.FULFILLED
    assert result.value == "widget"
    assert result.found


def test_fulfilled_accepts_empty_string():
    result = WaitResult.fulfilled("")
    assert result.found
    assert result.value == ""


@pytest.mark.parametrize(
    "outcome",
    [WaitOutcome.TIMED_OUT, WaitOutcome.CLIENT_CANCELLED, WaitOutcome.SHUT_DOWN],
)
def test_valueless_outcomes(outcome):
    result = WaitResult.of(outcome)
    assert result.outcome is outcome
    assert result.value is None
    assert not result.found


def test_fulfilled_without_value_rejected():
    with pytest.raises(ValidationError):
        WaitResult(outcome=WaitOutcome.FULFILLED)


def test_timed_out_with_value_rejected():
    with pytest.raises(ValidationError):
        WaitResult(outcome=WaitOutcome.TIMED_OUT, value="x")


def test_wait_result_is_frozen():
    result = WaitResult.fulfilled("x")
    with pytest.raises(ValidationError):
        result.value = "y"  # type: ignore[misc]


def test_wait_result_json_roundtrip():
    result = WaitResult.fulfilled("widget")
    restored = WaitResult.model_validate_json(result.model_dump_json())
    assert restored == result


# ---------------------------------------------------------------------------
# QueueStats
# ---------------------------------------------------------------------------


def test_queue_stats_defaults():
    stats = QueueStats(name="orders")
    assert stats.pending == 0
    assert stats.waiters == 0


def test_queue_stats_is_frozen():
    stats = QueueStats(name="orders", pending=2)
    with pytest.raises(ValidationError):
        stats.pending = 3  # type: ignore[misc]
