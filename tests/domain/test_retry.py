from __future__ import annotations

import asyncio

import pytest

from ledgersync.domain.errors import RemoteCallError, RemoteUnavailableError
from ledgersync.domain.model import FailureKind
from ledgersync.domain.retry import (
    BackoffSchedule,
    RetryResult,
    execute_with_retry,
    marker_classifier,
)
from tests.helpers.ledger import RecordingSleep, rejection

classify = marker_classifier("already exists")


class ScriptedCall:
    def __init__(self, *errors: Exception) -> None:
        self._errors = list(errors)
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)


def _run(call: ScriptedCall, sleep: RecordingSleep, *, base_delay: float = 5.0) -> RetryResult:
    return asyncio.run(
        execute_with_retry(
            call,
            classify=classify,
            schedule=BackoffSchedule(base_delay=base_delay, max_retries=4),
            operation="create_subscription",
            subject="C1",
            sleep=sleep,
        )
    )


def test_first_attempt_success_does_not_wait(recording_sleep: RecordingSleep) -> None:
    call = ScriptedCall()

    result = _run(call, recording_sleep)

    assert result.succeeded
    assert result.attempts == 1
    assert recording_sleep.delays == []


def test_already_satisfied_is_success_without_retry(recording_sleep: RecordingSleep) -> None:
    call = ScriptedCall(rejection("Subscription already exists."))

    result = _run(call, recording_sleep)

    assert result.succeeded
    assert result.already_satisfied
    assert call.calls == 1
    assert recording_sleep.delays == []


def test_transient_failures_back_off_linearly(recording_sleep: RecordingSleep) -> None:
    network = RemoteUnavailableError("connection reset")
    call = ScriptedCall(network, network, network)

    result = _run(call, recording_sleep)

    assert result.succeeded
    assert result.attempts == 4
    assert recording_sleep.delays == [5.0, 10.0, 15.0]
    assert result.waited == 30.0


def test_transient_failures_stop_after_four_retries(
    recording_sleep: RecordingSleep, caplog: pytest.LogCaptureFixture
) -> None:
    errors = [RemoteCallError("bad gateway", status_code=502) for _ in range(6)]
    call = ScriptedCall(*errors)

    result = _run(call, recording_sleep, base_delay=15.0)

    assert not result.succeeded
    assert result.failure is FailureKind.TRANSIENT
    assert call.calls == 5
    assert recording_sleep.delays == [15.0, 30.0, 45.0, 60.0]
    assert result.last_error is errors[4]
    assert any("gave up after 5 attempt(s)" in record.message for record in caplog.records)


def test_fatal_failure_is_returned_not_raised(recording_sleep: RecordingSleep) -> None:
    call = ScriptedCall(rejection("plan_interval is not a valid choice"))

    result = _run(call, recording_sleep)

    assert not result.succeeded
    assert result.failure is FailureKind.FATAL
    assert call.calls == 1
    assert recording_sleep.delays == []


def test_zero_retries_schedule_gives_up_after_one_attempt(
    recording_sleep: RecordingSleep,
) -> None:
    call = ScriptedCall(RemoteUnavailableError("timeout"))

    result = asyncio.run(
        execute_with_retry(
            call,
            classify=classify,
            schedule=BackoffSchedule(base_delay=5.0, max_retries=0),
            operation="churn",
            subject="C1",
            sleep=recording_sleep,
        )
    )

    assert not result.succeeded
    assert result.attempts == 1


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (rejection("Subscription with this alias already exists."), FailureKind.ALREADY_SATISFIED),
        (RemoteUnavailableError("read timeout"), FailureKind.TRANSIENT),
        (RemoteCallError("rate limited", status_code=429), FailureKind.TRANSIENT),
        (RemoteCallError("server error", status_code=503), FailureKind.TRANSIENT),
        (RemoteCallError("server error", status_code=500, errors=["oops"]), FailureKind.TRANSIENT),
        (rejection("Invalid plan_currency"), FailureKind.FATAL),
        (RemoteCallError("not found", status_code=404), FailureKind.FATAL),
        (KeyError("non_field_errors"), FailureKind.FATAL),
    ],
)
def test_marker_classifier(error: Exception, expected: FailureKind) -> None:
    assert classify(error) is expected
