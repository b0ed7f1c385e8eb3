"""Retry executor for remote ledger writes.

Every failure is classified before deciding what to do with it:

- ``ALREADY_SATISFIED``: the remote already holds the desired state, success.
- ``TRANSIENT``: wait ``attempt * base_delay`` and try again, at most
  ``max_retries`` times.
- ``FATAL``: give up immediately.

Terminal failures are logged and returned, never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger

from .errors import RemoteCallError, RemoteUnavailableError
from .model import FailureKind

Classifier = Callable[[Exception], FailureKind]
Sleep = Callable[[float], Awaitable[None]]

log = getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({408, 429})


@dataclass(frozen=True, slots=True)
class BackoffSchedule:
    base_delay: float
    max_retries: int = 4

    def delay_for(self, attempt: int) -> float:
        """Wait before retrying after failed ``attempt`` (1-based)."""
        return attempt * self.base_delay


@dataclass(frozen=True, slots=True)
class RetryResult:
    succeeded: bool
    attempts: int
    already_satisfied: bool = False
    failure: FailureKind | None = None
    last_error: Exception | None = None
    waited: float = 0.0


def is_transient_status(status_code: int | None) -> bool:
    if status_code is None:
        return False
    return status_code in TRANSIENT_STATUS_CODES or status_code >= 500  # noqa: PLR2004


def marker_classifier(marker: str) -> Classifier:
    """Build a classifier treating errors that mention ``marker`` as already satisfied."""

    def classify(error: Exception) -> FailureKind:
        if isinstance(error, RemoteUnavailableError):
            return FailureKind.TRANSIENT
        if not isinstance(error, RemoteCallError):
            return FailureKind.FATAL
        first = error.first_error
        if first is not None and marker in first:
            return FailureKind.ALREADY_SATISFIED
        if is_transient_status(error.status_code):
            return FailureKind.TRANSIENT
        return FailureKind.FATAL

    return classify


def describe_error(error: Exception) -> str:
    if isinstance(error, RemoteCallError):
        return f"{error} (status={error.status_code}, payload={error.payload!r})"
    return f"{type(error).__name__}: {error}"


async def execute_with_retry(
    call: Callable[[], Awaitable[object]],
    *,
    classify: Classifier,
    schedule: BackoffSchedule,
    operation: str,
    subject: str,
    sleep: Sleep = asyncio.sleep,
) -> RetryResult:
    """Run ``call`` until it succeeds, converges, or the schedule runs out."""

    attempt = 0
    waited = 0.0
    while True:
        attempt += 1
        try:
            await call()
        except Exception as exc:  # noqa: BLE001
            kind = classify(exc)
            if kind is FailureKind.ALREADY_SATISFIED:
                log.debug("%s for %s already satisfied: %s", operation, subject, exc)
                return RetryResult(
                    succeeded=True, attempts=attempt, already_satisfied=True, waited=waited
                )
            if kind is FailureKind.TRANSIENT and attempt <= schedule.max_retries:
                delay = schedule.delay_for(attempt)
                log.warning(
                    "%s for %s failed (attempt %s/%s), retrying in %.1fs: %s",
                    operation,
                    subject,
                    attempt,
                    schedule.max_retries + 1,
                    delay,
                    describe_error(exc),
                )
                await sleep(delay)
                waited += delay
                continue
            log.error(
                "%s for %s gave up after %s attempt(s) [%s]: %s",
                operation,
                subject,
                attempt,
                kind,
                describe_error(exc),
            )
            return RetryResult(
                succeeded=False,
                attempts=attempt,
                failure=kind,
                last_error=exc,
                waited=waited,
            )
        return RetryResult(succeeded=True, attempts=attempt, waited=waited)
