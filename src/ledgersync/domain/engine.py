"""Per-customer reconciliation state machine.

``START -> SUBSCRIPTION_ENSURED -> {CHURNED | REACTIVATED} -> STATUS_PUBLISHED -> DONE``

Every remote write goes through the retry executor. A failed write is recorded
on the outcome and the machine moves on, so one customer can never stall or
abort the batch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .model import (
    BillingPeriod,
    CancelType,
    ChurnType,
    FailureKind,
    Operation,
    PlanInterval,
    ReconciliationOutcome,
    MalformedCustomerRecord,
    ReconciliationState,
    epoch_seconds,
)
from .ports import SubscriptionRequest
from .retry import BackoffSchedule, execute_with_retry, marker_classifier

if TYPE_CHECKING:
    from ledgersync.config.sync import SyncConfig

    from .model import CancellationRecord, CustomerEntry, CustomerRecord
    from .ports import BillingLedger, StatusPublisher
    from .retry import RetryResult, Sleep

log = getLogger(__name__)

ALREADY_EXISTS_MARKER = "already exists"
ALREADY_CHURNING_MARKER = "already scheduled to churn"
# the ledger's message reads "... was not churned in the first place"
NOT_CHURNED_MARKER = "was not churned in the fi"

_TRANSITIONS: dict[ReconciliationState, frozenset[ReconciliationState]] = {
    ReconciliationState.START: frozenset({ReconciliationState.SUBSCRIPTION_ENSURED}),
    ReconciliationState.SUBSCRIPTION_ENSURED: frozenset(
        {ReconciliationState.CHURNED, ReconciliationState.REACTIVATED}
    ),
    ReconciliationState.CHURNED: frozenset({ReconciliationState.STATUS_PUBLISHED}),
    ReconciliationState.REACTIVATED: frozenset({ReconciliationState.STATUS_PUBLISHED}),
    ReconciliationState.STATUS_PUBLISHED: frozenset({ReconciliationState.DONE}),
    ReconciliationState.DONE: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    def __init__(self, current: ReconciliationState, target: ReconciliationState) -> None:
        super().__init__(f"Cannot move from {current} to {target}")
        self.current = current
        self.target = target


def build_subscription_request(customer: CustomerRecord) -> SubscriptionRequest:
    return SubscriptionRequest(
        user_alias=customer.profile_id,
        subscription_alias=customer.customer_id,
        # the CRM export has no email column; the ledger already matches on this value
        email=customer.customer_id,
        plan_id=customer.plan_name,
        plan_interval=(
            PlanInterval.YEAR
            if customer.billing_period is BillingPeriod.YEARLY
            else PlanInterval.MONTH
        ),
        value=customer.renewal_amount.minor_units,
        plan_currency=customer.renewal_amount.currency.lower(),
        effective_date=epoch_seconds(customer.registration_date),
    )


def _mutated(result: RetryResult) -> bool:
    """True when the call changed ledger state rather than converging on it."""
    return result.succeeded and not result.already_satisfied


def churn_type_for(cancellation: CancellationRecord | None) -> ChurnType:
    if cancellation is not None and cancellation.cancel_type is CancelType.AUTO_CANCEL:
        return ChurnType.DELINQUENT
    return ChurnType.VOLUNTARY


@dataclass(frozen=True, slots=True)
class EngineSchedules:
    create: BackoffSchedule
    churn: BackoffSchedule
    unchurn: BackoffSchedule

    @classmethod
    def from_config(cls, config: SyncConfig) -> EngineSchedules:
        unit = config.time_unit_seconds
        return cls(
            create=BackoffSchedule(config.create_backoff_units * unit, config.max_retries),
            churn=BackoffSchedule(config.churn_backoff_units * unit, config.max_retries),
            unchurn=BackoffSchedule(config.unchurn_backoff_units * unit, config.max_retries),
        )


class ReconciliationEngine:
    """Drives the billing ledger towards one customer's snapshot state."""

    def __init__(
        self,
        *,
        ledger: BillingLedger,
        publisher: StatusPublisher,
        schedules: EngineSchedules,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._ledger = ledger
        self._publisher = publisher
        self._schedules = schedules
        self._sleep = sleep
        self._create_classifier = marker_classifier(ALREADY_EXISTS_MARKER)
        self._churn_classifier = marker_classifier(ALREADY_CHURNING_MARKER)
        self._unchurn_classifier = marker_classifier(NOT_CHURNED_MARKER)

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        *,
        ledger: BillingLedger,
        publisher: StatusPublisher,
        sleep: Sleep = asyncio.sleep,
    ) -> ReconciliationEngine:
        return cls(
            ledger=ledger,
            publisher=publisher,
            schedules=EngineSchedules.from_config(config),
            sleep=sleep,
        )

    async def reconcile(
        self,
        customer: CustomerEntry,
        cancellation: CancellationRecord | None = None,
    ) -> ReconciliationOutcome:
        outcome = ReconciliationOutcome(customer_id=customer.customer_id)
        if isinstance(customer, MalformedCustomerRecord):
            log.error(
                "Skipping customer %s, snapshot row does not parse: %s",
                customer.customer_id,
                "; ".join(customer.problems),
            )
            outcome.error = FailureKind.FATAL
            return outcome
        try:
            await self._run(customer, cancellation, outcome)
        except Exception:  # noqa: BLE001
            log.exception(
                "Reconciliation of customer %s aborted in state %s",
                customer.customer_id,
                outcome.state,
            )
            outcome.error = FailureKind.FATAL
        return outcome

    async def _run(
        self,
        customer: CustomerRecord,
        cancellation: CancellationRecord | None,
        outcome: ReconciliationOutcome,
    ) -> None:
        outcome.created = await self._ensure_subscription(customer, outcome)
        self._advance(outcome, ReconciliationState.SUBSCRIPTION_ENSURED)

        if customer.is_active:
            outcome.reactivated = await self._reactivate(customer, outcome)
            self._advance(outcome, ReconciliationState.REACTIVATED)
        else:
            outcome.churned = await self._churn(customer, cancellation, outcome)
            self._advance(outcome, ReconciliationState.CHURNED)

        outcome.paid_status = outcome.state is ReconciliationState.REACTIVATED
        outcome.published = await self._publish(customer.customer_id, outcome.paid_status)
        self._advance(outcome, ReconciliationState.STATUS_PUBLISHED)
        self._advance(outcome, ReconciliationState.DONE)

    async def _ensure_subscription(
        self, customer: CustomerRecord, outcome: ReconciliationOutcome
    ) -> bool:
        request = build_subscription_request(customer)
        result = await execute_with_retry(
            lambda: self._ledger.create_subscription(request),
            classify=self._create_classifier,
            schedule=self._schedules.create,
            operation=Operation.CREATE_SUBSCRIPTION,
            subject=customer.customer_id,
            sleep=self._sleep,
        )
        if not result.succeeded:
            outcome.record_failure(Operation.CREATE_SUBSCRIPTION, result.failure)
        return _mutated(result)

    async def _churn(
        self,
        customer: CustomerRecord,
        cancellation: CancellationRecord | None,
        outcome: ReconciliationOutcome,
    ) -> bool:
        churn_type = churn_type_for(cancellation)
        effective_date = epoch_seconds(customer.renewal_date)
        result = await execute_with_retry(
            lambda: self._ledger.churn_subscription(
                subscription_alias=customer.customer_id,
                effective_date=effective_date,
                churn_type=churn_type,
            ),
            classify=self._churn_classifier,
            schedule=self._schedules.churn,
            operation=Operation.CHURN,
            subject=customer.customer_id,
            sleep=self._sleep,
        )
        if not result.succeeded:
            outcome.record_failure(Operation.CHURN, result.failure)
        return _mutated(result)

    async def _reactivate(self, customer: CustomerRecord, outcome: ReconciliationOutcome) -> bool:
        result = await execute_with_retry(
            lambda: self._ledger.unchurn_subscription(subscription_alias=customer.customer_id),
            classify=self._unchurn_classifier,
            schedule=self._schedules.unchurn,
            operation=Operation.UNCHURN,
            subject=customer.customer_id,
            sleep=self._sleep,
        )
        if not result.succeeded:
            outcome.record_failure(Operation.UNCHURN, result.failure)
        return _mutated(result)

    async def _publish(self, customer_id: str, is_paid: bool) -> bool:
        try:
            return await self._publisher.publish(customer_id=customer_id, is_paid=is_paid)
        except Exception:  # noqa: BLE001
            log.exception("Status publisher raised for customer %s", customer_id)
            return False

    @staticmethod
    def _advance(outcome: ReconciliationOutcome, target: ReconciliationState) -> None:
        if target not in _TRANSITIONS[outcome.state]:
            raise InvalidTransitionError(outcome.state, target)
        log.debug("Customer %s: %s -> %s", outcome.customer_id, outcome.state, target)
        outcome.state = target
