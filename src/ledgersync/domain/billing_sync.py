"""Application service reconciling one snapshot against the billing ledger."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .deduplicate import deduplicate_customers
from .engine import ReconciliationEngine
from .model import ReconciliationState
from .pacing import run_paced
from .plan_filter import PlanFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ledgersync.config.sync import SyncConfig

    from .model import CancellationRecord, CustomerEntry, ReconciliationOutcome, Snapshot
    from .ports import BillingLedger, StatusPublisher
    from .retry import Sleep

log = getLogger(__name__)


@dataclass(slots=True)
class SyncResult:
    """Outcome of one reconciliation run."""

    rows: int
    ignored_plans: frozenset[str] = frozenset()
    outcomes: list[ReconciliationOutcome] = field(default_factory=list["ReconciliationOutcome"])

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def publish_failures(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if outcome.state is ReconciliationState.DONE and not outcome.published
        )


def index_cancellations(
    cancellations: Iterable[CancellationRecord],
) -> dict[str, CancellationRecord]:
    """Join table by profile id; a later row replaces an earlier one."""
    return {record.profile_id: record for record in cancellations}


async def reconcile_snapshot(
    snapshot: Snapshot,
    *,
    ledger: BillingLedger,
    publisher: StatusPublisher,
    config: SyncConfig,
    sleep: Sleep = asyncio.sleep,
) -> SyncResult:
    """Reconcile every authoritative customer of ``snapshot``.

    Filtering and deduplication errors propagate; per-customer failures end up
    on the returned outcomes.
    """

    plan_filter = PlanFilter(config.plans)
    customers = deduplicate_customers(snapshot.customers, plan_filter=plan_filter)
    cancellations = index_cancellations(snapshot.cancellations)
    engine = ReconciliationEngine.from_config(
        config, ledger=ledger, publisher=publisher, sleep=sleep
    )
    total = len(customers)
    log.info("Reconciling %s customers from %s snapshot rows", total, len(snapshot.customers))

    finished = 0

    async def reconcile_one(customer: CustomerEntry) -> ReconciliationOutcome:
        nonlocal finished
        outcome = await engine.reconcile(customer, cancellations.get(customer.profile_id))
        finished += 1
        if finished % config.progress_every == 0 or finished == total:
            log.info("Done with %s of %s", finished, total)
        return outcome

    results = await run_paced(
        customers,
        reconcile_one,
        stagger=config.pacing_delay,
        max_concurrency=config.max_concurrency,
        sleep=sleep,
    )
    outcomes = [outcome for outcome in results if outcome is not None]
    result = SyncResult(
        rows=len(snapshot.customers),
        ignored_plans=plan_filter.ignored,
        outcomes=outcomes,
    )
    log.info(
        "Finished reconciliation: attempted=%s, succeeded=%s, failed=%s, publish_failures=%s",
        result.attempted,
        result.succeeded,
        result.failed,
        result.publish_failures,
    )
    return result
