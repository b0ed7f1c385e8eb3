"""Reconciliation core: records, filtering, deduplication, engine and scheduling."""

from __future__ import annotations

from .billing_sync import SyncResult, reconcile_snapshot
from .deduplicate import deduplicate_customers
from .engine import ReconciliationEngine, build_subscription_request, churn_type_for
from .errors import RemoteCallError, RemoteUnavailableError, SnapshotError
from .model import (
    BillingPeriod,
    CancellationRecord,
    CancelType,
    ChurnType,
    CustomerEntry,
    CustomerRecord,
    CustomerStatus,
    FailureKind,
    MalformedCustomerRecord,
    Money,
    Operation,
    PlanInterval,
    ReconciliationOutcome,
    ReconciliationState,
    Snapshot,
)
from .plan_filter import PlanFilter

__all__ = [
    "BillingPeriod",
    "CancelType",
    "CancellationRecord",
    "ChurnType",
    "CustomerEntry",
    "CustomerRecord",
    "CustomerStatus",
    "FailureKind",
    "MalformedCustomerRecord",
    "Money",
    "Operation",
    "PlanFilter",
    "PlanInterval",
    "ReconciliationEngine",
    "ReconciliationOutcome",
    "ReconciliationState",
    "RemoteCallError",
    "RemoteUnavailableError",
    "Snapshot",
    "SnapshotError",
    "SyncResult",
    "build_subscription_request",
    "churn_type_for",
    "deduplicate_customers",
    "reconcile_snapshot",
]
