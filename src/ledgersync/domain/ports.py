"""Ports the reconciliation core consumes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .model import ChurnType, PlanInterval, Snapshot


@dataclass(frozen=True, slots=True)
class SubscriptionRequest:
    """Payload of a create-subscription call, in ledger terms."""

    user_alias: str
    subscription_alias: str
    email: str
    plan_id: str
    plan_interval: PlanInterval
    value: int
    plan_currency: str
    effective_date: int


@runtime_checkable
class BillingLedger(Protocol):
    """Remote subscription ledger. Failures are raised as exceptions."""

    async def create_subscription(self, request: SubscriptionRequest) -> None: ...

    async def churn_subscription(
        self,
        *,
        subscription_alias: str,
        effective_date: int,
        churn_type: ChurnType,
    ) -> None: ...

    async def unchurn_subscription(self, *, subscription_alias: str) -> None: ...


@runtime_checkable
class StatusPublisher(Protocol):
    """Best-effort sink for the paid/unpaid flag. Never raises."""

    async def publish(self, *, customer_id: str, is_paid: bool) -> bool: ...


@runtime_checkable
class SnapshotSource(Protocol):
    def __call__(self) -> Snapshot: ...


__all__ = ["BillingLedger", "SnapshotSource", "StatusPublisher", "SubscriptionRequest"]
