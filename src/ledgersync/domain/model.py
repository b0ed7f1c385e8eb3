"""Domain records for one reconciliation run (pure, dependency-light)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class BillingPeriod(StrEnum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class CustomerStatus(StrEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class CancelType(StrEnum):
    USER_CANCEL = "User Cancel"
    AUTO_CANCEL = "Auto Cancel"
    OTHER = "Other"


class PlanInterval(StrEnum):
    MONTH = "Month"
    YEAR = "Year"


class ChurnType(StrEnum):
    VOLUNTARY = "voluntary"
    DELINQUENT = "delinquent"


class FailureKind(StrEnum):
    """Classification of a failed remote call."""

    ALREADY_SATISFIED = "already_satisfied"
    TRANSIENT = "transient"
    FATAL = "fatal"


class Operation(StrEnum):
    CREATE_SUBSCRIPTION = "create_subscription"
    CHURN = "churn"
    UNCHURN = "unchurn"


class ReconciliationState(StrEnum):
    START = "start"
    SUBSCRIPTION_ENSURED = "subscription_ensured"
    CHURNED = "churned"
    REACTIVATED = "reactivated"
    STATUS_PUBLISHED = "status_published"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class Money:
    currency: str
    amount: Decimal

    @classmethod
    def parse(cls, raw: str) -> Money:
        """Parse a ``"<CODE> <amount>"`` string such as ``"USD 49.00"``."""

        parts = raw.split()
        if len(parts) != 2:  # noqa: PLR2004
            raise ValueError(f"Invalid renewal amount: {raw!r}")
        currency, amount_text = parts
        try:
            amount = Decimal(amount_text.replace(",", ""))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid renewal amount: {raw!r}") from exc
        if not amount.is_finite():
            raise ValueError(f"Invalid renewal amount: {raw!r}")
        return cls(currency=currency.upper(), amount=amount)

    @property
    def minor_units(self) -> int:
        # int() on a Decimal truncates toward zero
        return int(self.amount * 100)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount}"


def epoch_seconds(value: date) -> int:
    """Unix timestamp of ``value`` at midnight UTC."""

    if isinstance(value, datetime):
        moment = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    else:
        moment = datetime(value.year, value.month, value.day, tzinfo=UTC)
    return int(moment.timestamp())


@dataclass(frozen=True, slots=True)
class CustomerRecord:
    """One customer's subscription as exported by the CRM snapshot."""

    customer_id: str
    profile_id: str
    plan_name: str
    billing_period: BillingPeriod
    renewal_amount: Money
    registration_date: date
    renewal_date: date
    status: CustomerStatus

    @property
    def is_active(self) -> bool:
        return self.status is CustomerStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class MalformedCustomerRecord:
    """A snapshot row whose identity is known but whose other fields do not parse.

    It is filtered and deduplicated like any other row. When it ends up as the
    authoritative record, that one customer fails without any remote call.
    """

    customer_id: str
    profile_id: str
    plan_name: str
    renewal_date: date | None
    problems: tuple[str, ...]


type CustomerEntry = CustomerRecord | MalformedCustomerRecord


@dataclass(frozen=True, slots=True)
class CancellationRecord:
    profile_id: str
    cancel_type: CancelType = CancelType.USER_CANCEL


@dataclass(frozen=True, slots=True)
class Snapshot:
    """All records extracted from one CRM export."""

    customers: Sequence[CustomerEntry] = ()
    cancellations: Sequence[CancellationRecord] = ()


@dataclass(slots=True)
class ReconciliationOutcome:
    """What the engine did for one customer; discarded after the run.

    ``created``, ``churned`` and ``reactivated`` report ledger mutations made by
    this run. A call that converged on existing ledger state leaves them False.
    """

    customer_id: str
    created: bool = False
    churned: bool = False
    reactivated: bool = False
    paid_status: bool | None = None
    published: bool = False
    error: FailureKind | None = None
    failed_operations: list[Operation] = field(default_factory=list["Operation"])
    state: ReconciliationState = ReconciliationState.START

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def record_failure(self, operation: Operation, kind: FailureKind | None) -> None:
        self.failed_operations.append(operation)
        if self.error is not FailureKind.FATAL:
            self.error = kind or FailureKind.FATAL
