"""Pydantic row models mapping snapshot columns onto domain records."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledgersync.domain.model import (
    BillingPeriod,
    CancellationRecord,
    CancelType,
    CustomerRecord,
    CustomerStatus,
    MalformedCustomerRecord,
    Money,
)

if TYPE_CHECKING:
    from collections.abc import Callable

DATE_FORMATS: Final[tuple[str, ...]] = (
    "%b %d, %Y",
    "%b %d, %Y %H:%M:%S",
    "%d %b %Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
)


def cell_to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return str(value)


def parse_date(value: object) -> date:
    """Accept spreadsheet date cells as well as the textual forms CRM exports use."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r}")


def parse_cancel_type(value: object) -> CancelType:
    if not isinstance(value, str):
        return CancelType.OTHER
    compact = "".join(value.split()).replace("_", "").replace("-", "").lower()
    if compact == "usercancel":
        return CancelType.USER_CANCEL
    if compact == "autocancel":
        return CancelType.AUTO_CANCEL
    return CancelType.OTHER


def parse_billing_period(value: str) -> BillingPeriod:
    return BillingPeriod(value.title())


def parse_status(value: str) -> CustomerStatus:
    return CustomerStatus(value.title())


def _parse_field[V, T](
    problems: list[str], column: str, raw: V, parse: Callable[[V], T]
) -> T | None:
    try:
        return parse(raw)
    except ValueError as exc:
        problems.append(f"{column} {raw!r}: {exc}")
        return None


class SnapshotBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class CustomerRow(SnapshotBaseModel):
    """One customer row; only the identity columns are required to be valid.

    The remaining columns are kept as text and parsed in ``to_record`` so that
    a bad value only affects its own customer.
    """

    customer_id: str = Field(alias="Custom Id", min_length=1)
    plan_name: str = Field(alias="Service", min_length=1)
    profile_id: str = Field(alias="Profile Id", default="")
    billing_period: str = Field(alias="Payperiod", default="")
    renewal_amount: str = Field(alias="Renewal Amount", default="")
    registration_date: Any = Field(alias="Registration Date", default=None)
    renewal_date: Any = Field(alias="Renewal Date", default=None)
    status: str = Field(alias="Status", default="")

    _normalize_text = field_validator(
        "customer_id",
        "plan_name",
        "profile_id",
        "billing_period",
        "renewal_amount",
        "status",
        mode="before",
    )(cell_to_text)

    def to_record(self) -> CustomerRecord | MalformedCustomerRecord:
        problems: list[str] = []
        if not self.profile_id:
            problems.append("Profile Id is blank")
        billing_period = _parse_field(
            problems, "Payperiod", self.billing_period, parse_billing_period
        )
        amount = _parse_field(problems, "Renewal Amount", self.renewal_amount, Money.parse)
        registration_date = _parse_field(
            problems, "Registration Date", self.registration_date, parse_date
        )
        renewal_date = _parse_field(problems, "Renewal Date", self.renewal_date, parse_date)
        status = _parse_field(problems, "Status", self.status, parse_status)

        if (
            problems
            or billing_period is None
            or amount is None
            or registration_date is None
            or renewal_date is None
            or status is None
        ):
            return MalformedCustomerRecord(
                customer_id=self.customer_id,
                profile_id=self.profile_id,
                plan_name=self.plan_name,
                renewal_date=renewal_date,
                problems=tuple(problems),
            )
        return CustomerRecord(
            customer_id=self.customer_id,
            profile_id=self.profile_id,
            plan_name=self.plan_name,
            billing_period=billing_period,
            renewal_amount=amount,
            registration_date=registration_date,
            renewal_date=renewal_date,
            status=status,
        )


class CancellationRow(SnapshotBaseModel):
    profile_id: str = Field(alias="Profile Id", default="")
    cancel_type: CancelType = Field(alias="Cancel Type", default=CancelType.OTHER)

    _normalize_profile = field_validator("profile_id", mode="before")(cell_to_text)

    @field_validator("cancel_type", mode="before")
    @classmethod
    def _parse_cancel_type(cls, value: object) -> CancelType:
        return parse_cancel_type(value)

    def to_record(self) -> CancellationRecord:
        return CancellationRecord(profile_id=self.profile_id, cancel_type=self.cancel_type)


CUSTOMER_COLUMNS: Final[tuple[str, ...]] = tuple(
    field.alias for field in CustomerRow.model_fields.values() if field.alias
)
CANCELLATION_COLUMNS: Final[tuple[str, ...]] = ("Profile Id",)
