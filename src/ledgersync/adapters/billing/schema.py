"""Pydantic models describing the billing ledger API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ledgersync.domain.model import ChurnType, PlanInterval  # noqa: TC001


class BillingBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CreateSubscriptionPayload(BillingBaseModel):
    user_alias: str
    subscription_alias: str
    email: str
    plan_id: str
    plan_interval: PlanInterval
    value: int = Field(ge=0)
    plan_currency: str
    effective_date: int


class ChurnParams(BillingBaseModel):
    effective_date: int
    churn_type: ChurnType


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    non_field_errors: list[str] = Field(default_factory=list)
