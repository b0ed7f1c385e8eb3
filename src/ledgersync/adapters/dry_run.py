"""Ledger stand-in that records calls instead of issuing them."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgersync.domain.model import ChurnType
    from ledgersync.domain.ports import SubscriptionRequest

log = getLogger(__name__)


@dataclass(slots=True)
class DryRunLedger:
    calls: list[tuple[str, str]] = field(default_factory=list["tuple[str, str]"])

    async def create_subscription(self, request: SubscriptionRequest) -> None:
        log.info("[dry-run] create subscription %s", request)
        self.calls.append(("create_subscription", request.subscription_alias))

    async def churn_subscription(
        self,
        *,
        subscription_alias: str,
        effective_date: int,
        churn_type: ChurnType,
    ) -> None:
        log.info(
            "[dry-run] churn %s effective_date=%s churn_type=%s",
            subscription_alias,
            effective_date,
            churn_type,
        )
        self.calls.append(("churn", subscription_alias))

    async def unchurn_subscription(self, *, subscription_alias: str) -> None:
        log.info("[dry-run] unchurn %s", subscription_alias)
        self.calls.append(("unchurn", subscription_alias))
