"""Collapse a noisy snapshot into one authoritative record per customer.

The snapshot may contain several rows for the same ``customer_id`` (renewals,
re-exports, stale rows). The surviving record is the one with the latest
``renewal_date``; on equal dates the row seen later in the snapshot wins.
Rows on plans outside the sync allow-list never take part in the merge. A
malformed row without a readable renewal date sorts before every dated row.
"""

from __future__ import annotations

from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import CustomerEntry
    from .plan_filter import PlanFilter

log = getLogger(__name__)


def _renewal_key(record: CustomerEntry) -> date:
    return record.renewal_date or date.min


def deduplicate_customers(
    records: Iterable[CustomerEntry],
    *,
    plan_filter: PlanFilter,
) -> list[CustomerEntry]:
    """Return authoritative records ordered by first appearance of their id."""

    survivors: dict[str, CustomerEntry] = {}
    seen = 0
    for record in records:
        if not plan_filter.accepts(record.plan_name):
            continue
        seen += 1
        current = survivors.get(record.customer_id)
        # dict keeps first insertion order, replacing a value does not move the key
        if current is None or _renewal_key(record) >= _renewal_key(current):
            survivors[record.customer_id] = record

    if seen != len(survivors):
        log.info(
            "Collapsed %s snapshot rows into %s authoritative customers", seen, len(survivors)
        )
    return list(survivors.values())
