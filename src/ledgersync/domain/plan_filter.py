"""Allow-list of plans this run is responsible for."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)


class PlanFilter:
    """Membership test against the configured plan set.

    Each distinct ignored plan name is logged once per instance, so a snapshot
    with thousands of rows on an unrelated plan produces one log line.
    """

    def __init__(self, plans: Iterable[str]) -> None:
        self._plans = frozenset(plans)
        self._reported: set[str] = set()

    @property
    def ignored(self) -> frozenset[str]:
        return frozenset(self._reported)

    def accepts(self, plan_name: str) -> bool:
        if plan_name in self._plans:
            return True
        if plan_name not in self._reported:
            self._reported.add(plan_name)
            log.info("Ignoring plan not configured for sync: %r", plan_name)
        return False
