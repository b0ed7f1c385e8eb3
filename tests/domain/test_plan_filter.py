from __future__ import annotations

import logging

import pytest

from ledgersync.domain.plan_filter import PlanFilter


def test_plan_filter_accepts_configured_plans() -> None:
    plan_filter = PlanFilter({"Stale Lead Tracker", "Notes Filter Extension"})

    assert plan_filter.accepts("Stale Lead Tracker")
    assert not plan_filter.accepts("CRM Mobile Plus")


def test_plan_filter_logs_each_ignored_plan_once(caplog: pytest.LogCaptureFixture) -> None:
    plan_filter = PlanFilter({"Stale Lead Tracker"})

    with caplog.at_level(logging.INFO, logger="ledgersync.domain.plan_filter"):
        for _ in range(1000):
            plan_filter.accepts("CRM Mobile Plus")
        plan_filter.accepts("Zoho Desk Bridge")
        plan_filter.accepts("CRM Mobile Plus")

    ignored_lines = [record for record in caplog.records if "Ignoring plan" in record.message]
    assert len(ignored_lines) == 2
    assert plan_filter.ignored == frozenset({"CRM Mobile Plus", "Zoho Desk Bridge"})


def test_plan_filters_do_not_share_reported_names(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="ledgersync.domain.plan_filter"):
        PlanFilter({"A"}).accepts("B")
        PlanFilter({"A"}).accepts("B")

    assert len(caplog.records) == 2
