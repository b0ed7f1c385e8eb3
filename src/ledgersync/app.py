"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from ledgersync.adapters.billing import BillingLedgerClient
from ledgersync.adapters.crm import CrmStatusPublisher, NullStatusPublisher
from ledgersync.adapters.dry_run import DryRunLedger
from ledgersync.adapters.snapshot import DirectorySnapshotSource
from ledgersync.config import (
    get_billing_config,
    get_crm_config,
    get_snapshot_config,
    get_sync_config,
)
from ledgersync.domain.billing_sync import SyncResult, reconcile_snapshot

if TYPE_CHECKING:
    from pathlib import Path

    from ledgersync.config.billing import BillingConfig
    from ledgersync.config.crm import CrmConfig
    from ledgersync.config.sync import SyncConfig
    from ledgersync.domain.model import Snapshot
    from ledgersync.domain.ports import SnapshotSource

log = getLogger(__name__)


def sync_billing_ledger(
    *,
    snapshot_dir: Path | None = None,
    source: SnapshotSource | None = None,
    sync_config: SyncConfig | None = None,
    dry_run: bool = False,
    publish_crm: bool = True,
) -> SyncResult:
    """Load the snapshot and reconcile it against the billing ledger.

    Configuration and snapshot problems raise before any remote call is made.
    Per-customer failures are reported on the result.
    """

    config = sync_config or get_sync_config()
    billing = None if dry_run else get_billing_config()
    crm = get_crm_config() if publish_crm and not dry_run else None
    effective_source = source or DirectorySnapshotSource(
        get_snapshot_config(directory=snapshot_dir)
    )
    log.info(
        "Starting billing sync: plans=%s, dry_run=%s, publish_crm=%s",
        sorted(config.plans),
        dry_run,
        crm is not None,
    )

    snapshot = effective_source()
    return asyncio.run(_reconcile(snapshot, config=config, billing=billing, crm=crm))


async def _reconcile(
    snapshot: Snapshot,
    *,
    config: SyncConfig,
    billing: BillingConfig | None,
    crm: CrmConfig | None,
) -> SyncResult:
    if billing is None:
        return await reconcile_snapshot(
            snapshot, ledger=DryRunLedger(), publisher=NullStatusPublisher(), config=config
        )

    async with BillingLedgerClient(config=billing) as ledger:
        if crm is None:
            return await reconcile_snapshot(
                snapshot, ledger=ledger, publisher=NullStatusPublisher(), config=config
            )
        async with CrmStatusPublisher(config=crm) as publisher:
            return await reconcile_snapshot(
                snapshot, ledger=ledger, publisher=publisher, config=config
            )
