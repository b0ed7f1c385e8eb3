"""Public interface for the snapshot reader."""

from __future__ import annotations

from .loader import (
    DirectorySnapshotSource,
    find_files,
    load_cancellations,
    load_customers,
    load_snapshot,
)
from .reader import read_rows
from .schema import CancellationRow, CustomerRow, parse_cancel_type, parse_date

__all__ = [
    "CancellationRow",
    "CustomerRow",
    "DirectorySnapshotSource",
    "find_files",
    "load_cancellations",
    "load_customers",
    "load_snapshot",
    "parse_cancel_type",
    "parse_date",
    "read_rows",
]
