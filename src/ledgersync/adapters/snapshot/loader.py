"""Turn a snapshot directory into domain records."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from ledgersync.domain.errors import SnapshotError
from ledgersync.domain.model import MalformedCustomerRecord, Snapshot

from .reader import SUPPORTED_SUFFIXES, read_header, read_rows
from .schema import CANCELLATION_COLUMNS, CUSTOMER_COLUMNS, CancellationRow, CustomerRow

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from ledgersync.config.snapshot import SnapshotConfig
    from ledgersync.domain.model import CancellationRecord, CustomerEntry

log = getLogger(__name__)


def find_files(directory: Path, patterns: Iterable[str]) -> list[Path]:
    found: set[Path] = set()
    for pattern in patterns:
        found.update(path for path in directory.glob(pattern) if path.is_file())
    return sorted(found)


def _check_columns(path: Path, required: Iterable[str]) -> None:
    header = set(read_header(path))
    missing = [column for column in required if column not in header]
    if missing:
        raise SnapshotError(f"{path.name} is missing columns: {', '.join(missing)}")


def _validate[M: BaseModel](model: type[M], path: Path, number: int, row: dict[str, object]) -> M:
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        raise SnapshotError(f"{path.name} row {number}: {exc}") from exc


def load_customers(paths: Iterable[Path]) -> list[CustomerEntry]:
    records: list[CustomerEntry] = []
    for path in paths:
        _check_columns(path, CUSTOMER_COLUMNS)
        before = len(records)
        malformed = 0
        for number, row in read_rows(path):
            record = _validate(CustomerRow, path, number, row).to_record()
            if isinstance(record, MalformedCustomerRecord):
                malformed += 1
                log.debug("%s row %s does not parse: %s", path.name, number, record.problems)
            records.append(record)
        log.info(
            "Read %s customer rows from %s (%s with unparsable fields)",
            len(records) - before,
            path.name,
            malformed,
        )
    return records


def load_cancellations(paths: Iterable[Path]) -> list[CancellationRecord]:
    records: list[CancellationRecord] = []
    for path in paths:
        _check_columns(path, CANCELLATION_COLUMNS)
        before = len(records)
        for number, row in read_rows(path):
            cancellation = _validate(CancellationRow, path, number, row)
            if not cancellation.profile_id:
                log.warning("Skipping %s row %s without a Profile Id", path.name, number)
                continue
            records.append(cancellation.to_record())
        log.info("Read %s cancellation rows from %s", len(records) - before, path.name)
    return records


def _warn_unmatched(directory: Path, patterns: Iterable[str]) -> None:
    spreadsheets = sorted(
        path.name
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
    )
    if spreadsheets:
        log.warning(
            "No customer file in %s matches %s; found %s",
            directory,
            list(patterns),
            spreadsheets,
        )


def load_snapshot(config: SnapshotConfig) -> Snapshot:
    directory = config.resolve_directory()
    if not directory.is_dir():
        raise SnapshotError(f"Snapshot directory does not exist: {directory}")

    customer_files = find_files(directory, config.customer_patterns)
    cancellation_files = [
        path
        for path in find_files(directory, config.cancellation_patterns)
        if path not in customer_files
    ]
    log.info(
        "Snapshot files in %s: customers=%s, cancellations=%s",
        directory,
        [path.name for path in customer_files],
        [path.name for path in cancellation_files],
    )
    if not customer_files:
        _warn_unmatched(directory, config.customer_patterns)
    return Snapshot(
        customers=load_customers(customer_files),
        cancellations=load_cancellations(cancellation_files),
    )


@dataclass(frozen=True, slots=True)
class DirectorySnapshotSource:
    config: SnapshotConfig

    def __call__(self) -> Snapshot:
        return load_snapshot(self.config)
