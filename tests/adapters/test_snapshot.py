from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
import xlrd
from openpyxl import Workbook
from xlrd.sheet import Cell

from ledgersync.adapters.snapshot import (
    DirectorySnapshotSource,
    find_files,
    load_snapshot,
    parse_cancel_type,
    parse_date,
    read_rows,
)
from ledgersync.config.snapshot import SnapshotConfig
from ledgersync.domain.errors import SnapshotError
from ledgersync.domain.model import (
    BillingPeriod,
    CancelType,
    CustomerRecord,
    CustomerStatus,
    MalformedCustomerRecord,
)

if TYPE_CHECKING:
    from pathlib import Path

CUSTOMER_HEADER = [
    "Custom Id",
    "Profile Id",
    "Service",
    "Payperiod",
    "Renewal Amount",
    "Registration Date",
    "Renewal Date",
    "Status",
]


def _write_xlsx(path: Path, rows: list[list[object]]) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    assert sheet is not None
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def _write_csv(path: Path, rows: list[list[object]]) -> Path:
    with path.open("w", newline="") as handle:
        csv.writer(handle).writerows(rows)
    return path


def test_load_snapshot_from_xlsx(tmp_path: Path) -> None:
    _write_xlsx(
        tmp_path / "customers-2024.xlsx",
        [
            CUSTOMER_HEADER,
            [
                12345,
                "P-1",
                "Stale Lead Tracker",
                "Yearly",
                "USD 49.00",
                datetime(2021, 3, 1),
                datetime(2022, 3, 1),
                "Active",
            ],
            [None] * 8,
            [
                "C-2",
                "P-2",
                "CRM Mobile Plus",
                "monthly",
                "EUR 5.50",
                "Mar 01, 2021",
                "2022-03-01",
                "INACTIVE",
            ],
        ],
    )
    _write_xlsx(
        tmp_path / "cancellations.xlsx",
        [["Profile Id", "Cancel Type"], ["P-2", "Auto Cancel"], ["P-3", "User Cancel"]],
    )

    snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    first, second = snapshot.customers
    assert isinstance(first, CustomerRecord)
    assert isinstance(second, CustomerRecord)
    assert first.customer_id == "12345"
    assert first.billing_period is BillingPeriod.YEARLY
    assert first.renewal_amount.amount == Decimal("49.00")
    assert first.registration_date == date(2021, 3, 1)
    assert first.status is CustomerStatus.ACTIVE
    assert second.plan_name == "CRM Mobile Plus"
    assert second.billing_period is BillingPeriod.MONTHLY
    assert second.registration_date == date(2021, 3, 1)
    assert second.status is CustomerStatus.INACTIVE
    assert [record.cancel_type for record in snapshot.cancellations] == [
        CancelType.AUTO_CANCEL,
        CancelType.USER_CANCEL,
    ]


def test_load_snapshot_from_csv(tmp_path: Path) -> None:
    _write_csv(
        tmp_path / "customers.csv",
        [
            CUSTOMER_HEADER,
            ["C1", "P1", "Notes Filter Extension", "Monthly", "USD 10.00", "01/15/2021",
             "15 Jan 2022", "Active"],
        ],
    )

    snapshot = DirectorySnapshotSource(SnapshotConfig(directory=tmp_path))()

    assert len(snapshot.customers) == 1
    assert snapshot.customers[0].renewal_date == date(2022, 1, 15)
    assert snapshot.cancellations == []


def test_empty_directory_yields_empty_snapshot(tmp_path: Path) -> None:
    snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    assert snapshot.customers == []
    assert snapshot.cancellations == []


def test_header_only_file_yields_no_rows(tmp_path: Path) -> None:
    path = _write_xlsx(tmp_path / "customers.xlsx", [CUSTOMER_HEADER])

    assert list(read_rows(path)) == []
    assert load_snapshot(SnapshotConfig(directory=tmp_path)).customers == []


def test_missing_column_is_rejected(tmp_path: Path) -> None:
    _write_csv(tmp_path / "customers.csv", [CUSTOMER_HEADER[:-1]])

    with pytest.raises(SnapshotError, match="missing columns: Status"):
        load_snapshot(SnapshotConfig(directory=tmp_path))


def test_unparsable_fields_become_malformed_records(tmp_path: Path) -> None:
    _write_csv(
        tmp_path / "customers.csv",
        [
            CUSTOMER_HEADER,
            ["C1", "P1", "Stale Lead Tracker", "Monthly", "USD 10.00", "2021-01-01",
             "2022-01-01", "Active"],
            ["C2", "P2", "CRM Free Edition", "Monthly", "Free", "2021-01-01",
             "2022-02-01", "Suspended"],
            ["C3", "", "Stale Lead Tracker", "Weekly", "", "", "", "Active"],
        ],
    )

    snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    valid, free, broken = snapshot.customers
    assert isinstance(valid, CustomerRecord)
    assert isinstance(free, MalformedCustomerRecord)
    assert free.plan_name == "CRM Free Edition"
    assert free.renewal_date == date(2022, 2, 1)
    assert [problem.split(" '")[0] for problem in free.problems] == ["Renewal Amount", "Status"]
    assert "'Free'" in free.problems[0]
    assert isinstance(broken, MalformedCustomerRecord)
    assert broken.renewal_date is None
    assert broken.problems[0] == "Profile Id is blank"
    assert len(broken.problems) == 5


def test_blank_customer_id_names_file_and_row(tmp_path: Path) -> None:
    _write_csv(
        tmp_path / "customers.csv",
        [
            CUSTOMER_HEADER,
            ["C1", "P1", "Stale Lead Tracker", "Monthly", "USD 10.00", "2021-01-01",
             "2022-01-01", "Active"],
            ["", "P2", "Stale Lead Tracker", "Monthly", "USD 10.00", "2021-01-01",
             "2022-01-01", "Active"],
        ],
    )

    with pytest.raises(SnapshotError, match=r"customers\.csv row 3"):
        load_snapshot(SnapshotConfig(directory=tmp_path))


def test_cancellation_rows_without_profile_are_skipped(tmp_path: Path) -> None:
    _write_csv(
        tmp_path / "cancellations.csv",
        [["Profile Id", "Cancel Type"], ["", "Auto Cancel"], ["P-1", "Auto Cancel"]],
    )

    snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    assert [record.profile_id for record in snapshot.cancellations] == ["P-1"]


@dataclass
class _FakeSheet:
    rows: list[list[Cell]]

    @property
    def nrows(self) -> int:
        return len(self.rows)

    def row(self, index: int) -> list[Cell]:
        return self.rows[index]


@dataclass
class _FakeBook:
    sheet: _FakeSheet
    datemode: int = 0
    nsheets: int = 1
    opened: list[str] = field(default_factory=list)
    released: bool = False

    def sheet_by_index(self, index: int) -> _FakeSheet:
        assert index == 0
        return self.sheet

    def release_resources(self) -> None:
        self.released = True


def _text(value: str) -> Cell:
    return Cell(xlrd.XL_CELL_TEXT, value)


def test_load_snapshot_from_legacy_xls(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "customers_export.xls").write_bytes(b"\xd0\xcf\x11\xe0")
    book = _FakeBook(
        _FakeSheet(
            [
                [_text(name) for name in CUSTOMER_HEADER],
                [
                    Cell(xlrd.XL_CELL_NUMBER, 12345.0),
                    _text("P-1"),
                    _text("Twilio SMS Extension for Zoho CRM"),
                    _text("Yearly"),
                    _text("USD 120.00"),
                    Cell(xlrd.XL_CELL_DATE, 44256.0),
                    Cell(xlrd.XL_CELL_DATE, 44621.0),
                    _text("Inactive"),
                ],
                [Cell(xlrd.XL_CELL_EMPTY, "")] * 8,
            ]
        )
    )

    def open_workbook(filename: str, *, on_demand: bool = False) -> _FakeBook:
        book.opened.append(filename)
        return book

    monkeypatch.setattr(xlrd, "open_workbook", open_workbook)

    snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    (record,) = snapshot.customers
    assert isinstance(record, CustomerRecord)
    assert record.customer_id == "12345"
    assert record.billing_period is BillingPeriod.YEARLY
    assert record.registration_date == date(2021, 3, 1)
    assert record.renewal_date == date(2022, 3, 1)
    assert record.status is CustomerStatus.INACTIVE
    assert book.released


def test_corrupt_xls_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "customers.xls"
    path.write_bytes(b"not a workbook at all")

    with pytest.raises(SnapshotError, match=r"Cannot read customers\.xls"):
        list(read_rows(path))


def test_unmatched_spreadsheets_are_reported(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    _write_csv(tmp_path / "export-2024.csv", [CUSTOMER_HEADER])

    with caplog.at_level(logging.WARNING, logger="ledgersync.adapters.snapshot.loader"):
        snapshot = load_snapshot(SnapshotConfig(directory=tmp_path))

    assert snapshot.customers == []
    assert "No customer file" in caplog.text
    assert "export-2024.csv" in caplog.text


def test_missing_directory_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SnapshotError, match="does not exist"):
        load_snapshot(SnapshotConfig(directory=tmp_path / "nope"))


def test_unsupported_file_type(tmp_path: Path) -> None:
    path = tmp_path / "customers.ods"
    path.write_bytes(b"PK")

    with pytest.raises(SnapshotError, match="Unsupported snapshot file type"):
        read_rows(path)


def test_find_files_matches_patterns_sorted(tmp_path: Path) -> None:
    for name in ("b_customers.csv", "a_customers.xlsx", "cancellations.csv", "notes.txt"):
        (tmp_path / name).write_text("")

    found = find_files(tmp_path, ("*customers*.xlsx", "*customers*.csv"))

    assert [path.name for path in found] == ["a_customers.xlsx", "b_customers.csv"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (datetime(2021, 5, 4, 13, 30), date(2021, 5, 4)),
        (date(2021, 5, 4), date(2021, 5, 4)),
        ("2021-05-04", date(2021, 5, 4)),
        ("2021-05-04T10:00:00Z", date(2021, 5, 4)),
        ("May 04, 2021", date(2021, 5, 4)),
        ("04 May 2021", date(2021, 5, 4)),
        ("05/04/2021", date(2021, 5, 4)),
    ],
)
def test_parse_date_formats(raw: object, expected: date) -> None:
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "yesterday", 44321])
def test_parse_date_rejects_garbage(raw: object) -> None:
    with pytest.raises(ValueError, match="Invalid date"):
        parse_date(raw)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Auto Cancel", CancelType.AUTO_CANCEL),
        ("auto_cancel", CancelType.AUTO_CANCEL),
        ("User Cancel", CancelType.USER_CANCEL),
        ("UserCancel", CancelType.USER_CANCEL),
        ("Refund", CancelType.OTHER),
        (None, CancelType.OTHER),
    ],
)
def test_parse_cancel_type(raw: object, expected: CancelType) -> None:
    assert parse_cancel_type(raw) is expected
