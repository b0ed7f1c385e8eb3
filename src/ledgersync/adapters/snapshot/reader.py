"""Read header + data rows from spreadsheet and CSV snapshot files."""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING

import openpyxl
import xlrd

from ledgersync.domain.errors import SnapshotError

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable, Iterator
    from pathlib import Path

Row = dict[str, object]

SUPPORTED_SUFFIXES = frozenset({".xls", ".xlsx", ".xlsm", ".csv"})
_XLS_EMPTY_TYPES = frozenset({xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR})


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _iter_xlsx(path: Path) -> Generator[tuple[object, ...]]:
    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        if not workbook.worksheets:
            return
        yield from workbook.worksheets[0].iter_rows(values_only=True)
    finally:
        workbook.close()


def _xls_value(cell: xlrd.sheet.Cell, datemode: int) -> object:
    if cell.ctype in _XLS_EMPTY_TYPES:
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _iter_xls(path: Path) -> Generator[tuple[object, ...]]:
    """Legacy BIFF workbooks, the format the CRM exports by default."""
    try:
        workbook = xlrd.open_workbook(str(path), on_demand=True)
    except xlrd.XLRDError as exc:
        raise SnapshotError(f"Cannot read {path.name}: {exc}") from exc
    try:
        if not workbook.nsheets:
            return
        sheet = workbook.sheet_by_index(0)
        for index in range(sheet.nrows):
            yield tuple(_xls_value(cell, workbook.datemode) for cell in sheet.row(index))
    finally:
        workbook.release_resources()


def _iter_csv(path: Path) -> Generator[tuple[object, ...]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        for row in csv.reader(handle):
            yield tuple(row)


def _to_rows(raw_rows: Iterable[tuple[object, ...]]) -> Iterator[tuple[int, Row]]:
    iterator = iter(raw_rows)
    header_row = next(iterator, None)
    if header_row is None:
        return
    header = [str(cell).strip() if not _is_blank(cell) else None for cell in header_row]
    for offset, values in enumerate(iterator, start=2):
        if all(_is_blank(value) for value in values):
            continue
        row: Row = {}
        for name, value in zip(header, values, strict=False):
            if name is not None:
                row[name] = value
        yield offset, row


def read_header(path: Path) -> tuple[str, ...]:
    rows = _raw_rows(path)
    try:
        first = next(rows, None)
    finally:
        rows.close()
    if first is None:
        return ()
    return tuple(str(cell).strip() for cell in first if not _is_blank(cell))


def read_rows(path: Path) -> Iterator[tuple[int, Row]]:
    """Yield ``(row_number, {column: value})`` for every non-blank data row."""
    return _to_rows(_raw_rows(path))


def _raw_rows(path: Path) -> Generator[tuple[object, ...]]:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise SnapshotError(f"Unsupported snapshot file type: {path.name}")
    if suffix == ".csv":
        return _iter_csv(path)
    if suffix == ".xls":
        return _iter_xls(path)
    return _iter_xlsx(path)
