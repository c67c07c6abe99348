"""Delimited-text parsing into a raw, untyped table."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from fin_ingest.shared.exceptions import MalformedInputError

from .headers import placeholder_headers, sanitize_headers
from .types import RawRow


@dataclass(slots=True)
class RawTable:
    """Non-blank rows of an upload, in file order.

    ``row_numbers`` holds the 1-based record number of each row in the source
    file so validation messages can point back at it.
    """

    rows: list[RawRow]
    row_numbers: list[int]

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(slots=True)
class HeaderSplit:
    headers: tuple[str, ...]
    data_rows: list[RawRow]
    data_row_numbers: list[int]
    has_header: bool


def _is_blank(row: RawRow) -> bool:
    return not any(cell.strip() for cell in row)


def decode_upload(data: bytes | str, *, source_name: str = "upload") -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInputError(
            f"{source_name}: file is not valid UTF-8 text ({exc.reason} at byte {exc.start})"
        ) from exc


def parse_delimited(
    data: bytes | str,
    *,
    source_name: str = "upload",
    delimiter: str = ",",
) -> RawTable:
    """Parse CSV text into a :class:`RawTable`, discarding blank rows."""

    text = decode_upload(data, source_name=source_name)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows: list[RawRow] = []
    numbers: list[int] = []
    try:
        for number, row in enumerate(reader, start=1):
            cells = tuple(row)
            if _is_blank(cells):
                continue
            rows.append(cells)
            numbers.append(number)
    except csv.Error as exc:
        raise MalformedInputError(f"{source_name}: malformed CSV near record {reader.line_num}: {exc}") from exc
    return RawTable(rows=rows, row_numbers=numbers)


def split_header(table: RawTable, has_header: bool) -> HeaderSplit:
    """Divide a table into header labels and data rows.

    Re-splitting the same table with the other flag moves the first row
    between header and data without touching the source file.
    """

    if not table.rows:
        return HeaderSplit(headers=(), data_rows=[], data_row_numbers=[], has_header=has_header)
    width = table.width
    if has_header:
        return HeaderSplit(
            headers=sanitize_headers(table.rows[0], width),
            data_rows=list(table.rows[1:]),
            data_row_numbers=list(table.row_numbers[1:]),
            has_header=True,
        )
    return HeaderSplit(
        headers=tuple(placeholder_headers(width)),
        data_rows=list(table.rows),
        data_row_numbers=list(table.row_numbers),
        has_header=False,
    )
