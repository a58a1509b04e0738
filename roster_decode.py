#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
roster_decode.py

Reads roster exports (semicolon CSV or .xlsx) into typed source records.

iter_source_records() yields (row, item) pairs in file order, where item is
a RosterRecord / GuestRecord or a RowDecodeError for a row that did not fit
the schema. row is the line number in the file, counting the header as row 1.
Problems with the source as a whole raise SourceOpenError.

Dependencies:
- pandas
- openpyxl (for .xlsx)
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from roster_records import (
    SOURCE_COLUMNS,
    Encoding,
    FileType,
    GuestRecord,
    RosterRecord,
    RowDecodeError,
    SourceOpenError,
    SourceRecord,
    SourceSchema,
)


CSV_DELIMITER = ";"
CSV_CHUNK_ROWS = 500

# header row is line 1, so the first data row is row 2 in the file
FIRST_DATA_ROW = 2

# first cell of the placeholder row standing in for an untokenizable line
BAD_LINE_MARKER = "\x00bad-line:"

Source = Union[str, Path, BinaryIO]
DecodedRow = Tuple[Optional[int], Union[SourceRecord, RowDecodeError]]

_RECORD_TYPES = {
    SourceSchema.SCHILD: RosterRecord,
    SourceSchema.GASTSCHUELER: GuestRecord,
}


def cell_to_str(v: Any) -> str:
    # cells from a frame row are scalars, so pd.isna gives a plain bool here
    return "" if v is None or pd.isna(v) else str(v)


def source_name(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    return str(getattr(source, "name", "<stream>"))


def _rewind(source: Source) -> None:
    # every call decodes from the start, also for streams handed in by the caller
    if hasattr(source, "seek") and getattr(source, "seekable", lambda: False)():
        source.seek(0)


def _clean_headers(columns: List[Any]) -> List[str]:
    return [str(c).strip() for c in columns]


def decode_row(
    raw: Dict[str, Any],
    schema: SourceSchema,
    source: str = "",
    row: int = 0,
) -> SourceRecord:
    """
    Map one header->cell dict onto the schema's record type.
    Missing columns and empty cells are row errors.
    """
    mapping = SOURCE_COLUMNS[schema]
    missing_cols = [h for h in mapping if h not in raw]
    if missing_cols:
        raise RowDecodeError(f"missing column(s): {', '.join(missing_cols)}", source=source, row=row)

    values: Dict[str, str] = {}
    empty: List[str] = []
    for header, field_name in mapping.items():
        value = cell_to_str(raw[header])
        if not value.strip():
            empty.append(header)
        values[field_name] = value
    if empty:
        raise RowDecodeError(f"empty value in column(s): {', '.join(empty)}", source=source, row=row)

    return _RECORD_TYPES[schema](**values)


def _is_blank(values: List[Any]) -> bool:
    return all(not cell_to_str(v).strip() for v in values)


def _decode_frame(
    df: pd.DataFrame,
    schema: SourceSchema,
    name: str,
    first_row: int,
    bad_lines: Optional[List[List[str]]] = None,
) -> Iterator[DecodedRow]:
    """
    One frame row per input line; blank lines only advance the row counter.
    """
    df.columns = _clean_headers(list(df.columns))
    for offset, raw in enumerate(df.to_dict(orient="records")):
        row = first_row + offset
        values = list(raw.values())
        bad_index = _bad_line_index(values[0]) if bad_lines is not None and values else None
        if bad_index is not None:
            fields = bad_lines[bad_index]
            yield row, RowDecodeError(
                f"cannot tokenize line with {len(fields)} fields: {CSV_DELIMITER.join(fields)!r}",
                source=name,
                row=row,
            )
            continue
        if _is_blank(values):
            continue
        try:
            yield row, decode_row(raw, schema, source=name, row=row)
        except RowDecodeError as e:
            yield row, e


# ----
# CSV
# ----

def _bad_line_index(value: Any) -> Optional[int]:
    if isinstance(value, str) and value.startswith(BAD_LINE_MARKER):
        return int(value[len(BAD_LINE_MARKER):])
    return None


def iter_csv_records(source: Source, schema: SourceSchema, encoding: Encoding) -> Iterator[DecodedRow]:
    """
    Exports are plain semicolon files without quoting: a '"' is an ordinary
    character, so a stray quote cannot swallow the lines after it.
    """
    name = source_name(source)
    bad_lines: List[List[str]] = []

    def _on_bad_line(fields: List[str]) -> List[str]:
        # keep the line in place as a one-cell placeholder so row numbers stay exact
        bad_lines.append(fields)
        return [f"{BAD_LINE_MARKER}{len(bad_lines) - 1}"]

    _rewind(source)
    try:
        reader = pd.read_csv(
            source,
            sep=CSV_DELIMITER,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            quoting=csv.QUOTE_NONE,
            encoding=encoding.codec,
            engine="python",
            on_bad_lines=_on_bad_line,
            chunksize=CSV_CHUNK_ROWS,
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise SourceOpenError(f"{name}: cannot open CSV ({e})") from e

    next_row = FIRST_DATA_ROW
    with reader:
        while True:
            try:
                chunk = next(reader)
            except StopIteration:
                break
            except (UnicodeDecodeError, pd.errors.ParserError) as e:
                raise SourceOpenError(f"{name}: cannot parse CSV ({e})") from e

            yield from _decode_frame(chunk, schema, name, next_row, bad_lines)
            next_row += len(chunk)


# ------
# Excel
# ------

def iter_excel_records(source: Source, schema: SourceSchema) -> Iterator[DecodedRow]:
    """
    First worksheet only; the first row is the header.
    """
    name = source_name(source)
    _rewind(source)
    try:
        df = pd.read_excel(source, sheet_name=0, header=0, dtype=str, keep_default_na=False, engine="openpyxl")
    except Exception as e:
        raise SourceOpenError(f"{name}: cannot open workbook ({e})") from e

    yield from _decode_frame(df, schema, name, FIRST_DATA_ROW)


def iter_source_records(
    source: Source,
    schema: SourceSchema,
    file_type: FileType = FileType.CSV,
    encoding: Encoding = Encoding.UTF8,
) -> Iterator[DecodedRow]:
    if file_type is FileType.EXCEL:
        return iter_excel_records(source, schema)
    return iter_csv_records(source, schema, encoding)
