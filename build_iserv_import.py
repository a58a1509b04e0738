#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
build_iserv_import.py

Builds an IServ user import file from school roster exports.

Input:
- a single semicolon CSV (--file-type csv)
- every *.CSV file in a folder (--file-type csv-folder)
- the first sheet of an .xlsx workbook (--file-type excel)

Output CSV (utf-8, ';'):
- Nachname; Vorname; Klasse; Import-ID; Password
- optional issue report (--out-report) listing skipped rows and files

Logs:
- Console, optionally also --log-file

Skipped rows (missing values, malformed names) and unreadable files in folder
mode are logged as warnings and do not stop the run. An unreadable single
input or an unwritable output ends the run with exit code 2.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import asdict, dataclass, field, replace
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from roster_decode import iter_source_records
from roster_normalize import normalize_record
from roster_records import (
    OUTPUT_COLUMNS,
    PROFILES,
    Encoding,
    FileType,
    ImportRecord,
    MalformedNameError,
    OutputWriteError,
    PipelineConfig,
    RosterImportError,
    RowDecodeError,
    RowIssue,
    SourceOpenError,
    SourceSchema,
    load_config,
    parse_encoding,
    parse_grade_prefixes,
)
from wordlist import WORDLIST, WORDS, load_wordlist, parse_wordlist


DEFAULT_OUTPUT = "./import_iserv_ready.csv"
DEFAULT_PATTERN = "*.CSV"
OUTPUT_DELIMITER = ";"
OUTPUT_ENCODING = "utf-8"

REPORT_FIELDS = ["source", "row", "kind", "message"]


@dataclass
class PipelineResult:
    records: List[ImportRecord] = field(default_factory=list)
    issues: List[RowIssue] = field(default_factory=list)
    files_read: int = 0


# ----------
# Logging
# ----------

def setup_logging(debug: bool, log_file: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger("iserv_import")
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(logging.DEBUG if debug else logging.INFO)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG if debug else logging.INFO)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


# ----------------
# Source discovery
# ----------------

def find_input_files(folder: Path, pattern: str = DEFAULT_PATTERN) -> List[Path]:
    """
    Case-sensitive match on the file name, sorted by name.
    """
    files: List[Path] = []
    for p in sorted(folder.iterdir()):
        if not p.is_dir() and fnmatchcase(p.name, pattern):
            files.append(p)
    return files


# -------------------
# File-level pipeline
# -------------------

def process_file(
    file_path: Path,
    file_type: FileType,
    schema: SourceSchema,
    config: PipelineConfig,
    logger: logging.Logger,
    words: Sequence[str] = WORDS,
    rng: Optional[random.Random] = None,
) -> Tuple[List[ImportRecord], List[RowIssue]]:
    """
    Decode and normalize one source. Row problems are returned as issues,
    SourceOpenError propagates to the caller.
    """
    records: List[ImportRecord] = []
    issues: List[RowIssue] = []

    logger.info(f"Opening {file_path.name} ({file_type.value}, {schema.value}, encoding={config.encoding.value})")

    for row, item in iter_source_records(file_path, schema, file_type, config.encoding):
        if isinstance(item, RowDecodeError):
            issue = RowIssue(source=file_path.name, row=row, kind="row_decode", message=str(item))
        else:
            try:
                records.append(normalize_record(item, config, words, rng))
                continue
            except MalformedNameError as e:
                issue = RowIssue(source=file_path.name, row=row, kind="malformed_name", message=str(e))

        logger.warning(f"{file_path.name} | row {row if row is not None else '?'}: skipped ({issue.kind}) {issue.message}")
        issues.append(issue)

    logger.info(f"{file_path.name}: {len(records)} record(s) normalized, {len(issues)} row(s) skipped")
    return records, issues


def collect_records(
    source_path: Path,
    file_type: FileType,
    schema: SourceSchema,
    config: PipelineConfig,
    logger: logging.Logger,
    words: Sequence[str] = WORDS,
    pattern: str = DEFAULT_PATTERN,
    rng: Optional[random.Random] = None,
) -> PipelineResult:
    result = PipelineResult()

    if file_type is not FileType.CSV_FOLDER:
        records, issues = process_file(source_path, file_type, schema, config, logger, words, rng)
        result.records.extend(records)
        result.issues.extend(issues)
        result.files_read = 1
        return result

    if not source_path.is_dir():
        raise SourceOpenError(f"Input folder not found: {source_path}")

    files = find_input_files(source_path, pattern)
    if not files:
        logger.warning(f"No files matching {pattern!r} found in {source_path.resolve()}")
        return result

    logger.info(f"Found {len(files)} file(s) matching {pattern!r} in {source_path.resolve()}")
    for fp in files:
        try:
            records, issues = process_file(fp, FileType.CSV, schema, config, logger, words, rng)
        except SourceOpenError as e:
            logger.error(f"{fp.name}: skipped file, {e}")
            result.issues.append(RowIssue(source=fp.name, row=None, kind="source_open", message=str(e)))
            continue
        result.records.extend(records)
        result.issues.extend(issues)
        result.files_read += 1

    return result


# -------
# Output
# -------

def records_to_frame(records: Sequence[ImportRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(rows, columns=list(OUTPUT_COLUMNS.keys()))
    return df.rename(columns=OUTPUT_COLUMNS)


def write_records(records: Sequence[ImportRecord], output_path: Path) -> None:
    df = records_to_frame(records)
    try:
        df.to_csv(output_path, sep=OUTPUT_DELIMITER, index=False, encoding=OUTPUT_ENCODING)
    except (OSError, ValueError) as e:
        raise OutputWriteError(f"Cannot write output {output_path}: {e}") from e


def write_report(issues: Sequence[RowIssue], report_path: Path) -> None:
    df = pd.DataFrame([asdict(i) for i in issues], columns=REPORT_FIELDS)
    df["row"] = df["row"].astype("Int64")
    try:
        df.to_csv(report_path, sep=OUTPUT_DELIMITER, index=False, encoding=OUTPUT_ENCODING)
    except (OSError, ValueError) as e:
        raise OutputWriteError(f"Cannot write report {report_path}: {e}") from e


def run_pipeline(
    source_path: Path,
    file_type: FileType,
    schema: SourceSchema,
    config: PipelineConfig,
    output_path: Path,
    logger: logging.Logger,
    words: Sequence[str] = WORDS,
    report_path: Optional[Path] = None,
    pattern: str = DEFAULT_PATTERN,
    rng: Optional[random.Random] = None,
) -> PipelineResult:
    result = collect_records(source_path, file_type, schema, config, logger, words, pattern, rng)

    write_records(result.records, output_path)
    logger.info(f"Wrote IServ import: {output_path.resolve()} rows={len(result.records)}")

    if report_path is not None:
        write_report(result.issues, report_path)
        logger.info(f"Wrote issue report: {report_path.resolve()} rows={len(result.issues)}")

    if result.issues:
        logger.warning(f"{len(result.issues)} row(s)/file(s) skipped, see log for details")
    return result


# -----
# Main
# -----

def build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PROFILES[args.profile]
    if args.config:
        config = load_config(args.config, config)

    changes: Dict[str, Any] = {}
    if args.encoding:
        changes["encoding"] = parse_encoding(args.encoding)
    if args.words is not None:
        changes["word_count"] = args.words
    if args.grade_prefixes is not None:
        changes["grade_prefixes"] = parse_grade_prefixes(args.grade_prefixes)
    if args.separator is not None:
        changes["separator"] = args.separator
    return replace(config, **changes).validate()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build an IServ user import CSV with generated passwords from roster exports.")
    parser.add_argument("-f", "--file-path", required=True, help="Input file, or folder for --file-type csv-folder")
    parser.add_argument("-o", "--output-path", default=DEFAULT_OUTPUT, help=f"Output CSV (default: {DEFAULT_OUTPUT})")
    parser.add_argument("-r", "--record-type", default=SourceSchema.SCHILD.value, choices=[s.value for s in SourceSchema], help="Source schema (default: schild)")
    parser.add_argument("-t", "--file-type", default=FileType.CSV.value, choices=[t.value for t in FileType], help="Input kind (default: csv)")
    parser.add_argument("-e", "--encoding", default=None, choices=[e.value for e in Encoding], help="CSV encoding (default: from profile)")
    parser.add_argument("--profile", default="standard", choices=sorted(PROFILES), help="Deployment profile (default: standard)")
    parser.add_argument("--config", default=None, help="JSON file with word_count / grade_prefixes / encoding / separator")
    parser.add_argument("--words", type=int, default=None, help="Words per password (overrides profile)")
    parser.add_argument("--grade-prefixes", default=None, help="Comma separated grade prefixes to collapse, e.g. 11,12,13")
    parser.add_argument("--separator", default=None, help="Separator between password words (default: -)")
    parser.add_argument("--wordlist", default=None, help="Custom word list file, one word per line")
    parser.add_argument("--pattern", default=DEFAULT_PATTERN, help=f"File name pattern for csv-folder, case-sensitive (default: {DEFAULT_PATTERN})")
    parser.add_argument("--out-report", default=None, help="Optional CSV listing skipped rows and files")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.debug, args.log_file)
    logger.info("Starting IServ import build")

    source_path = Path(args.file_path)
    if not source_path.exists():
        logger.error(f"Input not found: {source_path.resolve()}")
        return 2

    try:
        config = build_config(args)
        if args.wordlist:
            words = load_wordlist(args.wordlist, config.separator)
        else:
            words = parse_wordlist(WORDLIST, config.separator)
        logger.debug(f"Config: {config}")

        run_pipeline(
            source_path=source_path,
            file_type=FileType(args.file_type),
            schema=SourceSchema(args.record_type),
            config=config,
            output_path=Path(args.output_path),
            logger=logger,
            words=words,
            report_path=Path(args.out_report) if args.out_report else None,
            pattern=args.pattern,
        )
    except RosterImportError as e:
        logger.error(f"Aborted: {e}")
        return 2

    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
