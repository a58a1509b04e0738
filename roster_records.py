#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
roster_records.py

Record shapes, runtime configuration and errors for the IServ import builder.

Source schemas:
- schild:        Nachname; Vorname; Klasse; eindeutige Nummer (GUID)
- gastschueler:  NAME, VORNAME; KLASSE; SCHÜLERNR

Output schema (IServ):
- Nachname; Vorname; Klasse; Import-ID; Password
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union


# -------
# Errors
# -------

class RosterImportError(Exception):
    """Base class for all import builder failures."""


class ConfigurationError(RosterImportError):
    """Invalid policy values, word list or config file."""


class SourceOpenError(RosterImportError):
    """A source file or workbook cannot be opened, decoded or parsed."""


class RowDecodeError(RosterImportError):
    """A single row does not fit the selected source schema."""

    def __init__(self, message: str, source: str = "", row: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.row = row


class MalformedNameError(RosterImportError):
    """A combined 'NAME, VORNAME' value cannot be split."""


class OutputWriteError(RosterImportError):
    """The output (or report) file cannot be written."""


# ------
# Enums
# ------

class SourceSchema(str, Enum):
    SCHILD = "schild"
    GASTSCHUELER = "gastschueler"


class FileType(str, Enum):
    CSV = "csv"
    CSV_FOLDER = "csv-folder"
    EXCEL = "excel"


class Encoding(str, Enum):
    UTF8 = "utf8"
    WINDOWS = "windows"

    @property
    def codec(self) -> str:
        # utf-8-sig drops a leading BOM, as exports from office tools often carry one
        return "utf-8-sig" if self is Encoding.UTF8 else "cp1252"


# -------------
# Data classes
# -------------

@dataclass(frozen=True)
class RosterRecord:
    surname: str
    given_name: str
    group_label: str
    external_id: str


@dataclass(frozen=True)
class GuestRecord:
    combined_name: str
    class_label: str
    external_id: str


SourceRecord = Union[RosterRecord, GuestRecord]


@dataclass(frozen=True)
class ImportRecord:
    surname: str
    given_name: str
    class_label: str
    import_id: str
    password: str


@dataclass
class RowIssue:
    source: str
    row: Optional[int]
    kind: str
    message: str


# header name -> record field, per schema
SOURCE_COLUMNS: Dict[SourceSchema, Dict[str, str]] = {
    SourceSchema.SCHILD: {
        "Nachname": "surname",
        "Vorname": "given_name",
        "Klasse": "group_label",
        "eindeutige Nummer (GUID)": "external_id",
    },
    SourceSchema.GASTSCHUELER: {
        "NAME, VORNAME": "combined_name",
        "KLASSE": "class_label",
        "SCHÜLERNR": "external_id",
    },
}

OUTPUT_COLUMNS: Dict[str, str] = {
    "surname": "Nachname",
    "given_name": "Vorname",
    "class_label": "Klasse",
    "import_id": "Import-ID",
    "password": "Password",
}


# --------------
# Configuration
# --------------

DEFAULT_SEPARATOR = "-"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Deployment policy for one run.

    grade_prefixes changes every school year (the upper grades shift by one),
    so it is passed in via profile, config file or CLI rather than fixed here.
    """
    word_count: int = 2
    grade_prefixes: Tuple[str, ...] = ("11", "12", "13")
    encoding: Encoding = Encoding.UTF8
    separator: str = DEFAULT_SEPARATOR

    def validate(self) -> "PipelineConfig":
        if not isinstance(self.word_count, int) or self.word_count < 1:
            raise ConfigurationError(f"word_count must be a positive integer, got {self.word_count!r}")
        if any(not p for p in self.grade_prefixes):
            raise ConfigurationError("grade_prefixes must not contain empty values")
        if not self.separator:
            raise ConfigurationError("separator must not be empty")
        return self


PROFILES: Dict[str, PipelineConfig] = {
    "standard": PipelineConfig(word_count=2, grade_prefixes=("11", "12", "13"), encoding=Encoding.UTF8),
    "windows": PipelineConfig(word_count=3, grade_prefixes=("11", "12", "13"), encoding=Encoding.WINDOWS),
}

CONFIG_KEYS = ("word_count", "grade_prefixes", "encoding", "separator")


def parse_grade_prefixes(value: Union[str, list, tuple]) -> Tuple[str, ...]:
    """
    Accepts "11,12,13" or ["11", "12", "13"].
    """
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        raise ConfigurationError(f"grade_prefixes must be a list or comma separated string, got {value!r}")
    prefixes = tuple(p.strip() for p in items if p.strip())
    return prefixes


def parse_encoding(value: Any) -> Encoding:
    try:
        return Encoding(value)
    except ValueError:
        choices = ", ".join(e.value for e in Encoding)
        raise ConfigurationError(f"Unknown encoding {value!r} (expected one of: {choices})") from None


def config_from_mapping(data: Dict[str, Any], base: PipelineConfig) -> PipelineConfig:
    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown config key(s): {', '.join(unknown)}")

    changes: Dict[str, Any] = {}
    if "word_count" in data:
        wc = data["word_count"]
        if isinstance(wc, bool) or not isinstance(wc, int):
            raise ConfigurationError(f"word_count must be an integer, got {wc!r}")
        changes["word_count"] = wc
    if "grade_prefixes" in data:
        changes["grade_prefixes"] = parse_grade_prefixes(data["grade_prefixes"])
    if "encoding" in data:
        changes["encoding"] = parse_encoding(data["encoding"])
    if "separator" in data:
        changes["separator"] = str(data["separator"])

    return replace(base, **changes).validate()


def load_config(path: Union[str, Path], base: PipelineConfig) -> PipelineConfig:
    """
    Overlay a JSON object such as
    {"word_count": 3, "grade_prefixes": ["12", "13", "14"], "encoding": "windows"}
    on top of a profile.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return config_from_mapping(data, base)
