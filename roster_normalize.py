#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
roster_normalize.py

Turns decoded source records into IServ import records.

Rules:
- schild: "Klasse" is collapsed to the grade prefix for the upper grades
  (e.g. "11b" -> "11"), anything else is kept as is.
- gastschueler: "NAME, VORNAME" is split into surname and given name, the
  leading marker of the surname and the " (G)" guest suffix are dropped.
- both: a fresh passphrase per record.
"""

from __future__ import annotations

import random
from typing import Iterable, Optional, Sequence, Tuple

from passphrase import generate_passphrase
from roster_records import (
    GuestRecord,
    ImportRecord,
    MalformedNameError,
    PipelineConfig,
    RosterRecord,
    SourceRecord,
)
from wordlist import WORDS


NAME_SEPARATOR = ", "
GUEST_SUFFIX = " (G)"


def bucket_class_label(group_label: str, grade_prefixes: Iterable[str]) -> str:
    # longest first, so a "1" prefix can never shadow "13"
    for prefix in sorted(grade_prefixes, key=len, reverse=True):
        if prefix and group_label.startswith(prefix):
            return prefix
    return group_label


def split_guest_name(combined_name: str) -> Tuple[str, str]:
    """
    "`Müller, Anna (G)" -> ("Müller", "Anna")

    The export puts a marker character in front of the surname; it is removed
    when the first character is not a letter.
    """
    if NAME_SEPARATOR not in combined_name:
        raise MalformedNameError(f"name {combined_name!r} has no {NAME_SEPARATOR!r} separator")

    surname, given_name = combined_name.split(NAME_SEPARATOR, 1)
    if surname and not surname[0].isalpha():
        surname = surname[1:]
    if given_name.endswith(GUEST_SUFFIX):
        given_name = given_name[: -len(GUEST_SUFFIX)]

    if not surname.strip() or not given_name.strip():
        raise MalformedNameError(f"name {combined_name!r} yields an empty surname or given name")
    return surname, given_name


def normalize_record(
    record: SourceRecord,
    config: PipelineConfig,
    words: Sequence[str] = WORDS,
    rng: Optional[random.Random] = None,
) -> ImportRecord:
    if isinstance(record, RosterRecord):
        surname = record.surname
        given_name = record.given_name
        class_label = bucket_class_label(record.group_label, config.grade_prefixes)
    elif isinstance(record, GuestRecord):
        surname, given_name = split_guest_name(record.combined_name)
        class_label = record.class_label
    else:
        raise TypeError(f"Unsupported source record: {type(record).__name__}")

    return ImportRecord(
        surname=surname,
        given_name=given_name,
        class_label=class_label,
        import_id=record.external_id,
        password=generate_passphrase(config.word_count, words, config.separator, rng),
    )
