"""Pytest configuration for repository test runs."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


SCHILD_HEADER = "Nachname;Vorname;Klasse;eindeutige Nummer (GUID)"
GUEST_HEADER = "NAME, VORNAME;KLASSE;SCHÜLERNR"


@pytest.fixture
def logger() -> logging.Logger:
    """Run-scoped logger handed to the pipeline; propagates to caplog."""
    return logging.getLogger("iserv_import.test")


def write_lines(path: Path, lines, encoding: str = "utf-8") -> Path:
    path.write_bytes(("\n".join(lines) + "\n").encode(encoding))
    return path
