"""Integration tests for the import build pipeline."""

from __future__ import annotations

import logging

import pandas as pd
import pytest

from build_iserv_import import find_input_files, run_pipeline
from conftest import GUEST_HEADER, SCHILD_HEADER, write_lines
from roster_records import (
    Encoding,
    FileType,
    OutputWriteError,
    PipelineConfig,
    SourceOpenError,
    SourceSchema,
)
from wordlist import WORDS


def _read_output(path) -> pd.DataFrame:
    return pd.read_csv(path, sep=";", dtype=str, keep_default_na=False)


def test_text_mode_skips_row_with_empty_column(tmp_path, logger, caplog) -> None:
    """Three input rows with one broken row produce two output rows in order."""
    src = write_lines(
        tmp_path / "schild.csv",
        [SCHILD_HEADER, "Meier;Jan;11b;G-1", "Schulz;;12;G-2", "Brandt;Lea;ABI;G-3"],
    )
    out = tmp_path / "import.csv"

    with caplog.at_level(logging.WARNING):
        result = run_pipeline(src, FileType.CSV, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    df = _read_output(out)
    assert list(df.columns) == ["Nachname", "Vorname", "Klasse", "Import-ID", "Password"]
    assert df["Nachname"].tolist() == ["Meier", "Brandt"]
    assert df["Klasse"].tolist() == ["11", "ABI"]
    assert df["Import-ID"].tolist() == ["G-1", "G-3"]
    assert all(len(p.split("-")) == 2 and all(w in WORDS for w in p.split("-")) for p in df["Password"])
    assert len(result.issues) == 1
    assert result.issues[0].row == 3
    assert any("row 3" in r.getMessage() for r in caplog.records if r.levelno == logging.WARNING)


def test_guest_mode_drops_malformed_names(tmp_path, logger) -> None:
    src = write_lines(
        tmp_path / "gast.csv",
        [GUEST_HEADER, "`Müller, Anna (G);Q1;4711", "Ohne Komma;Q2;4712", "`Weber, Lena (G);EF;4713"],
        encoding="cp1252",
    )
    out = tmp_path / "import.csv"
    config = PipelineConfig(word_count=3, encoding=Encoding.WINDOWS)

    result = run_pipeline(src, FileType.CSV, SourceSchema.GASTSCHUELER, config, out, logger)

    df = _read_output(out)
    assert df[["Nachname", "Vorname", "Klasse", "Import-ID"]].values.tolist() == [
        ["Müller", "Anna", "Q1", "4711"],
        ["Weber", "Lena", "EF", "4713"],
    ]
    assert all(len(p.split("-")) == 3 for p in df["Password"])
    assert [(i.row, i.kind) for i in result.issues] == [(3, "malformed_name")]


def test_folder_mode_continues_past_unreadable_file(tmp_path, logger, caplog) -> None:
    folder = tmp_path / "exports"
    folder.mkdir()
    write_lines(folder / "a.CSV", [SCHILD_HEADER, "Meier;Jan;11b;G-1", "Brandt;Lea;12c;G-2"])
    (folder / "b.CSV").write_bytes(b"Nachname;Vorname\n\xff\xfe\xfa;\xfc\n")
    write_lines(folder / "c.csv", [SCHILD_HEADER, "Lower;Case;5a;G-9"])
    out = tmp_path / "import.csv"

    with caplog.at_level(logging.ERROR):
        result = run_pipeline(folder, FileType.CSV_FOLDER, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    df = _read_output(out)
    assert df["Nachname"].tolist() == ["Meier", "Brandt"]
    assert result.files_read == 1
    assert [(i.source, i.kind) for i in result.issues] == [("b.CSV", "source_open")]
    assert any("b.CSV" in r.getMessage() for r in caplog.records if r.levelno == logging.ERROR)


def test_folder_mode_keeps_file_order(tmp_path, logger) -> None:
    folder = tmp_path / "exports"
    folder.mkdir()
    write_lines(folder / "2_oberstufe.CSV", [SCHILD_HEADER, "Zweite;Datei;12;G-2"])
    write_lines(folder / "1_oberstufe.CSV", [SCHILD_HEADER, "Erste;Datei;11;G-1"])
    out = tmp_path / "import.csv"

    run_pipeline(folder, FileType.CSV_FOLDER, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    assert _read_output(out)["Nachname"].tolist() == ["Erste", "Zweite"]


def test_find_input_files_is_case_sensitive(tmp_path) -> None:
    for name in ("b.CSV", "a.CSV", "c.csv", "notes.txt"):
        (tmp_path / name).write_text("x", encoding="utf-8")

    assert [p.name for p in find_input_files(tmp_path)] == ["a.CSV", "b.CSV"]


def test_empty_folder_writes_header_only(tmp_path, logger) -> None:
    folder = tmp_path / "exports"
    folder.mkdir()
    out = tmp_path / "import.csv"

    result = run_pipeline(folder, FileType.CSV_FOLDER, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    assert result.records == []
    assert out.read_text(encoding="utf-8").strip() == "Nachname;Vorname;Klasse;Import-ID;Password"


def test_single_file_open_error_is_fatal(tmp_path, logger) -> None:
    out = tmp_path / "import.csv"

    with pytest.raises(SourceOpenError):
        run_pipeline(tmp_path / "missing.csv", FileType.CSV, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    assert not out.exists()


def test_unwritable_output_is_fatal(tmp_path, logger) -> None:
    src = write_lines(tmp_path / "schild.csv", [SCHILD_HEADER, "Meier;Jan;11b;G-1"])

    with pytest.raises(OutputWriteError):
        run_pipeline(
            src,
            FileType.CSV,
            SourceSchema.SCHILD,
            PipelineConfig(),
            tmp_path / "no_such_dir" / "import.csv",
            logger,
        )


def test_excel_mode_end_to_end(tmp_path, logger) -> None:
    src = tmp_path / "schild.xlsx"
    pd.DataFrame(
        {
            "Nachname": ["Meier", "Brandt"],
            "Vorname": ["Jan", "Lea"],
            "Klasse": ["13a", "9b"],
            "eindeutige Nummer (GUID)": ["G-1", "G-2"],
        }
    ).to_excel(src, index=False, engine="openpyxl")
    out = tmp_path / "import.csv"

    run_pipeline(src, FileType.EXCEL, SourceSchema.SCHILD, PipelineConfig(), out, logger)

    df = _read_output(out)
    assert df["Klasse"].tolist() == ["13", "9b"]


def test_report_lists_skipped_rows(tmp_path, logger) -> None:
    src = write_lines(
        tmp_path / "schild.csv",
        [SCHILD_HEADER, "Meier;Jan;11b;G-1", "Schulz;;12;G-2"],
    )
    report = tmp_path / "report.csv"

    run_pipeline(
        src,
        FileType.CSV,
        SourceSchema.SCHILD,
        PipelineConfig(),
        tmp_path / "import.csv",
        logger,
        report_path=report,
    )

    df = pd.read_csv(report, sep=";", dtype=str)
    assert df.columns.tolist() == ["source", "row", "kind", "message"]
    assert df[["source", "row", "kind"]].values.tolist() == [["schild.csv", "3", "row_decode"]]


def test_report_rows_point_at_file_lines_after_skipped_lines(tmp_path, logger) -> None:
    """Blank and untokenizable lines do not shift the reported row numbers."""
    src = write_lines(
        tmp_path / "schild.csv",
        [
            SCHILD_HEADER,
            "Meier;Jan;11b;G-1",
            "",
            "Kaputt;Zeile;11;G-2;x;y",
            "Schulz;;12;G-3",
            '"Brandt;Lea;ABI;G-4',
        ],
    )
    report = tmp_path / "report.csv"

    run_pipeline(
        src,
        FileType.CSV,
        SourceSchema.SCHILD,
        PipelineConfig(),
        tmp_path / "import.csv",
        logger,
        report_path=report,
    )

    df = pd.read_csv(report, sep=";", dtype=str)
    assert df[["row", "kind"]].values.tolist() == [["4", "row_decode"], ["5", "row_decode"]]
    assert _read_output(tmp_path / "import.csv")["Import-ID"].tolist() == ["G-1", "G-4"]
