"""
Haixun CSV label export parser.

The export has a header line followed by one line per piece. Columns are
positional (the header names are not used), so the parser checks that the
header is at least as wide as the layout before reading any row.

Layout (0-based):
    2  module name        8  project (module group)   13  client name
    3  piece name         9  material                 16  client code
    4  length            10  color
    5  width             11  barcode
    6  thickness
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional
import pandas as pd
import structlog

from exceptions import ImportFileError
from models.imports import ImportErrorSeverity, ImportErrorType, ImportIssue

logger = structlog.get_logger(__name__)

# Column indices
COL_MODULE_NAME = 2
COL_PIECE_NAME = 3
COL_LENGTH = 4
COL_WIDTH = 5
COL_THICKNESS = 6
COL_PROJECT = 8
COL_MATERIAL = 9
COL_COLOR = 10
COL_BARCODE = 11
COL_CLIENT_NAME = 13
COL_CLIENT_CODE = 16

MIN_COLUMNS = 17

# Field name -> column index, in ImportRecord field names
FIELD_COLUMNS = {
    "client_code": COL_CLIENT_CODE,
    "client_name": COL_CLIENT_NAME,
    "project_name": COL_PROJECT,
    "barcode": COL_BARCODE,
    "piece_module": COL_MODULE_NAME,
    "piece_name": COL_PIECE_NAME,
    "length": COL_LENGTH,
    "width": COL_WIDTH,
    "thickness": COL_THICKNESS,
    "material": COL_MATERIAL,
    "color": COL_COLOR,
}

# latin-1 maps every byte, so it is the last resort
ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

# Placeholder cell for lines wider than the header; keeps row positions aligned
BAD_LINE_MARKER = "\x00"


@dataclass
class RawRow:
    """One data line mapped to ImportRecord field names. Values are never None."""
    line_number: int
    fields: dict[str, str]


@dataclass
class HaixunParseResult:
    """Result of splitting a Haixun CSV into raw rows."""
    rows: list[RawRow] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)
    total_lines: int = 0

    @property
    def has_data(self) -> bool:
        return len(self.rows) > 0


@dataclass
class LoadedCsv:
    """DataFrame of every non-blank line plus what pandas could not fit in it."""
    frame: pd.DataFrame
    line_numbers: list[int]
    bad_lines: list[list[str]]
    encoding: str


def row_columns(values: list) -> list[str]:
    """Cells of one DataFrame row, without the NaN padding pandas adds to short lines."""
    values = list(values)
    while values and pd.isna(values[-1]):
        values.pop()
    return ["" if pd.isna(v) else str(v).strip().strip('"') for v in values]


def extract_row(columns: list[str], line_number: int) -> Optional[RawRow]:
    """Map a line's cells to field names; None when it is too short."""
    if len(columns) < MIN_COLUMNS:
        return None
    return RawRow(
        line_number=line_number,
        fields={name: columns[index] for name, index in FIELD_COLUMNS.items()},
    )


def _non_blank_line_numbers(text: str) -> list[int]:
    """1-based numbers of the lines pandas keeps with skip_blank_lines."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [number for number, line in enumerate(lines, start=1) if line.strip()]


def _load_csv(content: bytes) -> LoadedCsv:
    """
    Load the export into a DataFrame, trying each encoding in turn.

    The header line fixes the width. Longer lines go through on_bad_lines,
    which records them and leaves a marker row in their place.

    Raises:
        ImportFileError: No readable lines, or the CSV structure is broken
    """
    for encoding in ENCODINGS:
        bad_lines: list[list[str]] = []

        def keep_bad_line(line: list[str]) -> list[str]:
            bad_lines.append(line)
            return [BAD_LINE_MARKER]

        try:
            frame = pd.read_csv(
                BytesIO(content),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                skipinitialspace=True,
                encoding=encoding,
                engine="python",
                on_bad_lines=keep_bad_line,
            )
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError:
            frame = pd.DataFrame()
        except pd.errors.ParserError as e:
            raise ImportFileError(
                ImportErrorType.CSV_PARSE_ERROR.value,
                "Could not read CSV file",
                "Check for special characters or broken quotes",
                details={"original_error": str(e)},
            )

        logger.debug("csv_loaded", encoding=encoding, rows=len(frame), bad_lines=len(bad_lines))
        text = content.decode(encoding)
        return LoadedCsv(
            frame=frame,
            line_numbers=_non_blank_line_numbers(text),
            bad_lines=bad_lines,
            encoding=encoding,
        )

    # Unreachable while latin-1 is in ENCODINGS
    raise ImportFileError(
        ImportErrorType.CSV_PARSE_ERROR.value,
        "Could not decode file",
        "Save the CSV as UTF-8 or Windows-1252",
    )


def parse_haixun_csv(content: bytes, min_rows: int = 2) -> HaixunParseResult:
    """
    Split a Haixun CSV export into raw rows.

    Args:
        content: Raw file bytes
        min_rows: Minimum non-blank lines, header included

    Returns:
        HaixunParseResult with one RawRow per usable line and an issue per
        rejected line

    Raises:
        ImportFileError: File unreadable, too short, or header narrower
            than the layout
    """
    logger.info("parsing_haixun_csv", size=len(content))

    loaded = _load_csv(content)
    frame = loaded.frame
    result = HaixunParseResult(total_lines=len(frame))

    if len(frame) < min_rows:
        raise ImportFileError(
            ImportErrorType.CSV_PARSE_ERROR.value,
            "File is empty or has too few lines",
            "Check that the CSV file contains data",
            details={"lines": len(frame), "min_rows": min_rows},
        )

    # Multi-line quoted cells shift the physical numbering; fall back to row positions
    line_numbers = loaded.line_numbers
    if len(line_numbers) != len(frame):
        line_numbers = list(range(1, len(frame) + 1))

    header = row_columns(frame.iloc[0].tolist())
    if len(header) < MIN_COLUMNS:
        logger.warning("haixun_header_too_narrow", columns=len(header))
        raise ImportFileError(
            ImportErrorType.CSV_PARSE_ERROR.value,
            f"Header has {len(header)} columns; the Haixun layout needs at least {MIN_COLUMNS}",
            "Export the labels again from Haixun without removing columns",
            details={"line_number": line_numbers[0], "columns": len(header)},
        )

    bad_lines = iter(loaded.bad_lines)
    for position in range(1, len(frame)):
        line_number = line_numbers[position]
        columns = row_columns(frame.iloc[position].tolist())

        if columns[:1] == [BAD_LINE_MARKER]:
            bad_line = next(bad_lines, [])
            result.issues.append(ImportIssue(
                type=ImportErrorType.CSV_PARSE_ERROR,
                message=f"Line has more columns ({len(bad_line)}) than the header ({len(header)})",
                suggestion="Check for unquoted commas inside names",
                severity=ImportErrorSeverity.ERROR,
                line_number=line_number,
                value=",".join(bad_line)[:30] + "...",
            ))
            continue

        row = extract_row(columns, line_number)
        if row is None:
            result.issues.append(ImportIssue(
                type=ImportErrorType.MISSING_REQUIRED_COLUMN,
                message=f"Line has too few columns ({len(columns)})",
                suggestion=f"Each line needs at least {MIN_COLUMNS} columns",
                severity=ImportErrorSeverity.WARNING,
                line_number=line_number,
                value=",".join(columns)[:30] + "...",
            ))
            continue

        result.rows.append(row)

    logger.info(
        "haixun_csv_parsed",
        encoding=loaded.encoding,
        lines=result.total_lines,
        rows=len(result.rows),
        rejected=len(result.issues),
    )

    return result
