"""
Promob PDF label sheet parser.

Promob prints piece labels on a fixed sheet: each page holds a grid of
labels (2 columns x 9 rows by default). Words are assigned to a grid cell
by their top-left corner, joined in reading order, and the label fields
are pulled out of each cell with bilingual prefixes:

    Cliente/Client, Projeto/Project, Módulo/Module, Peça/Piece,
    obs/observation, Cód. Item/Code/Item, plus a "600 x 400 x 18 mm" size.
"""

import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional

import pdfplumber
from pdfminer.pdfdocument import PDFEncryptionError, PDFPasswordIncorrect
import structlog

from exceptions import ImportFileError
from models.imports import ImportErrorType

logger = structlog.get_logger(__name__)

DEFAULT_COLUMNS = 2
DEFAULT_ROWS = 9

# Label prefixes, in the order they are printed
FIELD_LABELS = {
    "client_name": r"Cliente|Client",
    "project_name": r"Projeto|Project",
    "module": r"Módulo|Modulo|Module",
    "piece_name": r"Peça|Peca|Piece",
    "notes": r"obs|observation",
    "item_code": r"Cód\. Item|Cod\. Item|Code|Item",
}

# Other prefixes printed on the label that end a field value
_EXTRA_STOPS = r"Chapa|Medidas"

_STOPS = "|".join(list(FIELD_LABELS.values()) + [_EXTRA_STOPS])
_DIMENSION_AHEAD = r"\s+\d+(?:[.,]\d+)?\s*[xX]\s*\d"

DIMENSIONS_PATTERN = re.compile(
    r"\d+(?:[.,]\d+)?\s*[xX]\s*\d+(?:[.,]\d+)?(?:\s*[xX]\s*\d+(?:[.,]\d+)?)?\s*mm",
    re.IGNORECASE,
)


def _field_pattern(labels: str, stop_at_dimensions: bool = False) -> re.Pattern:
    ahead = rf"\s*(?:{_STOPS})\s*:|\s*$"
    if stop_at_dimensions:
        ahead += "|" + _DIMENSION_AHEAD
    return re.compile(rf"(?:{labels})\s*:\s*([^:]+?)(?={ahead})", re.IGNORECASE)


FIELD_PATTERNS = {
    name: _field_pattern(labels, stop_at_dimensions=(name == "item_code"))
    for name, labels in FIELD_LABELS.items()
}


@dataclass
class RawLabel:
    """Fields read from one label cell. Values are never None."""
    page_number: int
    fields: dict[str, str]


@dataclass
class PromobParseResult:
    """Result of reading every label cell of a Promob PDF."""
    labels: list[RawLabel] = field(default_factory=list)
    total_pages: int = 0
    empty_cells: int = 0

    @property
    def has_data(self) -> bool:
        return len(self.labels) > 0


def cluster_words(
    words: list[dict],
    width: float,
    height: float,
    columns: int = DEFAULT_COLUMNS,
    rows: int = DEFAULT_ROWS,
) -> list[str]:
    """
    Group pdfplumber words into grid cells.

    Returns one joined string per cell in row-major order; cells with no
    words come back as "". Words whose top-left corner falls outside the
    page are ignored.
    """
    cell_width = width / columns
    cell_height = height / rows
    cells: list[list[str]] = [[] for _ in range(columns * rows)]

    for word in words:
        column = int(word["x0"] // cell_width)
        row = int(word["top"] // cell_height)
        if 0 <= column < columns and 0 <= row < rows:
            cells[row * columns + column].append(word["text"])

    return [" ".join(cell) for cell in cells]


def extract_item(text: str) -> Optional[dict[str, str]]:
    """
    Pull label fields out of one cell's text.

    Returns None for cells without an item code and without a piece name
    (blank or decorative cells).
    """
    fields = {}
    for name, pattern in FIELD_PATTERNS.items():
        match = pattern.search(text)
        fields[name] = match.group(1).strip() if match else ""

    dimensions = DIMENSIONS_PATTERN.search(text)
    fields["dimensions"] = dimensions.group(0).strip() if dimensions else ""

    if not fields["item_code"] and not fields["piece_name"]:
        return None
    return fields


def _is_password_error(error: BaseException) -> bool:
    """Walk the wrapped exception chain looking for pdfminer's encryption errors."""
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, (PDFPasswordIncorrect, PDFEncryptionError)):
            return True
        if "password" in str(current).lower():
            return True
        pending.append(current.__cause__)
        pending.append(current.__context__)
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
    return False


def _open_error(error: Exception) -> ImportFileError:
    if _is_password_error(error):
        logger.warning("promob_pdf_password_protected")
        return ImportFileError(
            ImportErrorType.PDF_PASSWORD_PROTECTED.value,
            "PDF is password protected",
            "Remove the password from the file before importing",
        )
    logger.warning("promob_pdf_corrupted", error=str(error))
    return ImportFileError(
        ImportErrorType.PDF_CORRUPTED.value,
        "Could not open PDF",
        "Check that the file is a valid PDF",
        details={"original_error": str(error)},
    )


def parse_promob_pdf(
    content: bytes,
    columns: int = DEFAULT_COLUMNS,
    rows: int = DEFAULT_ROWS,
) -> PromobParseResult:
    """
    Read every label cell of a Promob PDF.

    Args:
        content: Raw PDF bytes
        columns: Labels per row on a page
        rows: Label rows on a page

    Returns:
        PromobParseResult with one RawLabel per identifying cell

    Raises:
        ImportFileError: PDF corrupted, password protected, or a page whose
            layout could not be read
    """
    logger.info("parsing_promob_pdf", size=len(content), columns=columns, rows=rows)

    result = PromobParseResult()

    try:
        pdf = pdfplumber.open(BytesIO(content))
    except Exception as e:
        raise _open_error(e)

    with pdf:
        try:
            pages = pdf.pages
        except Exception as e:
            raise _open_error(e)

        result.total_pages = len(pages)
        if result.total_pages == 0:
            raise ImportFileError(
                ImportErrorType.PDF_CORRUPTED.value,
                "PDF has no pages",
                "Check that the file is a valid PDF",
            )

        for page_number, page in enumerate(pages, start=1):
            try:
                words = page.extract_words()
                cells = cluster_words(words, page.width, page.height, columns, rows)
            except Exception as e:
                logger.error("promob_page_failed", page=page_number, error=str(e))
                raise ImportFileError(
                    ImportErrorType.PDF_LAYOUT_UNEXPECTED.value,
                    f"Could not read page {page_number}",
                    "Check that the page contains Promob labels only",
                    details={"page_number": page_number, "original_error": str(e)},
                )

            for cell in cells:
                if not cell:
                    continue
                fields = extract_item(cell)
                if fields is None:
                    result.empty_cells += 1
                    continue
                result.labels.append(RawLabel(page_number=page_number, fields=fields))

    logger.info(
        "promob_pdf_parsed",
        pages=result.total_pages,
        labels=len(result.labels),
        skipped_cells=result.empty_cells,
    )

    return result
