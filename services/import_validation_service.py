"""
Field validation for imported rows and labels.

Turns raw field mappings from the parsers into ImportRecord / PromobItem
values plus ImportIssues. Every pydantic error becomes exactly one issue;
the issue type comes from a fixed lookup on the failing field name.

Nothing here touches the database: the set of existing piece ids is passed
in by the import session.
"""

import re
import uuid
from typing import Any, Collection, Optional

from pydantic import ValidationError as SchemaValidationError
import structlog

from models.imports import (
    ImportErrorSeverity,
    ImportErrorType,
    ImportIssue,
    ImportRecord,
    ImportSource,
    PromobItem,
    PromobItemSchema,
    MIN_BARCODE_LENGTH,
)
from parsers.haixun_parser import RawRow
from parsers.promob_parser import RawLabel
from utils.text_utils import piece_id

logger = structlog.get_logger(__name__)

DIMENSION_FIELDS = ("length", "width", "thickness")

# Field name -> (issue type, severity)
FIELD_ERROR_TYPES = {
    "barcode": (ImportErrorType.INVALID_BARCODE_FORMAT, ImportErrorSeverity.ERROR),
    "item_code": (ImportErrorType.INVALID_BARCODE_FORMAT, ImportErrorSeverity.ERROR),
    "length": (ImportErrorType.INVALID_MEASUREMENTS, ImportErrorSeverity.WARNING),
    "width": (ImportErrorType.INVALID_MEASUREMENTS, ImportErrorSeverity.WARNING),
    "thickness": (ImportErrorType.INVALID_MEASUREMENTS, ImportErrorSeverity.WARNING),
    "client_name": (ImportErrorType.MISSING_CLIENT_INFO, ImportErrorSeverity.ERROR),
    "project_name": (ImportErrorType.MISSING_PROJECT_INFO, ImportErrorSeverity.ERROR),
}

DEFAULT_ERROR_TYPE = (ImportErrorType.VALIDATION_ERROR, ImportErrorSeverity.ERROR)

CLIENT_REQUIRED_MESSAGE = "Client name is required"
DUPLICATE_CODE_MESSAGE = "Code already exists"
REPEATED_CODE_MESSAGE = "Code is repeated in this file"
DEFAULT_PROMOB_PROJECT = "Projeto Promob"

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def promob_barcode(item_code: str) -> str:
    """Barcode stored for a Promob item: letters and digits only, uppercased."""
    return _NON_ALNUM_RE.sub("", item_code or "").upper()


def promob_piece_id(workspace_id: str, item_code: str) -> str:
    return piece_id(workspace_id, promob_barcode(item_code))


def _error_message(error: dict) -> str:
    ctx_error = (error.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    return error["msg"]


def _error_field(error: dict) -> str:
    return str(error["loc"][0]) if error.get("loc") else ""


def map_schema_error(
    error: dict,
    source: ImportSource,
    locator: Optional[int] = None,
) -> ImportIssue:
    """
    Convert one pydantic error into an ImportIssue.

    Args:
        error: One entry of ``ValidationError.errors()``
        source: Decides whether ``locator`` is a line or a page number
        locator: CSV line number or PDF page number
    """
    field = _error_field(error)
    error_type, severity = FIELD_ERROR_TYPES.get(field, DEFAULT_ERROR_TYPE)

    # PDF rows keep a missing client for manual correction
    if source == ImportSource.PROMOB and error_type == ImportErrorType.MISSING_CLIENT_INFO:
        severity = ImportErrorSeverity.WARNING

    raw_value = error.get("input")
    value = None if raw_value is None or isinstance(raw_value, dict) else str(raw_value)[:50]

    return ImportIssue(
        type=error_type,
        message=_error_message(error),
        suggestion=f"Check the '{field}' field",
        severity=severity,
        line_number=locator if source == ImportSource.HAIXUN else None,
        page_number=locator if source == ImportSource.PROMOB else None,
        field=field or None,
        value=value,
    )


# ===================
# HAIXUN CSV
# ===================

def validate_csv_row(row: RawRow) -> tuple[Optional[ImportRecord], list[ImportIssue]]:
    """
    Validate one CSV row.

    Returns:
        (record, issues). ``record`` is None when any non-dimension field
        fails. Bad dimensions only produce warnings; the row is kept with
        those dimensions unspecified.
    """
    try:
        return ImportRecord(**row.fields), []
    except SchemaValidationError as e:
        errors = e.errors()

    issues = [map_schema_error(error, ImportSource.HAIXUN, row.line_number) for error in errors]
    failed_fields = {_error_field(error) for error in errors}

    if not failed_fields.issubset(DIMENSION_FIELDS):
        return None, issues

    fields = dict(row.fields)
    for name in failed_fields:
        fields[name] = ""

    return ImportRecord(**fields), issues


def collapse_repeated_barcodes(
    records: list[tuple[int, ImportRecord]],
) -> tuple[list[ImportRecord], list[ImportIssue]]:
    """
    Keep one record per barcode, the last line winning.

    Args:
        records: (line number, record) pairs in file order

    Returns:
        (records in first-seen order, one WARNING per overridden line)
    """
    kept: dict[str, tuple[int, ImportRecord]] = {}
    issues: list[ImportIssue] = []

    for line_number, record in records:
        previous = kept.get(record.barcode)
        if previous is not None:
            issues.append(ImportIssue(
                type=ImportErrorType.DUPLICATE_BARCODE,
                message=f"Barcode repeated on line {line_number}; that line is imported instead",
                suggestion="Remove the repeated line from the export",
                severity=ImportErrorSeverity.WARNING,
                line_number=previous[0],
                field="barcode",
                value=record.barcode,
            ))
        kept[record.barcode] = (line_number, record)

    return [record for _, record in kept.values()], issues


def piece_from_record(record: ImportRecord, workspace_id: str) -> dict[str, Any]:
    """Piece row for a validated CSV record."""
    return {
        "id": piece_id(workspace_id, record.barcode),
        "workspace_id": workspace_id,
        "name": record.piece_name or f"Piece {record.barcode}",
        "module": record.piece_module,
        "project": record.project_name,
        "client": record.client_name,
        "dimensions": record.dimensions,
        "material": record.material,
        "color": record.color,
        "status": "PENDING",
    }


# ===================
# PROMOB PDF
# ===================

def check_promob_fields(
    fields: dict[str, str],
    workspace_id: str,
    existing_ids: Collection[str] = (),
    file_ids: Collection[str] = (),
    page_number: Optional[int] = None,
) -> tuple[dict[str, str], list[ImportIssue]]:
    """
    Validate one set of label fields.

    Args:
        fields: Label fields (PromobItem field names)
        workspace_id: Workspace used to derive the piece id
        existing_ids: Piece ids already stored in the workspace
        file_ids: Piece ids claimed by other items of the same file
        page_number: Page the label came from

    Returns:
        (normalized fields, issues). Any issue leaves the item invalid.
    """
    issues: list[ImportIssue] = []

    try:
        normalized = PromobItemSchema(**fields).model_dump()
    except SchemaValidationError as e:
        issues.extend(
            map_schema_error(error, ImportSource.PROMOB, page_number) for error in e.errors()
        )
        normalized = {name: (value or "").strip() for name, value in fields.items()}

    if not normalized.get("client_name"):
        issues.append(ImportIssue(
            type=ImportErrorType.MISSING_CLIENT_INFO,
            message=CLIENT_REQUIRED_MESSAGE,
            suggestion="Fill in the client name in the review grid",
            severity=ImportErrorSeverity.WARNING,
            page_number=page_number,
            field="client_name",
        ))

    code_failed = any(issue.field == "item_code" for issue in issues)
    barcode = promob_barcode(normalized.get("item_code", ""))

    if not code_failed and len(barcode) < MIN_BARCODE_LENGTH:
        issues.append(ImportIssue(
            type=ImportErrorType.INVALID_BARCODE_FORMAT,
            message=f"Barcode must have at least {MIN_BARCODE_LENGTH} letters or digits",
            suggestion="Check the 'item_code' field",
            severity=ImportErrorSeverity.ERROR,
            page_number=page_number,
            field="item_code",
            value=normalized.get("item_code"),
        ))
        code_failed = True

    if not code_failed:
        derived_id = piece_id(workspace_id, barcode)
        if derived_id in existing_ids:
            message = DUPLICATE_CODE_MESSAGE
        elif derived_id in file_ids:
            message = REPEATED_CODE_MESSAGE
        else:
            message = None
        if message:
            issues.append(ImportIssue(
                type=ImportErrorType.DUPLICATE_BARCODE,
                message=message,
                suggestion="Change the item code or remove the item",
                severity=ImportErrorSeverity.ERROR,
                page_number=page_number,
                field="item_code",
                value=barcode,
            ))

    return normalized, issues


def validate_promob_label(
    label: RawLabel,
    workspace_id: str,
    existing_ids: Collection[str] = (),
    file_ids: Collection[str] = (),
) -> tuple[PromobItem, list[ImportIssue]]:
    """Build a review grid row for one label. Invalid labels are kept, flagged."""
    fields, issues = check_promob_fields(
        label.fields,
        workspace_id,
        existing_ids=existing_ids,
        file_ids=file_ids,
        page_number=label.page_number,
    )
    item = PromobItem(
        id=uuid.uuid4().hex,
        page_number=label.page_number,
        is_valid=not issues,
        errors=[issue.message for issue in issues],
        **fields,
    )
    return item, issues


def _checked_copy(
    item: PromobItem,
    fields: dict[str, str],
    workspace_id: str,
    existing_ids: Collection[str],
    file_ids: Collection[str],
) -> PromobItem:
    normalized, issues = check_promob_fields(
        fields,
        workspace_id,
        existing_ids=existing_ids,
        file_ids=file_ids,
        page_number=item.page_number,
    )
    return item.model_copy(update={
        **normalized,
        "is_valid": not issues,
        "errors": [issue.message for issue in issues],
    })


def revalidate_item(
    item: PromobItem,
    field: str,
    value: str,
    workspace_id: str,
    existing_ids: Collection[str] = (),
    file_ids: Collection[str] = (),
) -> PromobItem:
    """
    Apply one manual edit and validate the item again.

    Returns a new PromobItem with a fresh error list; ``item`` is left
    untouched.
    """
    fields = item.model_dump(include=set(PromobItemSchema.model_fields))
    fields[field] = value

    updated = _checked_copy(item, fields, workspace_id, existing_ids, file_ids)
    logger.debug("promob_item_revalidated", item_id=item.id, field=field, issues=len(updated.errors))
    return updated


def recheck_items(
    items: list[PromobItem],
    workspace_id: str,
    existing_ids: Collection[str] = (),
) -> list[PromobItem]:
    """
    Validate every grid row again, in grid order.

    A code used by more than one row is flagged on every row after the
    first, so an edit anywhere in the grid can never leave two valid rows
    with the same piece id.
    """
    checked: list[PromobItem] = []
    file_ids: set[str] = set()

    for item in items:
        fields = item.model_dump(include=set(PromobItemSchema.model_fields))
        checked.append(_checked_copy(item, fields, workspace_id, existing_ids, file_ids))
        if item.item_code:
            file_ids.add(promob_piece_id(workspace_id, item.item_code))

    return checked


def piece_from_item(item: PromobItem, workspace_id: str) -> dict[str, Any]:
    """Piece row for a valid Promob item."""
    barcode = promob_barcode(item.item_code)
    return {
        "id": piece_id(workspace_id, barcode),
        "workspace_id": workspace_id,
        "name": item.piece_name or f"Piece {barcode}",
        "module": item.module,
        "project": promob_project_name(item),
        "client": item.client_name,
        "dimensions": item.dimensions,
        "material": "",
        "color": "",
        "status": "PENDING",
    }


def promob_project_name(item: PromobItem) -> str:
    return item.project_name or item.module or DEFAULT_PROMOB_PROJECT
