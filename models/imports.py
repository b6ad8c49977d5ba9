"""
Import pipeline schemas.

Row schemas (ImportRecord, PromobItemSchema) are the validation layer for
Haixun CSV rows and Promob PDF labels. Everything else is what the import
session hands back to the operator: issues, preview groups and the PDF
review grid.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.base import BaseSchema


MIN_BARCODE_LENGTH = 3
MAX_CLIENT_NAME_LENGTH = 100

# Plain decimal after the comma-to-dot step; no exponents or digit separators
_DECIMAL_RE = re.compile(r"^\d+(\.\d+)?$")


class ImportSource(str, Enum):
    """Supported export formats."""
    HAIXUN = "haixun"
    PROMOB = "promob"


class ImportState(str, Enum):
    """Import session lifecycle."""
    IDLE = "IDLE"
    ANALYZED = "ANALYZED"
    COMMITTING = "COMMITTING"


class ImportErrorType(str, Enum):
    """What went wrong with a file, row or label."""
    CSV_PARSE_ERROR = "CSV_PARSE_ERROR"
    MISSING_REQUIRED_COLUMN = "MISSING_REQUIRED_COLUMN"
    INVALID_BARCODE_FORMAT = "INVALID_BARCODE_FORMAT"
    DUPLICATE_BARCODE = "DUPLICATE_BARCODE"
    INVALID_MEASUREMENTS = "INVALID_MEASUREMENTS"
    PDF_CORRUPTED = "PDF_CORRUPTED"
    PDF_PASSWORD_PROTECTED = "PDF_PASSWORD_PROTECTED"
    PDF_LAYOUT_UNEXPECTED = "PDF_LAYOUT_UNEXPECTED"
    MISSING_CLIENT_INFO = "MISSING_CLIENT_INFO"
    MISSING_PROJECT_INFO = "MISSING_PROJECT_INFO"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    GENERIC_SYSTEM_ERROR = "GENERIC_SYSTEM_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ImportErrorSeverity(str, Enum):
    """WARNING rows still import; ERROR rows are skipped; CRITICAL aborts the run."""
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ImportIssue(BaseModel):
    """One problem found during an import run. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    type: ImportErrorType
    message: str
    suggestion: str = ""
    severity: ImportErrorSeverity
    line_number: Optional[int] = None
    page_number: Optional[int] = None
    field: Optional[str] = None
    value: Optional[str] = None


# ===================
# ROW SCHEMAS
# ===================

def _required(value: str, message: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


def _barcode(value: str) -> str:
    value = _required(value, "Barcode is required")
    if len(value) < MIN_BARCODE_LENGTH:
        raise ValueError(f"Barcode must have at least {MIN_BARCODE_LENGTH} characters")
    return value.upper()


class ImportRecord(BaseModel):
    """
    One candidate piece from a Haixun CSV row.

    Every recognized column is named here and defaults to an empty
    string; unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", validate_default=True)

    client_code: str = ""
    client_name: str = ""
    project_name: str = ""
    barcode: str = ""
    piece_module: str = ""
    piece_name: str = ""
    length: str = ""
    width: str = ""
    thickness: str = ""
    material: str = ""
    color: str = ""

    @field_validator("client_code")
    @classmethod
    def client_code_required(cls, v: str) -> str:
        return _required(v, "Client code is missing")

    @field_validator("client_name")
    @classmethod
    def client_name_required(cls, v: str) -> str:
        return _required(v, "Client name is missing")

    @field_validator("project_name")
    @classmethod
    def project_name_required(cls, v: str) -> str:
        return _required(v, "Project name is missing")

    @field_validator("barcode")
    @classmethod
    def barcode_format(cls, v: str) -> str:
        return _barcode(v)

    @field_validator("length", "width", "thickness")
    @classmethod
    def dimension_value(cls, v: str) -> str:
        """Empty means unspecified; otherwise a non-negative number (comma or dot)."""
        v = v.strip().replace(",", ".")
        if v == "":
            return v
        if not _DECIMAL_RE.match(v):
            raise ValueError("Must be a non-negative number")
        return v

    @field_validator("piece_module", "piece_name", "material", "color")
    @classmethod
    def trim(cls, v: str) -> str:
        return v.strip()

    @property
    def dimensions(self) -> str:
        """Stored form: ``LxWxT`` with unspecified values as 0."""
        return f"{self.length or '0'}x{self.width or '0'}x{self.thickness or '0'}"


class PromobItemSchema(BaseModel):
    """Validation schema for one Promob label."""

    model_config = ConfigDict(extra="ignore", validate_default=True, str_strip_whitespace=True)

    client_name: str = Field(default="", max_length=MAX_CLIENT_NAME_LENGTH)
    project_name: str = ""
    module: str = ""
    piece_name: str = ""
    notes: str = ""
    item_code: str = ""
    dimensions: str = ""

    @field_validator("client_name", mode="before")
    @classmethod
    def strip_client(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("item_code")
    @classmethod
    def item_code_format(cls, v: str) -> str:
        return _barcode(v)


class PromobItem(BaseSchema):
    """One editable row of the PDF review grid."""

    id: str
    client_name: str = ""
    project_name: str = ""
    module: str = ""
    piece_name: str = ""
    notes: str = ""
    item_code: str = ""
    dimensions: str = ""
    page_number: Optional[int] = None
    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)


EDITABLE_ITEM_FIELDS = (
    "client_name",
    "project_name",
    "module",
    "piece_name",
    "notes",
    "item_code",
    "dimensions",
)


class ItemUpdateRequest(BaseSchema):
    """Manual correction of one review grid cell."""

    field: str = Field(..., description="One of the editable item fields")
    value: str = Field("", max_length=500)

    @field_validator("field")
    @classmethod
    def field_is_editable(cls, v: str) -> str:
        if v not in EDITABLE_ITEM_FIELDS:
            raise ValueError(f"field must be one of {', '.join(EDITABLE_ITEM_FIELDS)}")
        return v


# ===================
# PREVIEW
# ===================

class ProjectPreview(BaseModel):
    """Piece and module counts for one project of a client."""

    name: str
    piece_count: int
    module_count: int


class ClientPreviewGroup(BaseModel):
    """What the operator reviews before confirming a CSV import."""

    client_code: str = ""
    client_name: str
    total_projects: int
    total_modules: int
    total_pieces: int
    projects: list[ProjectPreview]


# ===================
# SESSION API
# ===================

class CreateSessionRequest(BaseSchema):
    source: ImportSource


class ImportSessionResponse(BaseModel):
    """Snapshot of an import session."""

    session_id: str
    source: ImportSource
    state: ImportState
    in_flight: bool = False
    ignored: bool = Field(False, description="True when the call was dropped because a run was in flight")
    message: Optional[str] = None
    preview: list[ClientPreviewGroup] = Field(default_factory=list)
    items: list[PromobItem] = Field(default_factory=list)
    errors: list[ImportIssue] = Field(default_factory=list)
    staged_pieces: int = 0
    committed_pieces: int = 0
    committed_projects: int = 0
