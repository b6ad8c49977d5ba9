"""
Piece schemas.

A piece is one fabricated component tracked from PENDING to PRODUCED by
a barcode scan. Its id is ``{workspace_id}_{barcode}``.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class PieceStatus(str, Enum):
    """Production status."""
    PENDING = "PENDING"
    PRODUCED = "PRODUCED"


class ScanHistoryEntry(BaseModel):
    """One scan event recorded on a piece."""
    type: str = "SCAN"
    at: str
    user: str


class PieceResponse(BaseSchema):
    """Piece as stored."""

    id: str = Field(..., description="Deterministic id: workspace + barcode")
    workspace_id: str
    name: str
    module: str = ""
    project: str
    client: str
    dimensions: str = ""
    material: str = ""
    color: str = ""
    status: PieceStatus = PieceStatus.PENDING
    produced_at: Optional[str] = None
    produced_by: Optional[str] = None
    scan_history: list[ScanHistoryEntry] = Field(default_factory=list)

    @property
    def barcode(self) -> str:
        prefix = f"{self.workspace_id}_"
        return self.id[len(prefix):] if self.id.startswith(prefix) else self.id


class PieceListResponse(BaseSchema):
    """List of pieces with pagination."""

    data: list[PieceResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ScanRequest(BaseSchema):
    """Barcode read from the production scanner."""

    barcode: str = Field(..., max_length=200)
    operator: str = Field(..., min_length=1, max_length=100, description="Login of the operator scanning")


class ScanResponse(BaseModel):
    """Successful scan."""

    success: bool = True
    message: str
    piece: PieceResponse
