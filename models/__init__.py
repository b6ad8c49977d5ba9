"""
Pydantic models for validation and serialization.

See STANDARDS_VALIDATION.md for patterns.
"""

from models.base import BaseSchema
from models.imports import (
    ImportSource,
    ImportState,
    ImportErrorType,
    ImportErrorSeverity,
    ImportIssue,
    ImportRecord,
    PromobItemSchema,
    PromobItem,
    ItemUpdateRequest,
    ProjectPreview,
    ClientPreviewGroup,
    CreateSessionRequest,
    ImportSessionResponse,
)
from models.piece import (
    PieceStatus,
    ScanHistoryEntry,
    PieceResponse,
    PieceListResponse,
    ScanRequest,
    ScanResponse,
)
from models.project import (
    ProjectStatus,
    ProjectResponse,
    ClientSummary,
    ClientDeleteResponse,
)
from models.warehouse import (
    WarehouseStatus,
    WarehouseCreate,
    WarehouseResponse,
)
from models.volume import (
    VolumeResponse,
    VolumeGenerateRequest,
    VolumeGenerateResponse,
    VolumeScanRequest,
    FinalizeLoadRequest,
    LoadStatusResponse,
)
from models.dashboard import (
    ClientProgress,
    DashboardResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Imports
    "ImportSource",
    "ImportState",
    "ImportErrorType",
    "ImportErrorSeverity",
    "ImportIssue",
    "ImportRecord",
    "PromobItemSchema",
    "PromobItem",
    "ItemUpdateRequest",
    "ProjectPreview",
    "ClientPreviewGroup",
    "CreateSessionRequest",
    "ImportSessionResponse",

    # Pieces
    "PieceStatus",
    "ScanHistoryEntry",
    "PieceResponse",
    "PieceListResponse",
    "ScanRequest",
    "ScanResponse",

    # Projects / clients
    "ProjectStatus",
    "ProjectResponse",
    "ClientSummary",
    "ClientDeleteResponse",

    # Warehouses
    "WarehouseStatus",
    "WarehouseCreate",
    "WarehouseResponse",

    # Volumes
    "VolumeResponse",
    "VolumeGenerateRequest",
    "VolumeGenerateResponse",
    "VolumeScanRequest",
    "FinalizeLoadRequest",
    "LoadStatusResponse",

    # Dashboard
    "ClientProgress",
    "DashboardResponse",
]
