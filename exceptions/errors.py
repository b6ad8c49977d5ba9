"""
Custom exception classes for the application.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the
routes can serialize it with ``to_dict()``.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PIECE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PIECE ERRORS
# ===================

class PieceNotFoundError(NotFoundError):
    """No piece with this barcode in the workspace."""

    def __init__(self, barcode: str):
        super().__init__(
            resource="Piece",
            identifier=barcode,
            code="PIECE_NOT_FOUND"
        )


class InvalidBarcodeError(ValidationError):
    """Scanned code is empty or too short after sanitizing."""

    def __init__(self, barcode: str):
        super().__init__(
            code="INVALID_BARCODE",
            message="Barcode must have at least 3 valid characters",
            details={"provided": barcode}
        )


class PieceAlreadyProducedError(ConflictError):
    """Piece was already scanned as produced."""

    def __init__(self, barcode: str, produced_at: Optional[str] = None, produced_by: Optional[str] = None):
        super().__init__(
            code="PIECE_ALREADY_PRODUCED",
            message="Piece was already scanned",
            details={
                "barcode": barcode,
                "produced_at": produced_at,
                "produced_by": produced_by
            }
        )


# ===================
# WAREHOUSE ERRORS
# ===================

class WarehouseNotFoundError(NotFoundError):
    """Warehouse not found."""

    def __init__(self, warehouse_id: str):
        super().__init__(
            resource="Warehouse",
            identifier=warehouse_id,
            code="WAREHOUSE_NOT_FOUND"
        )


class WarehouseOccupiedError(ConflictError):
    """Warehouse is holding another client's load."""

    def __init__(self, warehouse_id: str, current_project_id: Optional[str]):
        super().__init__(
            code="WAREHOUSE_OCCUPIED",
            message="Warehouse is occupied by another client",
            details={
                "warehouse_id": warehouse_id,
                "current_project_id": current_project_id
            }
        )


# ===================
# CLIENT / VOLUME ERRORS
# ===================

class ClientNotFoundError(NotFoundError):
    """No active projects for this client."""

    def __init__(self, client_name: str):
        super().__init__(
            resource="Client",
            identifier=client_name,
            code="CLIENT_NOT_FOUND"
        )


class ProductionIncompleteError(ValidationError):
    """Client still has pieces pending production."""

    def __init__(self, client_name: str, pending_count: int):
        super().__init__(
            code="PRODUCTION_INCOMPLETE",
            message="Client production is not complete",
            details={"client_name": client_name, "pending_pieces": pending_count}
        )


class VolumesExistError(ConflictError):
    """Client already has generated volumes."""

    def __init__(self, client_name: str, count: int):
        super().__init__(
            code="VOLUMES_EXIST",
            message="Client already has volumes; pass replace_existing to regenerate",
            details={"client_name": client_name, "existing_volumes": count}
        )


class VolumeNotFoundError(NotFoundError):
    """No volume with this barcode for the client."""

    def __init__(self, barcode: str):
        super().__init__(
            resource="Volume",
            identifier=barcode,
            code="VOLUME_NOT_FOUND"
        )


class VolumeAlreadyLoadedError(ConflictError):
    """Volume was already loaded."""

    def __init__(self, barcode: str, index: int, total: int):
        super().__init__(
            code="VOLUME_ALREADY_LOADED",
            message="Volume was already loaded",
            details={"barcode": barcode, "index": index, "total": total}
        )


class PendingVolumesError(ValidationError):
    """Load cannot be finalized with volumes still on the floor."""

    def __init__(self, client_name: str, pending_indexes: list[int]):
        super().__init__(
            code="PENDING_VOLUMES",
            message=f"{len(pending_indexes)} volume(s) still pending loading",
            details={"client_name": client_name, "pending": pending_indexes}
        )


# ===================
# IMPORT ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class ImportItemNotFoundError(NotFoundError):
    """Review grid row not found in the session."""

    def __init__(self, item_id: str):
        super().__init__(
            resource="Import item",
            identifier=item_id,
            code="IMPORT_ITEM_NOT_FOUND"
        )


class ImportBlockedError(ValidationError):
    """Staged items still carry validation errors."""

    def __init__(self, invalid_count: int, missing_client_count: int = 0):
        super().__init__(
            code="IMPORT_BLOCKED",
            message=f"{invalid_count} item(s) have errors; fix them before importing",
            details={
                "invalid_items": invalid_count,
                "missing_client": missing_client_count
            }
        )


class ImportCommitError(ExternalServiceError):
    """Batched write failed; staged data is kept for retry."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="import_commit",
            message=message,
            details={"retryable": True, **(details or {})}
        )


class BatchCommitError(DatabaseError):
    """One statement of a write batch failed."""

    def __init__(self, table: str, message: str, applied_tables: list[str]):
        super().__init__(
            operation="batch_commit",
            message=message,
            details={"table": table, "applied_tables": applied_tables}
        )


class ImportFileError(ValidationError):
    """Whole import file rejected before any row is processed."""

    def __init__(
        self,
        error_type: str,
        message: str,
        suggestion: str = "",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=error_type,
            message=message,
            details={"suggestion": suggestion, **(details or {})}
        )
        self.error_type = error_type
        self.suggestion = suggestion
