"""
Piece API routes: production scans, listing and history.

See STANDARDS_ERRORS.md for error response format.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.piece import (
    PieceListResponse,
    PieceResponse,
    PieceStatus,
    ScanRequest,
    ScanResponse,
)
from services.piece_service import get_piece_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.post("/scan", response_model=ScanResponse)
async def scan_piece(data: ScanRequest):
    """
    Mark a piece as produced.

    Raises:
        422: Barcode shorter than 3 valid characters
        404: Unknown barcode
        409: Piece already produced
    """
    try:
        service = get_piece_service()
        piece = service.scan(data.barcode, data.operator)
        return ScanResponse(
            message=f"{piece.name or 'Piece'} scanned",
            piece=piece,
        )
    except Exception as e:
        return handle_error(e)


@router.get("", response_model=PieceListResponse)
async def list_pieces(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page"),
    status: Optional[PieceStatus] = Query(None, description="Filter by status"),
    client: Optional[str] = Query(None, description="Filter by client name"),
    project: Optional[str] = Query(None, description="Filter by project name"),
):
    """List pieces of the workspace."""
    try:
        service = get_piece_service()

        pieces, total = service.get_all(
            page=page,
            page_size=page_size,
            status=status,
            client=client,
            project=project,
        )

        total_pages = (total + page_size - 1) // page_size

        return PieceListResponse(
            data=pieces,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages
        )

    except Exception as e:
        return handle_error(e)


@router.get("/history", response_model=list[PieceResponse])
async def production_history(
    search: Optional[str] = Query(None, max_length=100, description="Name, client, project or module"),
    limit: int = Query(100, ge=1, le=1000),
):
    """Produced pieces, newest first."""
    try:
        return get_piece_service().get_history(search=search, limit=limit)
    except Exception as e:
        return handle_error(e)


@router.get("/{barcode}", response_model=PieceResponse)
async def get_piece(barcode: str):
    """
    Get one piece by barcode.

    Raises:
        404: Unknown barcode
    """
    try:
        return get_piece_service().get_by_barcode(barcode.strip().upper())
    except Exception as e:
        return handle_error(e)
