"""
Volume and load-out API routes.

See STANDARDS_ERRORS.md for error response format.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.volume import (
    FinalizeLoadRequest,
    LoadStatusResponse,
    VolumeGenerateRequest,
    VolumeGenerateResponse,
    VolumeScanRequest,
)
from services.volume_service import get_volume_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


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


@router.get("", response_model=LoadStatusResponse)
async def get_load_status(client_name: str = Query(..., min_length=1)):
    """Volumes of a client and how many are loaded."""
    try:
        return get_volume_service().get_status(client_name)
    except Exception as e:
        return handle_error(e)


@router.post("/generate", response_model=VolumeGenerateResponse, status_code=201)
async def generate_volumes(data: VolumeGenerateRequest):
    """
    Generate shipping volumes for a client.

    Raises:
        404: Client or warehouse not found
        409: Warehouse occupied by another client, or volumes exist
        422: Production not complete
    """
    try:
        return get_volume_service().generate(data)
    except Exception as e:
        return handle_error(e)


@router.post("/scan", response_model=LoadStatusResponse)
async def scan_volume(data: VolumeScanRequest):
    """
    Mark a volume as loaded.

    Raises:
        404: Volume not found for this client
        409: Volume already loaded
    """
    try:
        return get_volume_service().scan(data)
    except Exception as e:
        return handle_error(e)


@router.post("/finalize", response_model=LoadStatusResponse)
async def finalize_load(data: FinalizeLoadRequest):
    """
    Archive the client's projects and free its warehouse.

    Raises:
        422: Volumes still pending or production not complete
    """
    try:
        return get_volume_service().finalize(data.client_name)
    except Exception as e:
        return handle_error(e)
