"""
Client API routes.

A client is the group of projects sharing a client name.

See STANDARDS_ERRORS.md for error response format.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.project import ClientDeleteResponse, ClientSummary
from services.project_service import get_project_service
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


@router.get("", response_model=list[ClientSummary])
async def list_clients():
    """Clients with active projects, labelled ``code - name``."""
    try:
        return get_project_service().list_clients()
    except Exception as e:
        return handle_error(e)


@router.delete("/{client_name}", response_model=ClientDeleteResponse)
async def delete_client(client_name: str):
    """
    Delete a client's projects, pieces and volumes.

    Raises:
        404: Client has no projects
    """
    try:
        return get_project_service().delete_client(client_name)
    except Exception as e:
        return handle_error(e)
