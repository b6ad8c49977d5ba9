"""
Dashboard API routes.

Provides the shop-floor overview: active work, today's production and
clients ready for load-out.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.dashboard import DashboardResponse
from services.dashboard_service import get_dashboard_service
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

@router.get("", response_model=DashboardResponse)
async def get_dashboard():
    """
    Get the dashboard counters.

    Returns:
    - Active projects and clients
    - Pieces produced today
    - Free warehouses
    - Clients with volumes generated (ready for loading)
    - Per-client production progress
    """
    try:
        return get_dashboard_service().get_dashboard()
    except Exception as e:
        return handle_error(e)
