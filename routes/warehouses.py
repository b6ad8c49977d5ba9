"""
Warehouse API routes.

See STANDARDS_ERRORS.md for error response format.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.warehouse import WarehouseCreate, WarehouseResponse
from services.warehouse_service import get_warehouse_service
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


@router.get("", response_model=list[WarehouseResponse])
async def list_warehouses(
    search: Optional[str] = Query(None, max_length=100, description="Filter by name")
):
    """List warehouses, ordered by name."""
    try:
        return get_warehouse_service().get_all(search=search)
    except Exception as e:
        return handle_error(e)


@router.post("", response_model=WarehouseResponse, status_code=201)
async def create_warehouse(data: WarehouseCreate):
    """Create a FREE warehouse."""
    try:
        return get_warehouse_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.delete("/{warehouse_id}", status_code=204)
async def delete_warehouse(warehouse_id: str):
    """
    Delete a warehouse.

    Raises:
        404: Warehouse not found
        409: Warehouse is holding a load
    """
    try:
        get_warehouse_service().delete(warehouse_id)
        return None
    except Exception as e:
        return handle_error(e)
