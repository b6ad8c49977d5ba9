"""
Warehouse schemas.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class WarehouseStatus(str, Enum):
    """Occupancy."""
    FREE = "FREE"
    OCCUPIED = "OCCUPIED"


class WarehouseCreate(BaseSchema):
    """Create a warehouse."""

    name: str = Field(..., min_length=1, max_length=500)


class WarehouseResponse(BaseSchema):
    """Warehouse as stored."""

    id: str
    workspace_id: str
    name: str
    status: WarehouseStatus = WarehouseStatus.FREE
    current_project_id: Optional[str] = None
