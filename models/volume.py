"""
Volume (shipping unit) schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional

from models.base import BaseSchema


class VolumeResponse(BaseSchema):
    """Volume as stored."""

    id: str
    workspace_id: str
    project_id: str
    index: int
    total: int
    loaded: bool = False
    barcode: str
    loaded_at: Optional[str] = None
    loaded_by: Optional[str] = None


class VolumeGenerateRequest(BaseSchema):
    """Generate the shipping volumes of one client."""

    client_name: str = Field(..., min_length=1)
    total: int = Field(..., ge=1, le=999, description="Number of volumes")
    warehouse_id: str = Field(..., min_length=1)
    replace_existing: bool = Field(False, description="Delete volumes already generated for this client")


class VolumeGenerateResponse(BaseModel):
    """Result of volume generation."""

    client_name: str
    warehouse_id: str
    project_id: str
    volumes: list[VolumeResponse]


class VolumeScanRequest(BaseSchema):
    """Volume barcode scanned at load-out."""

    client_name: str = Field(..., min_length=1)
    barcode: str = Field(..., min_length=1, max_length=200)
    operator: str = Field("SYSTEM", min_length=1, max_length=100)


class FinalizeLoadRequest(BaseSchema):
    client_name: str = Field(..., min_length=1)


class LoadStatusResponse(BaseModel):
    """Load-out progress for one client."""

    client_name: str
    loaded: int
    total: int
    pending: list[int]
    volumes: list[VolumeResponse]
    message: Optional[str] = None
