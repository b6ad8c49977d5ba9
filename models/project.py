"""
Project and client schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class ProjectStatus(str, Enum):
    """Project lifecycle."""
    PRODUCTION = "PRODUCTION"
    LOADING = "LOADING"
    ARCHIVED = "ARCHIVED"


class ProjectResponse(BaseSchema):
    """Project as stored."""

    id: str
    workspace_id: str
    project_name: str
    client_name: str
    client_code: str = ""
    status: ProjectStatus = ProjectStatus.PRODUCTION
    created_at: Optional[str] = None
    module_dimensions: dict[str, str] = Field(default_factory=dict)
    warehouse_id: Optional[str] = None
    archived_at: Optional[str] = None


class ClientSummary(BaseModel):
    """A client as seen across its active projects."""

    client_name: str
    client_code: str = ""
    display_name: str
    projects: list[str]


class ClientDeleteResponse(BaseModel):
    """Counts removed by a client deletion."""

    client_name: str
    deleted_projects: int
    deleted_pieces: int
    deleted_volumes: int
