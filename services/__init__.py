"""
Business logic services.

Each service handles one domain area.
"""

from services.piece_service import PieceService, get_piece_service
from services.project_service import ProjectService, get_project_service
from services.warehouse_service import WarehouseService, get_warehouse_service
from services.volume_service import VolumeService, get_volume_service
from services.dashboard_service import DashboardService, get_dashboard_service
from services.batch_service import WriteBatch
from services.import_session_service import (
    ImportSession,
    HaixunImportSession,
    PromobImportSession,
    create_session,
    get_session,
)

__all__ = [
    "PieceService",
    "get_piece_service",
    "ProjectService",
    "get_project_service",
    "WarehouseService",
    "get_warehouse_service",
    "VolumeService",
    "get_volume_service",
    "DashboardService",
    "get_dashboard_service",
    "WriteBatch",
    "ImportSession",
    "HaixunImportSession",
    "PromobImportSession",
    "create_session",
    "get_session",
]
