"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.imports import router as imports_router
from routes.pieces import router as pieces_router
from routes.warehouses import router as warehouses_router
from routes.clients import router as clients_router
from routes.volumes import router as volumes_router
from routes.dashboard import router as dashboard_router

__all__ = [
    "imports_router",
    "pieces_router",
    "warehouses_router",
    "clients_router",
    "volumes_router",
    "dashboard_router",
]
