"""
Warehouse service.

A warehouse is FREE until volumes are generated into it; it then holds
one client's load (``current_project_id``) until the load is finalized.
"""

import uuid
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.warehouse import WarehouseCreate, WarehouseResponse, WarehouseStatus
from exceptions import (
    DatabaseError,
    WarehouseNotFoundError,
    WarehouseOccupiedError,
)
from utils.text_utils import normalize_search_text, sanitize_input

logger = structlog.get_logger(__name__)


class WarehouseService:
    """Warehouse CRUD and occupancy changes."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "warehouses"
        self.workspace_id = settings.workspace_id

    def get_all(self, search: Optional[str] = None) -> list[WarehouseResponse]:
        """Warehouses ordered by name, optionally filtered by name."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .order("name")
                .execute()
            )
        except Exception as e:
            logger.error("get_warehouses_failed", error=str(e))
            raise DatabaseError("select", str(e))

        warehouses = [WarehouseResponse(**row) for row in result.data]

        needle = normalize_search_text(search)
        if needle:
            warehouses = [w for w in warehouses if needle in normalize_search_text(w.name)]

        return warehouses

    def get_by_id(self, warehouse_id: str) -> WarehouseResponse:
        """
        Raises:
            WarehouseNotFoundError: Unknown id
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", warehouse_id)
                .eq("workspace_id", self.workspace_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_warehouse_failed", warehouse_id=warehouse_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise WarehouseNotFoundError(warehouse_id)

        return WarehouseResponse(**result.data[0])

    def create(self, data: WarehouseCreate) -> WarehouseResponse:
        """Create a FREE warehouse."""
        name = sanitize_input(data.name)
        row = {
            "id": f"{self.workspace_id}_wh_{uuid.uuid4().hex[:12]}",
            "workspace_id": self.workspace_id,
            "name": name,
            "status": WarehouseStatus.FREE.value,
            "current_project_id": None,
        }

        try:
            result = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error("create_warehouse_failed", name=name, error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("warehouse_created", warehouse_id=row["id"], name=name)

        return WarehouseResponse(**(result.data[0] if result.data else row))

    def delete(self, warehouse_id: str) -> None:
        """
        Delete a warehouse.

        Raises:
            WarehouseNotFoundError: Unknown id
            WarehouseOccupiedError: Warehouse still holds a load
        """
        warehouse = self.get_by_id(warehouse_id)
        if warehouse.status == WarehouseStatus.OCCUPIED:
            raise WarehouseOccupiedError(warehouse_id, warehouse.current_project_id)

        try:
            self.db.table(self.table).delete().eq("id", warehouse_id).execute()
        except Exception as e:
            logger.error("delete_warehouse_failed", warehouse_id=warehouse_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("warehouse_deleted", warehouse_id=warehouse_id)

    def occupy(self, warehouse_id: str, project_id: str) -> None:
        self._set_status(warehouse_id, WarehouseStatus.OCCUPIED, project_id)

    def release(self, warehouse_id: str) -> None:
        self._set_status(warehouse_id, WarehouseStatus.FREE, None)

    def _set_status(
        self,
        warehouse_id: str,
        status: WarehouseStatus,
        project_id: Optional[str],
    ) -> None:
        try:
            (
                self.db.table(self.table)
                .update({"status": status.value, "current_project_id": project_id})
                .eq("id", warehouse_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_warehouse_failed", warehouse_id=warehouse_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info(
            "warehouse_status_changed",
            warehouse_id=warehouse_id,
            status=status.value,
            project_id=project_id,
        )


# Singleton instance
_warehouse_service: Optional[WarehouseService] = None


def get_warehouse_service() -> WarehouseService:
    """Get or create WarehouseService instance."""
    global _warehouse_service
    if _warehouse_service is None:
        _warehouse_service = WarehouseService()
    return _warehouse_service
