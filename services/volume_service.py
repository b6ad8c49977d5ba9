"""
Volume service: shipping units and load-out.

Flow for one client:

1. generate: all pieces produced -> N volumes attached to the client's
   first project; projects go to LOADING and the warehouse is OCCUPIED
2. scan: each volume label is scanned onto the truck
3. finalize: no volume pending -> projects ARCHIVED, warehouse FREE

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.piece import PieceStatus
from models.project import ProjectResponse, ProjectStatus
from models.volume import (
    LoadStatusResponse,
    VolumeGenerateRequest,
    VolumeGenerateResponse,
    VolumeResponse,
    VolumeScanRequest,
)
from models.warehouse import WarehouseStatus
from exceptions import (
    DatabaseError,
    PendingVolumesError,
    ProductionIncompleteError,
    VolumeAlreadyLoadedError,
    VolumeNotFoundError,
    VolumesExistError,
    WarehouseOccupiedError,
)
from services.batch_service import WriteBatch
from services.project_service import ProjectService
from services.warehouse_service import WarehouseService
from utils.text_utils import sanitize_input

logger = structlog.get_logger(__name__)


def volume_id(workspace_id: str, project_id: str, index: int) -> str:
    return f"{workspace_id}_{project_id}_VOL_{index}"


def volume_barcode(client_name: str, index: int) -> str:
    """Label printed on volume ``index``: ``{CLIENT}_V{index}``."""
    return f"{client_name.upper()}_V{index}"


class VolumeService:
    """
    Volume business logic.

    Handles generation, load scans and load finalization.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "volumes"
        self.workspace_id = settings.workspace_id
        self.projects = ProjectService()
        self.warehouses = WarehouseService()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_for_projects(self, project_ids: list[str]) -> list[VolumeResponse]:
        """Volumes of the given projects, ordered by index."""
        if not project_ids:
            return []
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .in_("project_id", project_ids)
                .order("index")
                .execute()
            )
        except Exception as e:
            logger.error("get_volumes_failed", error=str(e))
            raise DatabaseError("select", str(e))

        volumes = [VolumeResponse(**row) for row in result.data]
        volumes.sort(key=lambda v: (v.project_id, v.index))
        return volumes

    def get_status(self, client_name: str, message: Optional[str] = None) -> LoadStatusResponse:
        """Load-out progress of a client's active projects."""
        projects = self.projects.get_client_projects(client_name)
        return self._status(client_name, projects, message)

    # ===================
    # GENERATE
    # ===================

    def generate(self, request: VolumeGenerateRequest) -> VolumeGenerateResponse:
        """
        Generate ``request.total`` volumes for a client.

        Raises:
            ClientNotFoundError: No active project for the client
            ProductionIncompleteError: Pieces still pending
            WarehouseNotFoundError: Unknown warehouse
            WarehouseOccupiedError: Warehouse holds another client's load
            VolumesExistError: Volumes exist and replace_existing is False
        """
        client_name = request.client_name
        projects = self.projects.get_client_projects(client_name)
        project_ids = [p.id for p in projects]

        self._check_production_complete(client_name, projects)

        warehouse = self.warehouses.get_by_id(request.warehouse_id)
        if warehouse.status == WarehouseStatus.OCCUPIED and warehouse.current_project_id not in project_ids:
            raise WarehouseOccupiedError(warehouse.id, warehouse.current_project_id)

        existing = self.get_for_projects(project_ids)
        if existing:
            if not request.replace_existing:
                raise VolumesExistError(client_name, len(existing))
            self._delete_volumes([v.id for v in existing])

        main_project_id = projects[0].id
        volumes = [
            VolumeResponse(
                id=volume_id(self.workspace_id, main_project_id, index),
                workspace_id=self.workspace_id,
                project_id=main_project_id,
                index=index,
                total=request.total,
                loaded=False,
                barcode=volume_barcode(client_name, index),
            )
            for index in range(1, request.total + 1)
        ]

        batch = WriteBatch(self.db)
        for volume in volumes:
            batch.set(self.table, volume.model_dump())
        batch.commit()

        self.warehouses.occupy(warehouse.id, main_project_id)
        self._update_projects(
            project_ids,
            {"status": ProjectStatus.LOADING.value, "warehouse_id": warehouse.id},
        )

        logger.info(
            "volumes_generated",
            client_name=client_name,
            total=request.total,
            warehouse_id=warehouse.id,
            replaced=len(existing),
        )

        return VolumeGenerateResponse(
            client_name=client_name,
            warehouse_id=warehouse.id,
            project_id=main_project_id,
            volumes=volumes,
        )

    # ===================
    # LOAD-OUT
    # ===================

    def scan(self, request: VolumeScanRequest) -> LoadStatusResponse:
        """
        Mark one volume as loaded.

        Raises:
            ClientNotFoundError: No active project for the client
            VolumeNotFoundError: Barcode is not one of the client's volumes
            VolumeAlreadyLoadedError: Volume was loaded before
        """
        projects = self.projects.get_client_projects(request.client_name)
        volumes = self.get_for_projects([p.id for p in projects])

        code = request.barcode.strip().upper()
        volume = next((v for v in volumes if v.barcode.upper() == code), None)
        if volume is None:
            logger.warning("volume_scan_unknown", client_name=request.client_name, barcode=code)
            raise VolumeNotFoundError(code)
        if volume.loaded:
            raise VolumeAlreadyLoadedError(volume.barcode, volume.index, volume.total)

        operator = sanitize_input(request.operator) or "SYSTEM"

        try:
            result = (
                self.db.table(self.table)
                .update({
                    "loaded": True,
                    "loaded_at": datetime.now(timezone.utc).isoformat(),
                    "loaded_by": operator,
                })
                .eq("id", volume.id)
                .eq("loaded", False)
                .execute()
            )
        except Exception as e:
            logger.error("volume_scan_failed", volume_id=volume.id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise VolumeAlreadyLoadedError(volume.barcode, volume.index, volume.total)

        logger.info(
            "volume_loaded",
            client_name=request.client_name,
            index=volume.index,
            total=volume.total,
            operator=operator,
        )

        return self._status(
            request.client_name,
            projects,
            message=f"Volume {volume.index}/{volume.total} loaded",
        )

    def finalize(self, client_name: str) -> LoadStatusResponse:
        """
        Close a client's load: archive its projects and free the warehouse.

        Raises:
            ClientNotFoundError: No active project for the client
            PendingVolumesError: Volumes not loaded yet
            ProductionIncompleteError: Pieces still pending
        """
        projects = self.projects.get_client_projects(client_name)
        volumes = self.get_for_projects([p.id for p in projects])

        pending = [v.index for v in volumes if not v.loaded]
        if pending:
            raise PendingVolumesError(client_name, pending)

        self._check_production_complete(client_name, projects)

        self._update_projects(
            [p.id for p in projects],
            {
                "status": ProjectStatus.ARCHIVED.value,
                "archived_at": datetime.now(timezone.utc).isoformat(),
            },
        )

        warehouse_id = next((p.warehouse_id for p in projects if p.warehouse_id), None)
        if warehouse_id:
            self.warehouses.release(warehouse_id)

        logger.info(
            "load_finalized",
            client_name=client_name,
            projects=len(projects),
            volumes=len(volumes),
            warehouse_id=warehouse_id,
        )

        return LoadStatusResponse(
            client_name=client_name,
            loaded=len(volumes),
            total=len(volumes),
            pending=[],
            volumes=volumes,
            message="Load finalized",
        )

    # ===================
    # HELPERS
    # ===================

    def _status(
        self,
        client_name: str,
        projects: list[ProjectResponse],
        message: Optional[str] = None,
    ) -> LoadStatusResponse:
        volumes = self.get_for_projects([p.id for p in projects])
        return LoadStatusResponse(
            client_name=client_name,
            loaded=sum(1 for v in volumes if v.loaded),
            total=len(volumes),
            pending=[v.index for v in volumes if not v.loaded],
            volumes=volumes,
            message=message,
        )

    def _check_production_complete(self, client_name: str, projects: list[ProjectResponse]) -> None:
        pieces = self.projects.get_client_pieces(client_name, projects)
        pending = sum(1 for p in pieces if p.status != PieceStatus.PRODUCED)
        if not pieces or pending:
            raise ProductionIncompleteError(client_name, pending)

    def _delete_volumes(self, ids: list[str]) -> None:
        try:
            self.db.table(self.table).delete().in_("id", ids).execute()
        except Exception as e:
            logger.error("delete_volumes_failed", count=len(ids), error=str(e))
            raise DatabaseError("delete", str(e))
        logger.info("volumes_deleted", count=len(ids))

    def _update_projects(self, project_ids: list[str], values: dict) -> None:
        try:
            self.db.table("projects").update(values).in_("id", project_ids).execute()
        except Exception as e:
            logger.error("update_projects_failed", count=len(project_ids), error=str(e))
            raise DatabaseError("update", str(e))


# Singleton instance
_volume_service: Optional[VolumeService] = None


def get_volume_service() -> VolumeService:
    """Get or create VolumeService instance."""
    global _volume_service
    if _volume_service is None:
        _volume_service = VolumeService()
    return _volume_service
