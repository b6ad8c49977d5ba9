"""
Dashboard service.

Shop-floor overview computed from the workspace's projects, pieces,
warehouses and volumes.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import fetch_all, get_supabase_client, settings
from models.dashboard import ClientProgress, DashboardResponse
from models.piece import PieceStatus
from models.warehouse import WarehouseStatus
from exceptions import DatabaseError
from services.project_service import ProjectService
from utils.text_utils import format_client_display

logger = structlog.get_logger(__name__)

NO_CLIENT_LABEL = "No client"


class DashboardService:
    """Aggregates the dashboard counters."""

    def __init__(self):
        self.db = get_supabase_client()
        self.workspace_id = settings.workspace_id
        self.projects = ProjectService()

    def _rows(self, table: str, columns: str = "*") -> list[dict]:
        try:
            return fetch_all(
                lambda: self.db.table(table)
                .select(columns)
                .eq("workspace_id", self.workspace_id)
                .order("id")
            )
        except Exception as e:
            logger.error("dashboard_query_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e))

    def get_dashboard(self, today: Optional[str] = None) -> DashboardResponse:
        """
        Build the dashboard.

        Args:
            today: ISO date (YYYY-MM-DD) for the "produced today" counter;
                defaults to the current UTC date
        """
        today = today or datetime.now(timezone.utc).date().isoformat()

        projects = self.projects.get_active()
        pieces = self._rows("pieces", "id,client,project,status,produced_at")
        warehouses = self._rows("warehouses", "id,status")
        volumes = self._rows("volumes", "id,project_id")

        produced_today = sum(
            1 for p in pieces
            if p.get("status") == PieceStatus.PRODUCED.value
            and (p.get("produced_at") or "").startswith(today)
        )
        free_warehouses = sum(1 for w in warehouses if w.get("status") == WarehouseStatus.FREE.value)
        projects_with_volumes = {v["project_id"] for v in volumes}

        # display name -> projects
        groups: dict[str, list] = {}
        for project in projects:
            display = format_client_display(project.client_name or NO_CLIENT_LABEL, project.client_code)
            groups.setdefault(display, []).append(project)

        clients = []
        for display, group in sorted(groups.items()):
            keys = {(p.client_name, p.project_name) for p in group}
            group_pieces = [p for p in pieces if (p.get("client"), p.get("project")) in keys]
            produced = sum(1 for p in group_pieces if p.get("status") == PieceStatus.PRODUCED.value)
            total = len(group_pieces)
            clients.append(ClientProgress(
                display_name=display,
                projects=len(group),
                total_pieces=total,
                produced_pieces=produced,
                percent=round(produced * 100 / total, 1) if total else 0.0,
                has_volumes=any(p.id in projects_with_volumes for p in group),
            ))

        response = DashboardResponse(
            active_projects=len(projects),
            active_clients=len(groups),
            pieces_produced_today=produced_today,
            free_warehouses=free_warehouses,
            clients_ready_for_loading=sum(1 for c in clients if c.has_volumes),
            clients=clients,
        )

        logger.info(
            "dashboard_built",
            active_projects=response.active_projects,
            active_clients=response.active_clients,
            produced_today=produced_today,
        )

        return response


# Singleton instance
_dashboard_service: Optional[DashboardService] = None


def get_dashboard_service() -> DashboardService:
    """Get or create DashboardService instance."""
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService()
    return _dashboard_service
