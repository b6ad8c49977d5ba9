"""
Project and client service.

Clients are not stored on their own: a client is the set of projects
sharing a ``client_name``. Deleting a client removes its pieces, volumes
and projects.

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

from typing import Optional
import structlog

from config import fetch_all, get_supabase_client, settings
from models.piece import PieceResponse
from models.project import (
    ClientDeleteResponse,
    ClientSummary,
    ProjectResponse,
    ProjectStatus,
)
from exceptions import (
    ClientNotFoundError,
    DatabaseError,
)
from utils.text_utils import format_client_display

logger = structlog.get_logger(__name__)

ACTIVE_STATUSES = (ProjectStatus.PRODUCTION, ProjectStatus.LOADING)


class ProjectService:
    """
    Project business logic.

    Handles client listing, client lookups used by load-out, and client
    deletion.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "projects"
        self.workspace_id = settings.workspace_id

    # ===================
    # READ OPERATIONS
    # ===================

    def get_active(self) -> list[ProjectResponse]:
        """All projects not yet archived."""
        try:
            rows = fetch_all(
                lambda: self.db.table(self.table)
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .neq("status", ProjectStatus.ARCHIVED.value)
                .order("id")
            )
            return [ProjectResponse(**row) for row in rows]

        except Exception as e:
            logger.error("get_active_projects_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_client_projects(
        self,
        client_name: str,
        statuses: Optional[tuple[ProjectStatus, ...]] = ACTIVE_STATUSES,
    ) -> list[ProjectResponse]:
        """
        Projects of one client, ordered by id.

        Args:
            client_name: Client name as stored on the projects
            statuses: Keep only these statuses; None keeps every project

        Raises:
            ClientNotFoundError: Client has no matching project
        """
        logger.debug("getting_client_projects", client_name=client_name)

        try:
            query = (
                self.db.table(self.table)
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .eq("client_name", client_name)
            )
            if statuses:
                query = query.in_("status", [s.value for s in statuses])
            result = query.order("id").execute()

        except Exception as e:
            logger.error("get_client_projects_failed", client_name=client_name, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ClientNotFoundError(client_name)

        return [ProjectResponse(**row) for row in result.data]

    def get_client_pieces(self, client_name: str, projects: list[ProjectResponse]) -> list[PieceResponse]:
        """Pieces of a client that belong to the given projects."""
        project_names = {p.project_name for p in projects}

        try:
            rows = fetch_all(
                lambda: self.db.table("pieces")
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .eq("client", client_name)
                .order("id")
            )
        except Exception as e:
            logger.error("get_client_pieces_failed", client_name=client_name, error=str(e))
            raise DatabaseError("select", str(e))

        return [PieceResponse(**row) for row in rows if row.get("project") in project_names]

    def list_clients(self) -> list[ClientSummary]:
        """Clients with at least one active project, sorted by display name."""
        clients: dict[tuple[str, str], list[str]] = {}
        for project in self.get_active():
            key = (project.client_name, project.client_code or "")
            clients.setdefault(key, []).append(project.project_name)

        summaries = [
            ClientSummary(
                client_name=name,
                client_code=code,
                display_name=format_client_display(name, code),
                projects=sorted(projects),
            )
            for (name, code), projects in clients.items()
        ]
        summaries.sort(key=lambda c: c.display_name)

        logger.info("clients_listed", count=len(summaries))
        return summaries

    # ===================
    # DELETE OPERATIONS
    # ===================

    def delete_client(self, client_name: str) -> ClientDeleteResponse:
        """
        Delete every project of a client with its pieces and volumes.

        Warehouses holding the client's load are freed.

        Raises:
            ClientNotFoundError: Client has no project
        """
        projects = self.get_client_projects(client_name, statuses=None)
        project_ids = [p.id for p in projects]

        logger.info("deleting_client", client_name=client_name, projects=len(project_ids))

        try:
            pieces = (
                self.db.table("pieces")
                .delete()
                .eq("workspace_id", self.workspace_id)
                .eq("client", client_name)
                .execute()
            )
            volumes = (
                self.db.table("volumes")
                .delete()
                .eq("workspace_id", self.workspace_id)
                .in_("project_id", project_ids)
                .execute()
            )
            (
                self.db.table("warehouses")
                .update({"status": "FREE", "current_project_id": None})
                .eq("workspace_id", self.workspace_id)
                .in_("current_project_id", project_ids)
                .execute()
            )
            (
                self.db.table(self.table)
                .delete()
                .eq("workspace_id", self.workspace_id)
                .in_("id", project_ids)
                .execute()
            )

        except Exception as e:
            logger.error("delete_client_failed", client_name=client_name, error=str(e))
            raise DatabaseError("delete", str(e))

        response = ClientDeleteResponse(
            client_name=client_name,
            deleted_projects=len(project_ids),
            deleted_pieces=len(pieces.data or []),
            deleted_volumes=len(volumes.data or []),
        )

        logger.info(
            "client_deleted",
            client_name=client_name,
            projects=response.deleted_projects,
            pieces=response.deleted_pieces,
            volumes=response.deleted_volumes,
        )

        return response


# Singleton instance
_project_service: Optional[ProjectService] = None


def get_project_service() -> ProjectService:
    """Get or create project service instance."""
    global _project_service
    if _project_service is None:
        _project_service = ProjectService()
    return _project_service
