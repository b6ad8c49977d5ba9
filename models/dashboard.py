"""
Dashboard schemas.
"""

from pydantic import BaseModel


class ClientProgress(BaseModel):
    """Production progress for one client."""

    display_name: str
    projects: int
    total_pieces: int
    produced_pieces: int
    percent: float
    has_volumes: bool


class DashboardResponse(BaseModel):
    """Shop-floor overview for the workspace."""

    active_projects: int
    active_clients: int
    pieces_produced_today: int
    free_warehouses: int
    clients_ready_for_loading: int
    clients: list[ClientProgress]
