"""
Unit tests for DashboardService.

Run: pytest tests/unit/test_dashboard_service.py -v
"""

from services.dashboard_service import DashboardService

from tests.factories import PieceFactory, ProjectFactory, VolumeFactory, WarehouseFactory


class TestDashboard:
    """Tests for DashboardService.get_dashboard()"""

    def test_counters(self, mock_db, mock_supabase):
        silva = ProjectFactory.create(client_name="Silva", project_name="Cozinha", status="LOADING")
        souza = ProjectFactory.create(client_name="Souza", project_name="Sala", client_code="")
        mock_supabase.set_table_data("projects", [
            silva,
            souza,
            ProjectFactory.create(client_name="Lima", project_name="Quarto", status="ARCHIVED"),
        ])
        mock_supabase.set_table_data("pieces", [
            PieceFactory.create(status="PRODUCED", produced_at="2026-03-10T08:00:00+00:00"),
            PieceFactory.create(status="PRODUCED", produced_at="2026-03-09T17:00:00+00:00"),
            PieceFactory.create(client="Souza", project="Sala", status="PRODUCED",
                                produced_at="2026-03-10T09:30:00+00:00"),
            PieceFactory.create(client="Souza", project="Sala"),
        ])
        mock_supabase.set_table_data("warehouses", [
            WarehouseFactory.create(),
            WarehouseFactory.create(status="OCCUPIED", current_project_id=silva["id"]),
        ])
        mock_supabase.set_table_data("volumes", VolumeFactory.create_batch(silva["id"], total=2))

        dashboard = DashboardService().get_dashboard(today="2026-03-10")

        assert dashboard.active_projects == 2
        assert dashboard.active_clients == 2
        assert dashboard.pieces_produced_today == 2
        assert dashboard.free_warehouses == 1
        assert dashboard.clients_ready_for_loading == 1

        by_name = {c.display_name: c for c in dashboard.clients}
        assert set(by_name) == {"C01 - Silva", "Souza"}
        assert by_name["C01 - Silva"].percent == 100.0
        assert by_name["C01 - Silva"].has_volumes is True
        assert by_name["Souza"].total_pieces == 2
        assert by_name["Souza"].percent == 50.0

    def test_empty_workspace(self, mock_db):
        dashboard = DashboardService().get_dashboard(today="2026-03-10")

        assert dashboard.active_projects == 0
        assert dashboard.clients == []
