"""
Unit tests for VolumeService: generation, load scans and finalization.

Run: pytest tests/unit/test_volume_service.py -v
"""

import pytest

from services.volume_service import VolumeService, volume_barcode, volume_id
from models.volume import VolumeGenerateRequest, VolumeScanRequest
from exceptions import (
    ClientNotFoundError,
    PendingVolumesError,
    ProductionIncompleteError,
    VolumeAlreadyLoadedError,
    VolumeNotFoundError,
    VolumesExistError,
    WarehouseOccupiedError,
)

from tests.factories import PieceFactory, ProjectFactory, VolumeFactory, WarehouseFactory


@pytest.fixture
def warehouse(mock_supabase) -> dict:
    row = WarehouseFactory.create(name="Doca 1")
    mock_supabase.set_table_data("warehouses", [row])
    return row


@pytest.fixture
def produced_client(mock_supabase):
    """Client Silva with two projects, every piece produced."""
    mock_supabase.set_table_data("projects", [
        ProjectFactory.create(project_name="Sala"),
        ProjectFactory.create(project_name="Cozinha"),
    ])
    mock_supabase.set_table_data("pieces", (
        PieceFactory.create_batch(2, project="Cozinha", status="PRODUCED")
        + PieceFactory.create_batch(1, project="Sala", status="PRODUCED")
    ))


def generate(total: int = 3, warehouse_id: str = "", replace: bool = False):
    return VolumeService().generate(VolumeGenerateRequest(
        client_name="Silva",
        total=total,
        warehouse_id=warehouse_id,
        replace_existing=replace,
    ))


class TestVolumeIds:
    """Tests for volume_id() / volume_barcode()"""

    def test_formats(self):
        assert volume_id("ws", "SILVA_COZINHA", 2) == "ws_SILVA_COZINHA_VOL_2"
        assert volume_barcode("Silva", 2) == "SILVA_V2"


class TestGenerate:
    """Tests for VolumeService.generate()"""

    def test_generates_on_first_project(self, mock_db, mock_supabase, warehouse, produced_client):
        response = generate(total=3, warehouse_id=warehouse["id"])

        assert response.project_id == "SILVA_COZINHA"
        assert [v.barcode for v in response.volumes] == ["SILVA_V1", "SILVA_V2", "SILVA_V3"]
        assert all(v.total == 3 and not v.loaded for v in response.volumes)
        assert len(mock_supabase.get_table_data("volumes")) == 3

        stored_warehouse = mock_supabase.get_table_data("warehouses")[0]
        assert stored_warehouse["status"] == "OCCUPIED"
        assert stored_warehouse["current_project_id"] == "SILVA_COZINHA"

        projects = mock_supabase.get_table_data("projects")
        assert {p["status"] for p in projects} == {"LOADING"}
        assert {p["warehouse_id"] for p in projects} == {warehouse["id"]}

    def test_pending_pieces_block_generation(self, mock_db, mock_supabase, warehouse):
        mock_supabase.set_table_data("projects", [ProjectFactory.create()])
        mock_supabase.set_table_data("pieces", [
            PieceFactory.create(status="PRODUCED"),
            PieceFactory.create(status="PENDING"),
        ])

        with pytest.raises(ProductionIncompleteError) as exc_info:
            generate(warehouse_id=warehouse["id"])

        assert exc_info.value.details["pending_pieces"] == 1
        assert mock_supabase.get_table_data("volumes") == []

    def test_client_without_pieces_is_incomplete(self, mock_db, mock_supabase, warehouse):
        mock_supabase.set_table_data("projects", [ProjectFactory.create()])

        with pytest.raises(ProductionIncompleteError):
            generate(warehouse_id=warehouse["id"])

    def test_unknown_client(self, mock_db, warehouse):
        with pytest.raises(ClientNotFoundError):
            generate(warehouse_id=warehouse["id"])

    def test_warehouse_of_another_client(self, mock_db, mock_supabase, produced_client):
        row = WarehouseFactory.create(status="OCCUPIED", current_project_id="SOUZA_SALA")
        mock_supabase.set_table_data("warehouses", [row])

        with pytest.raises(WarehouseOccupiedError):
            generate(warehouse_id=row["id"])

    def test_regenerate_requires_replace(self, mock_db, mock_supabase, warehouse, produced_client):
        generate(total=3, warehouse_id=warehouse["id"])

        with pytest.raises(VolumesExistError):
            generate(total=2, warehouse_id=warehouse["id"])

        response = generate(total=2, warehouse_id=warehouse["id"], replace=True)

        assert len(response.volumes) == 2
        volumes = mock_supabase.get_table_data("volumes")
        assert sorted(v["barcode"] for v in volumes) == ["SILVA_V1", "SILVA_V2"]
        assert {v["total"] for v in volumes} == {2}


class TestLoadOut:
    """Tests for VolumeService.scan() and finalize()"""

    @pytest.fixture
    def loading_client(self, mock_supabase, warehouse):
        project = ProjectFactory.create(status="LOADING", warehouse_id=warehouse["id"])
        mock_supabase.set_table_data("projects", [project])
        mock_supabase.set_table_data("pieces", PieceFactory.create_batch(2, status="PRODUCED"))
        mock_supabase.set_table_data("volumes", VolumeFactory.create_batch(project["id"], total=2))
        mock_supabase.set_table_data("warehouses", [
            {**warehouse, "status": "OCCUPIED", "current_project_id": project["id"]},
        ])
        return project

    def scan(self, barcode: str):
        return VolumeService().scan(VolumeScanRequest(client_name="Silva", barcode=barcode, operator="ana"))

    def test_scan_is_case_insensitive(self, mock_db, loading_client):
        status = self.scan(" silva_v1 ")

        assert status.loaded == 1
        assert status.total == 2
        assert status.pending == [2]
        assert status.message == "Volume 1/2 loaded"

    def test_scan_twice(self, mock_db, loading_client):
        self.scan("SILVA_V1")

        with pytest.raises(VolumeAlreadyLoadedError):
            self.scan("SILVA_V1")

    def test_scan_unknown(self, mock_db, loading_client):
        with pytest.raises(VolumeNotFoundError):
            self.scan("SOUZA_V1")

    def test_finalize_with_pending_volumes(self, mock_db, loading_client):
        self.scan("SILVA_V1")

        with pytest.raises(PendingVolumesError) as exc_info:
            VolumeService().finalize("Silva")

        assert exc_info.value.details["pending"] == [2]

    def test_finalize_archives_and_frees_warehouse(self, mock_db, mock_supabase, loading_client):
        self.scan("SILVA_V1")
        self.scan("SILVA_V2")

        status = VolumeService().finalize("Silva")

        assert status.loaded == status.total == 2
        project = mock_supabase.get_table_data("projects")[0]
        assert project["status"] == "ARCHIVED"
        assert project["archived_at"] is not None
        stored_warehouse = mock_supabase.get_table_data("warehouses")[0]
        assert stored_warehouse["status"] == "FREE"
        assert stored_warehouse["current_project_id"] is None

        # Archived clients are gone from load-out
        with pytest.raises(ClientNotFoundError):
            VolumeService().get_status("Silva")
