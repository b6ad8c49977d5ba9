"""
Unit tests for PieceService.

See STANDARDS_TESTING.md for patterns.

Run: pytest tests/unit/test_piece_service.py -v
"""

import pytest

from services.piece_service import PieceService, get_piece_service
from models.piece import PieceResponse, PieceStatus
from exceptions import (
    InvalidBarcodeError,
    PieceAlreadyProducedError,
    PieceNotFoundError,
)

from tests.factories import PieceFactory


class TestPieceServiceScan:
    """Tests for PieceService.scan()"""

    def test_scan_marks_piece_produced(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [PieceFactory.create(barcode="BC-001")])
        service = PieceService()

        piece = service.scan("  bc-001 ", "joao")

        assert piece.status == PieceStatus.PRODUCED
        assert piece.produced_by == "joao"
        assert piece.produced_at is not None
        assert len(piece.scan_history) == 1
        assert piece.scan_history[0].user == "joao"

        stored = mock_supabase.get_table_data("pieces")[0]
        assert stored["status"] == "PRODUCED"

    def test_second_scan_is_rejected(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [PieceFactory.create(barcode="BC001")])
        service = PieceService()
        service.scan("BC001", "joao")

        with pytest.raises(PieceAlreadyProducedError) as exc_info:
            service.scan("BC001", "maria")

        assert exc_info.value.details["produced_by"] == "joao"
        assert mock_supabase.get_table_data("pieces")[0]["produced_by"] == "joao"

    def test_short_barcode(self, mock_db):
        with pytest.raises(InvalidBarcodeError):
            PieceService().scan(" a/b ", "joao")

    def test_unknown_barcode(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [])

        with pytest.raises(PieceNotFoundError):
            PieceService().scan("BC404", "joao")

    def test_concurrent_scan_loses(self, mock_db, mock_supabase):
        row = PieceFactory.create(barcode="BC001")
        mock_supabase.set_table_data("pieces", [{**row, "status": "PRODUCED", "produced_by": "maria"}])
        service = PieceService()
        # Station read the piece before the other station's write landed
        service.get_by_barcode = lambda code: PieceResponse(**row)

        with pytest.raises(PieceAlreadyProducedError):
            service.scan("BC001", "joao")

        assert mock_supabase.get_table_data("pieces")[0]["produced_by"] == "maria"

    def test_operator_is_sanitized(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [PieceFactory.create(barcode="BC001")])

        piece = PieceService().scan("BC001", "<b>joao</b>")

        assert piece.produced_by == "joao"


class TestPieceServiceRead:
    """Tests for get_all() and get_history()"""

    def test_get_all_filters_and_pages(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", (
            PieceFactory.create_batch(3, client="Silva")
            + PieceFactory.create_batch(2, client="Souza")
        ))
        service = PieceService()

        pieces, total = service.get_all(page=1, page_size=2, client="Silva")

        assert total == 3
        assert len(pieces) == 2
        assert all(p.client == "Silva" for p in pieces)

    def test_history_newest_first(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [
            PieceFactory.create(barcode="OLD", status="PRODUCED", produced_at="2026-01-01T10:00:00+00:00"),
            PieceFactory.create(barcode="NEW", status="PRODUCED", produced_at="2026-01-02T10:00:00+00:00"),
            PieceFactory.create(barcode="TODO"),
        ])

        history = PieceService().get_history()

        assert [p.barcode for p in history] == ["NEW", "OLD"]

    def test_history_search_ignores_accents(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("pieces", [
            PieceFactory.create(barcode="A1", status="PRODUCED", client="Gonçalves"),
            PieceFactory.create(barcode="A2", status="PRODUCED", client="Silva"),
        ])

        history = PieceService().get_history(search="goncalves")

        assert [p.barcode for p in history] == ["A1"]

    def test_get_piece_service_singleton(self, mock_db):
        assert get_piece_service() is get_piece_service()
