"""
Piece service: production scans and history.

A scan moves a piece from PENDING to PRODUCED. The update is conditional
on the stored status still being PENDING, so two stations scanning the
same label cannot both succeed.

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import fetch_all, get_supabase_client, settings
from models.piece import PieceResponse, PieceStatus
from models.imports import MIN_BARCODE_LENGTH
from exceptions import (
    DatabaseError,
    InvalidBarcodeError,
    PieceAlreadyProducedError,
    PieceNotFoundError,
)
from utils.text_utils import (
    normalize_search_text,
    piece_id,
    sanitize_barcode,
    sanitize_input,
)

logger = structlog.get_logger(__name__)

DEFAULT_OPERATOR = "SYSTEM"


class PieceService:
    """
    Piece business logic.

    Handles scans, filtered listing and the production history.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "pieces"
        self.workspace_id = settings.workspace_id

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        page: int = 1,
        page_size: int = 50,
        status: Optional[PieceStatus] = None,
        client: Optional[str] = None,
        project: Optional[str] = None,
    ) -> tuple[list[PieceResponse], int]:
        """
        Get pieces with optional filters.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            status: Filter by status
            client: Filter by client name
            project: Filter by project name

        Returns:
            Tuple of (pieces list, total count)
        """
        logger.info(
            "getting_pieces",
            page=page,
            page_size=page_size,
            status=status,
            client=client,
            project=project,
        )

        try:
            query = (
                self.db.table(self.table)
                .select("*", count="exact")
                .eq("workspace_id", self.workspace_id)
            )

            if status:
                query = query.eq("status", status.value)
            if client:
                query = query.eq("client", client)
            if project:
                query = query.eq("project", project)

            offset = (page - 1) * page_size
            query = query.order("id").range(offset, offset + page_size - 1)

            result = query.execute()

            pieces = [PieceResponse(**row) for row in result.data]
            total = result.count or 0

            logger.info("pieces_retrieved", count=len(pieces), total=total)

            return pieces, total

        except Exception as e:
            logger.error("get_pieces_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_barcode(self, barcode: str) -> PieceResponse:
        """
        Get a piece by its (sanitized) barcode.

        Raises:
            PieceNotFoundError: No piece with this barcode
        """
        logger.debug("getting_piece", barcode=barcode)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", piece_id(self.workspace_id, barcode))
                .execute()
            )
        except Exception as e:
            logger.error("get_piece_failed", barcode=barcode, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise PieceNotFoundError(barcode)

        return PieceResponse(**result.data[0])

    def get_history(self, search: Optional[str] = None, limit: int = 100) -> list[PieceResponse]:
        """
        Produced pieces, newest first.

        Args:
            search: Accent-insensitive text matched against name, client,
                project and module
            limit: Maximum pieces returned
        """
        try:
            rows = fetch_all(
                lambda: self.db.table(self.table)
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .eq("status", PieceStatus.PRODUCED.value)
                .order("produced_at", desc=True)
            )
        except Exception as e:
            logger.error("get_history_failed", error=str(e))
            raise DatabaseError("select", str(e))

        pieces = [PieceResponse(**row) for row in rows if row.get("produced_at")]

        needle = normalize_search_text(search)
        if needle:
            pieces = [
                p for p in pieces
                if any(
                    needle in normalize_search_text(value)
                    for value in (p.name, p.client, p.project, p.module)
                )
            ]

        pieces.sort(key=lambda p: p.produced_at, reverse=True)

        return pieces[:limit]

    # ===================
    # SCAN
    # ===================

    def scan(self, barcode: str, operator: str) -> PieceResponse:
        """
        Mark a piece as produced.

        Args:
            barcode: Raw scanner input
            operator: Login of the operator at the station

        Returns:
            Updated piece

        Raises:
            InvalidBarcodeError: Fewer than 3 valid characters
            PieceNotFoundError: Unknown barcode
            PieceAlreadyProducedError: Piece was scanned before
        """
        code = sanitize_barcode(barcode)
        if len(code) < MIN_BARCODE_LENGTH:
            logger.warning("scan_invalid_barcode", raw=barcode[:50])
            raise InvalidBarcodeError(barcode)

        piece = self.get_by_barcode(code)

        if piece.status == PieceStatus.PRODUCED:
            logger.info("scan_already_produced", barcode=code, produced_by=piece.produced_by)
            raise PieceAlreadyProducedError(code, piece.produced_at, piece.produced_by)

        now = datetime.now(timezone.utc).isoformat()
        user = sanitize_input(operator) or DEFAULT_OPERATOR
        history = [entry.model_dump() for entry in piece.scan_history]
        history.append({"type": "SCAN", "at": now, "user": user})

        try:
            result = (
                self.db.table(self.table)
                .update({
                    "status": PieceStatus.PRODUCED.value,
                    "produced_at": now,
                    "produced_by": user,
                    "scan_history": history,
                })
                .eq("id", piece.id)
                .eq("status", PieceStatus.PENDING.value)
                .execute()
            )
        except Exception as e:
            logger.error("scan_update_failed", barcode=code, error=str(e))
            raise DatabaseError("update", str(e))

        # Another station won the race
        if not result.data:
            logger.info("scan_lost_race", barcode=code)
            raise PieceAlreadyProducedError(code)

        logger.info("piece_produced", barcode=code, operator=user, project=piece.project)

        return PieceResponse(**result.data[0])


# Singleton instance
_piece_service: Optional[PieceService] = None


def get_piece_service() -> PieceService:
    """Get or create PieceService instance."""
    global _piece_service
    if _piece_service is None:
        _piece_service = PieceService()
    return _piece_service
