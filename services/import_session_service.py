"""
Import sessions: preview before commit.

An ImportSession walks one uploaded file through

    extract -> validate -> (duplicate check, PDF only) -> aggregate -> stage

and later commits the staged pieces as a single WriteBatch, or discards
them. State machine:

    IDLE --analyze--> ANALYZED --confirm--> COMMITTING --ok--> IDLE
                         ^                      |
                         +------ store error ---+

A session runs one operation at a time. ``analyze`` and ``confirm`` set an
in-flight flag for their whole run; a call that arrives while it is set
returns immediately with ``ignored=True`` and changes nothing.

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool
import structlog

from config import fetch_all, get_supabase_client, settings
from exceptions import (
    BatchCommitError,
    DatabaseError,
    ImportBlockedError,
    ImportCommitError,
    ImportFileError,
    ImportItemNotFoundError,
    ImportSessionNotFoundError,
    ValidationError,
)
from models.imports import (
    ClientPreviewGroup,
    ImportErrorSeverity,
    ImportErrorType,
    ImportIssue,
    ImportRecord,
    ImportSessionResponse,
    ImportSource,
    ImportState,
    PromobItem,
)
from parsers.haixun_parser import parse_haixun_csv
from parsers.promob_parser import parse_promob_pdf
from services.batch_service import WriteBatch
from services.import_preview_service import build_preview, preview_row
from services.import_validation_service import (
    CLIENT_REQUIRED_MESSAGE,
    collapse_repeated_barcodes,
    piece_from_item,
    piece_from_record,
    promob_piece_id,
    promob_project_name,
    recheck_items,
    revalidate_item,
    validate_csv_row,
    validate_promob_label,
)
from services.preview_cache_service import retrieve_session, store_session
from utils.text_utils import project_id

logger = structlog.get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ImportSession:
    """
    Staging area shared by both import formats.

    Subclasses provide ``_analyze_content`` (fill the staging area from file
    bytes), ``_build_batch`` (rows to write) and ``_clear_staged``.
    """

    source: ImportSource

    def __init__(self, workspace_id: Optional[str] = None):
        self.db = get_supabase_client()
        self.workspace_id = workspace_id or settings.workspace_id
        self.session_id = uuid.uuid4().hex
        self.state = ImportState.IDLE
        self.in_flight = False
        self.issues: list[ImportIssue] = []
        self.message: Optional[str] = None
        self.committed_pieces = 0
        self.committed_projects = 0

    # ===================
    # OPERATIONS
    # ===================

    async def analyze(self, upload) -> ImportSessionResponse:
        """
        Read, validate and stage one uploaded file.

        Args:
            upload: Object with an async ``read()`` (FastAPI UploadFile)

        Returns:
            Snapshot of the session. Whole-file failures leave the session
            IDLE with a single CRITICAL issue.
        """
        if self.in_flight:
            logger.info("import_analyze_ignored", session_id=self.session_id, state=self.state.value)
            return self.snapshot(ignored=True)

        self.in_flight = True
        try:
            self._reset()
            self._check_size(getattr(upload, "size", None))
            content = await upload.read()
            self._check_size(len(content))

            logger.info(
                "import_analyze_started",
                session_id=self.session_id,
                source=self.source.value,
                size=len(content),
            )

            await self._analyze_content(content)

        except ImportFileError as e:
            self._fail(ImportIssue(
                type=ImportErrorType(e.error_type),
                message=e.message,
                suggestion=e.suggestion,
                severity=ImportErrorSeverity.CRITICAL,
            ))
        except DatabaseError as e:
            self._fail(ImportIssue(
                type=ImportErrorType.GENERIC_SYSTEM_ERROR,
                message=e.message,
                suggestion="Try again in a few moments",
                severity=ImportErrorSeverity.CRITICAL,
            ))
        except Exception as e:
            logger.error(
                "import_analyze_failed",
                session_id=self.session_id,
                error=str(e),
                type=type(e).__name__,
            )
            self._fail(ImportIssue(
                type=ImportErrorType.GENERIC_SYSTEM_ERROR,
                message=str(e) or "Unknown error while processing the file",
                suggestion="Save the file again and retry",
                severity=ImportErrorSeverity.CRITICAL,
            ))
        finally:
            self.in_flight = False

        return self.snapshot()

    async def confirm(self, skip_invalid: bool = False) -> ImportSessionResponse:
        """
        Commit the staged pieces and their projects in one batch.

        No-op when nothing is staged or another run is in flight. On store
        failure the session goes back to ANALYZED with staging intact.

        Raises:
            ImportBlockedError: Staged items still have errors
            ImportCommitError: The batch failed; retry confirm
        """
        if self.in_flight:
            logger.info("import_confirm_ignored", session_id=self.session_id, state=self.state.value)
            return self.snapshot(ignored=True)

        if self.state != ImportState.ANALYZED or self.staged_count == 0:
            logger.info("import_confirm_nothing_staged", session_id=self.session_id)
            return self.snapshot(message="Nothing to import")

        self._check_committable(skip_invalid)

        self.in_flight = True
        self.state = ImportState.COMMITTING
        try:
            batch = self._build_batch(skip_invalid)
            counts = await run_in_threadpool(batch.commit)
        except BatchCommitError as e:
            self.state = ImportState.ANALYZED
            logger.error("import_commit_failed", session_id=self.session_id, error=e.message)
            raise ImportCommitError(
                "Could not save the import. Staged data was kept; confirm again to retry.",
                details=e.details,
            )
        except Exception:
            self.state = ImportState.ANALYZED
            raise
        finally:
            self.in_flight = False

        self.committed_pieces = counts.get("pieces", 0)
        self.committed_projects = counts.get("projects", 0)
        skipped = self.staged_count - self.committed_pieces

        self._clear_staged()
        self.issues = []
        self.state = ImportState.IDLE

        message = f"Import finished: {self.committed_pieces} pieces saved"
        if skip_invalid and skipped > 0:
            message += f", {skipped} skipped"
        self.message = message

        logger.info(
            "import_committed",
            session_id=self.session_id,
            source=self.source.value,
            pieces=self.committed_pieces,
            projects=self.committed_projects,
        )

        return self.snapshot(message=message)

    def cancel(self) -> ImportSessionResponse:
        """Discard staged data and issues. Never touches the store."""
        if self.in_flight:
            logger.info("import_cancel_ignored", session_id=self.session_id)
            return self.snapshot(ignored=True)

        self._reset()
        logger.info("import_cancelled", session_id=self.session_id)
        return self.snapshot(message="Import cancelled")

    # ===================
    # SNAPSHOT
    # ===================

    @property
    def staged_count(self) -> int:
        raise NotImplementedError

    def preview(self) -> list[ClientPreviewGroup]:
        raise NotImplementedError

    def snapshot(self, ignored: bool = False, message: Optional[str] = None) -> ImportSessionResponse:
        return ImportSessionResponse(
            session_id=self.session_id,
            source=self.source,
            state=self.state,
            in_flight=self.in_flight,
            ignored=ignored,
            message=message or self.message,
            preview=self.preview(),
            errors=list(self.issues),
            staged_pieces=self.staged_count,
            committed_pieces=self.committed_pieces,
            committed_projects=self.committed_projects,
        )

    # ===================
    # HELPERS
    # ===================

    def _reset(self) -> None:
        self._clear_staged()
        self.issues = []
        self.message = None
        self.committed_pieces = 0
        self.committed_projects = 0
        self.state = ImportState.IDLE

    def _fail(self, issue: ImportIssue) -> None:
        self._clear_staged()
        self.issues = [issue]
        self.message = issue.message
        self.state = ImportState.IDLE
        logger.warning(
            "import_analyze_rejected",
            session_id=self.session_id,
            type=issue.type.value,
            message=issue.message,
        )

    def _check_size(self, size: Optional[int]) -> None:
        if size is not None and size > settings.import_max_file_size_bytes:
            raise ImportFileError(
                ImportErrorType.FILE_TOO_LARGE.value,
                f"File is too large. Maximum {settings.import_max_file_size_mb}MB.",
                "Split the export into smaller files",
                details={"size": size},
            )

    def _check_committable(self, skip_invalid: bool) -> None:
        pass

    def _project_row(self, client_name: str, project_name: str, client_code: str = "") -> dict[str, Any]:
        return {
            "id": project_id(client_name, project_name),
            "workspace_id": self.workspace_id,
            "project_name": project_name,
            "client_name": client_name,
            "client_code": client_code,
            "status": "PRODUCTION",
            "created_at": _now(),
            "module_dimensions": {},
        }

    async def _analyze_content(self, content: bytes) -> None:
        raise NotImplementedError

    def _build_batch(self, skip_invalid: bool) -> WriteBatch:
        raise NotImplementedError

    def _clear_staged(self) -> None:
        raise NotImplementedError


class HaixunImportSession(ImportSession):
    """CSV import. Re-importing a barcode overwrites the stored piece."""

    source = ImportSource.HAIXUN

    def __init__(self, workspace_id: Optional[str] = None):
        self.records: list[ImportRecord] = []
        self._preview: list[ClientPreviewGroup] = []
        super().__init__(workspace_id)

    @property
    def staged_count(self) -> int:
        return len(self.records)

    def preview(self) -> list[ClientPreviewGroup]:
        return self._preview

    async def _analyze_content(self, content: bytes) -> None:
        result = parse_haixun_csv(content, min_rows=settings.import_min_rows)
        issues = list(result.issues)
        numbered: list[tuple[int, ImportRecord]] = []

        for row in result.rows:
            record, row_issues = validate_csv_row(row)
            issues.extend(row_issues)
            if record is not None:
                numbered.append((row.line_number, record))

        records, repeated = collapse_repeated_barcodes(numbered)
        issues.extend(repeated)

        if not records:
            issues.append(ImportIssue(
                type=ImportErrorType.VALIDATION_ERROR,
                message="No valid pieces found",
                suggestion="Fix the errors listed and import the file again",
                severity=ImportErrorSeverity.CRITICAL,
            ))
            self.issues = issues
            self.message = "No valid pieces found"
            logger.warning("haixun_import_empty", session_id=self.session_id, issues=len(issues))
            return

        self.records = records
        self.issues = issues
        self._preview = build_preview(
            preview_row(
                client_key=r.client_code,
                client_code=r.client_code,
                client_name=r.client_name,
                project_name=r.project_name,
                module=r.piece_module,
            )
            for r in records
        )
        self.state = ImportState.ANALYZED

        blocking = [i for i in issues if i.severity != ImportErrorSeverity.WARNING]
        if blocking:
            self.message = f"Analysis found {len(blocking)} errors and {len(records)} valid lines"
        else:
            self.message = f"Analysis finished: {len(records)} pieces"

        logger.info(
            "haixun_import_analyzed",
            session_id=self.session_id,
            pieces=len(records),
            clients=len(self._preview),
            issues=len(issues),
        )

    def _build_batch(self, skip_invalid: bool) -> WriteBatch:
        batch = WriteBatch(self.db)

        for record in self.records:
            batch.set(
                "projects",
                self._project_row(record.client_name, record.project_name, record.client_code),
            )
        for record in self.records:
            batch.set("pieces", piece_from_record(record, self.workspace_id))

        return batch

    def _clear_staged(self) -> None:
        self.records = []
        self._preview = []


class PromobImportSession(ImportSession):
    """
    PDF import with an editable review grid.

    Items that fail validation stay in the grid for manual correction.
    Codes are checked against the pieces stored when the file was analyzed.
    """

    source = ImportSource.PROMOB

    def __init__(self, workspace_id: Optional[str] = None):
        self.items: list[PromobItem] = []
        self.existing_ids: set[str] = set()
        super().__init__(workspace_id)

    @property
    def staged_count(self) -> int:
        return len(self.items)

    @property
    def invalid_items(self) -> list[PromobItem]:
        return [item for item in self.items if not item.is_valid]

    def preview(self) -> list[ClientPreviewGroup]:
        return build_preview(
            preview_row(
                client_key=item.client_name,
                client_name=item.client_name,
                project_name=promob_project_name(item),
                module=item.module,
            )
            for item in self.items
            if item.is_valid
        )

    def snapshot(self, ignored: bool = False, message: Optional[str] = None) -> ImportSessionResponse:
        response = super().snapshot(ignored=ignored, message=message)
        response.items = list(self.items)
        return response

    def load_existing_ids(self) -> set[str]:
        """Piece ids already stored in the workspace."""
        try:
            rows = fetch_all(
                lambda: self.db.table("pieces").select("id").eq("workspace_id", self.workspace_id)
            )
        except Exception as e:
            logger.error("load_piece_ids_failed", workspace_id=self.workspace_id, error=str(e))
            raise DatabaseError("select", str(e))
        return {row["id"] for row in rows}

    async def _analyze_content(self, content: bytes) -> None:
        result = await run_in_threadpool(
            parse_promob_pdf,
            content,
            settings.promob_grid_columns,
            settings.promob_grid_rows,
        )

        if not result.has_data:
            raise ImportFileError(
                ImportErrorType.PDF_LAYOUT_UNEXPECTED.value,
                "No Promob labels found in the PDF",
                f"Check that pages use the {settings.promob_grid_columns}x{settings.promob_grid_rows} label layout",
                details={"pages": result.total_pages},
            )

        self.existing_ids = await run_in_threadpool(self.load_existing_ids)

        items: list[PromobItem] = []
        issues: list[ImportIssue] = []
        file_ids: set[str] = set()

        for label in result.labels:
            item, item_issues = validate_promob_label(
                label,
                self.workspace_id,
                existing_ids=self.existing_ids,
                file_ids=file_ids,
            )
            items.append(item)
            issues.extend(item_issues)
            if item.item_code:
                file_ids.add(promob_piece_id(self.workspace_id, item.item_code))

        self.items = items
        self.issues = issues
        self.state = ImportState.ANALYZED

        invalid = len(self.invalid_items)
        if invalid:
            self.message = f"Extraction finished with {invalid} items to review"
        else:
            self.message = f"{len(items)} items extracted"

        logger.info(
            "promob_import_analyzed",
            session_id=self.session_id,
            pages=result.total_pages,
            items=len(items),
            invalid=invalid,
            known_pieces=len(self.existing_ids),
        )

    def update_item(self, item_id: str, field: str, value: str) -> ImportSessionResponse:
        """
        Correct one field of a review grid row and validate the grid again.

        Other rows can change too: a code repeated in the file is flagged
        on every row after its first use.

        Raises:
            ImportItemNotFoundError: No staged item with this id
        """
        if self.in_flight:
            logger.info("import_item_update_ignored", session_id=self.session_id, item_id=item_id)
            return self.snapshot(ignored=True)

        index = next((i for i, item in enumerate(self.items) if item.id == item_id), None)
        if index is None:
            raise ImportItemNotFoundError(item_id)

        edited = revalidate_item(
            self.items[index],
            field,
            value,
            self.workspace_id,
            existing_ids=self.existing_ids,
        )
        items = list(self.items)
        items[index] = edited
        self.items = recheck_items(items, self.workspace_id, existing_ids=self.existing_ids)
        updated = self.items[index]

        logger.info(
            "import_item_updated",
            session_id=self.session_id,
            item_id=item_id,
            field=field,
            is_valid=updated.is_valid,
        )

        return self.snapshot()

    def _check_committable(self, skip_invalid: bool) -> None:
        invalid = self.invalid_items
        if not invalid:
            return
        if not skip_invalid:
            missing_client = sum(1 for item in invalid if CLIENT_REQUIRED_MESSAGE in item.errors)
            raise ImportBlockedError(len(invalid), missing_client)
        if len(invalid) == len(self.items):
            raise ValidationError("No valid items to import", code="IMPORT_NOTHING_VALID")

    def _build_batch(self, skip_invalid: bool) -> WriteBatch:
        batch = WriteBatch(self.db)
        valid = [item for item in self.items if item.is_valid]

        for item in valid:
            batch.set(
                "projects",
                self._project_row(item.client_name, promob_project_name(item)),
                merge=True,
            )
        for item in valid:
            batch.set("pieces", piece_from_item(item, self.workspace_id))

        return batch

    def _clear_staged(self) -> None:
        self.items = []
        self.existing_ids = set()


# ===================
# SESSION REGISTRY
# ===================

SESSION_TYPES = {
    ImportSource.HAIXUN: HaixunImportSession,
    ImportSource.PROMOB: PromobImportSession,
}


def create_session(source: ImportSource) -> ImportSession:
    """Create and register a new import session."""
    session = SESSION_TYPES[source]()
    store_session(session.session_id, session, ttl_minutes=settings.preview_ttl_minutes)
    logger.info("import_session_created", session_id=session.session_id, source=source.value)
    return session


def get_session(session_id: str) -> ImportSession:
    """
    Look up a live session.

    Raises:
        ImportSessionNotFoundError: Expired or unknown id
    """
    session = retrieve_session(session_id, ttl_minutes=settings.preview_ttl_minutes)
    if session is None:
        raise ImportSessionNotFoundError(session_id)
    return session


def get_promob_session(session_id: str) -> PromobImportSession:
    """Look up a live PDF session; CSV sessions have no review grid."""
    session = get_session(session_id)
    if not isinstance(session, PromobImportSession):
        raise ImportSessionNotFoundError(session_id)
    return session
