"""
Import session API routes.

Upload flow:
    POST /sessions                       {source}  -> new session
    POST /sessions/{id}/analyze          multipart -> preview + errors
    PATCH /sessions/{id}/items/{item}    {field, value} (PDF review grid)
    POST /sessions/{id}/confirm          -> batched write
    POST /sessions/{id}/cancel           -> discard staging

See STANDARDS_ERRORS.md for error response format.
"""

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import JSONResponse
import structlog

from models.imports import (
    CreateSessionRequest,
    ImportSessionResponse,
    ItemUpdateRequest,
)
from services.import_session_service import (
    create_session,
    get_promob_session,
    get_session,
)
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.post("/sessions", response_model=ImportSessionResponse, status_code=201)
async def open_session(data: CreateSessionRequest):
    """
    Open an import session for one file format.

    Sessions expire after PREVIEW_TTL_MINUTES of inactivity.
    """
    try:
        session = create_session(data.source)
        return session.snapshot()
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=ImportSessionResponse)
async def get_import_session(session_id: str):
    """Current state, preview, review grid and errors of a session."""
    try:
        return get_session(session_id).snapshot()
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/analyze", response_model=ImportSessionResponse)
async def analyze_file(session_id: str, file: UploadFile = File(...)):
    """
    Parse and validate an uploaded file without writing anything.

    File-level failures (too large, too few lines, unreadable PDF) come
    back as a single CRITICAL entry in ``errors`` with state IDLE.
    """
    try:
        session = get_session(session_id)
        logger.info("import_upload_received", session_id=session_id, filename=file.filename)
        return await session.analyze(file)
    except Exception as e:
        return handle_error(e)


@router.patch("/sessions/{session_id}/items/{item_id}", response_model=ImportSessionResponse)
async def update_item(session_id: str, item_id: str, data: ItemUpdateRequest):
    """Correct one field of a PDF review grid row."""
    try:
        session = get_promob_session(session_id)
        return session.update_item(item_id, data.field, data.value)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/confirm", response_model=ImportSessionResponse)
async def confirm_import(
    session_id: str,
    skip_invalid: bool = Query(False, description="PDF only: import valid items and drop the rest"),
):
    """
    Write the staged pieces and projects.

    Returns 503 with ``retryable`` when the write fails; staging is kept.
    """
    try:
        session = get_session(session_id)
        return await session.confirm(skip_invalid=skip_invalid)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/cancel", response_model=ImportSessionResponse)
async def cancel_import(session_id: str):
    """Discard staged data and errors."""
    try:
        return get_session(session_id).cancel()
    except Exception as e:
        return handle_error(e)
