"""
Import wizard API routes.

Exposes wizard sessions to the frontend. Every command returns the session
snapshot; workflow failures are reported in its error field, not as HTTP
errors. Only an unknown or expired session produces a 404.

Endpoints are sync so blocking import service calls run in the thread pool.
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse
import structlog

from models.import_wizard import (
    FileReference,
    WizardSnapshot,
    SelectTargetTypeRequest,
    SetMappingRequest,
)
from services import wizard_session_store
from exceptions import AppError, FileProcessingError

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
# SESSIONS
# ===================

@router.post("/sessions", response_model=WizardSnapshot, status_code=201)
def create_session():
    """Start a new wizard session at the upload step."""
    try:
        session = wizard_session_store.create_session()
        return session.snapshot()

    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=WizardSnapshot)
def get_session(session_id: str):
    """
    Get the current state of a session.

    Raises:
        404: Session not found or expired
    """
    try:
        session = wizard_session_store.get_session(session_id)
        return session.snapshot(drain_notifications=True)

    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str):
    """
    Discard a session.

    Raises:
        404: Session not found or expired
    """
    try:
        wizard_session_store.delete_session(session_id)
        return None  # 204 No Content

    except Exception as e:
        return handle_error(e)


# ===================
# COMMANDS
# ===================

@router.post("/sessions/{session_id}/upload", response_model=WizardSnapshot)
def upload_file(session_id: str, file: UploadFile = File(...)):
    """
    Upload a CSV file and start over with it.

    Raises:
        404: Session not found or expired
    """
    try:
        session = wizard_session_store.get_session(session_id)
        content = file.file.read()
        if not file.filename:
            raise FileProcessingError("Uploaded file has no name")

        logger.info(
            "wizard_file_received",
            session_id=session_id,
            file_name=file.filename,
            size_bytes=len(content)
        )
        reference = FileReference(name=file.filename, content=content)
        return session.start_upload(reference)

    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/target-type", response_model=WizardSnapshot)
def select_target_type(session_id: str, data: SelectTargetTypeRequest):
    """
    Select the record type to import into.

    Clears the mapping and loads the type's fields.
    """
    try:
        session = wizard_session_store.get_session(session_id)
        return session.on_type_selected(data.api_name)

    except Exception as e:
        return handle_error(e)


@router.put("/sessions/{session_id}/mapping", response_model=WizardSnapshot)
def set_mapping(session_id: str, data: SetMappingRequest):
    """Map one field to a column; an empty column clears the field."""
    try:
        session = wizard_session_store.get_session(session_id)
        return session.set_mapping(data.field_api_name, data.column)

    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/import", response_model=WizardSnapshot)
def submit_import(session_id: str):
    """
    Run the import.

    On success the snapshot carries a success notification and the session
    is back at the upload step.
    """
    try:
        session = wizard_session_store.get_session(session_id)
        return session.submit_import(drain_notifications=True)

    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/reset", response_model=WizardSnapshot)
def reset_session(session_id: str):
    """Clear the session and return to the upload step."""
    try:
        session = wizard_session_store.get_session(session_id)
        return session.reset_form()

    except Exception as e:
        return handle_error(e)
