"""Session endpoints: upload, preview confirmation, results and export."""

from typing import Annotated, Any, Dict, NoReturn
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from fintable.core.config import Settings
from fintable.core.exceptions import (
    ConfigurationError,
    InvalidDocumentError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from fintable.dependencies import get_session_manager, get_settings, get_sse_manager
from fintable.services.export.export_service import ExportFile
from fintable.services.session.session_manager import SessionManager
from fintable.services.session.state_machine import ExtractionSession
from fintable.services.sse_manager import SSEManager
from fintable.utils.logging import get_logger
from fintable.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter()

SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]


def _raise_http(request: Request, status_code: int, title: str, detail: str) -> NoReturn:
    error_detail = create_error_detail(title=title, status=status_code, detail=detail, request=request)
    raise HTTPException(status_code=status_code, detail=error_detail.model_dump(mode="json"))


def _get_session(request: Request, manager: SessionManager, session_id: str) -> ExtractionSession:
    try:
        return manager.get(session_id)
    except SessionNotFoundError as e:
        _raise_http(request, status.HTTP_404_NOT_FOUND, "Session Not Found", e.message)


def _download(export_file: ExportFile) -> Response:
    quoted = quote(export_file.filename)
    return Response(
        content=export_file.encode(),
        media_type=export_file.media_type,
        headers={"Content-Disposition": f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}"},
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create an extraction session",
    operation_id="create_session",
)
async def create_session(request: Request, manager: SessionManagerDep) -> Dict[str, Any]:
    try:
        session = manager.create()
    except ConfigurationError as e:
        LOGGER.error(f"Cannot create session: {e.message}")
        _raise_http(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Not Configured", e.message)
    return create_api_response(session.snapshot(), message="Session created", request=request)


@router.get(
    "/{session_id}",
    summary="Get the current session snapshot",
    operation_id="get_session",
)
async def get_session(request: Request, session_id: str, manager: SessionManagerDep) -> Dict[str, Any]:
    session = _get_session(request, manager, session_id)
    return create_api_response(session.snapshot(), request=request)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session",
    operation_id="delete_session",
)
async def delete_session(request: Request, session_id: str, manager: SessionManagerDep) -> Response:
    try:
        manager.delete(session_id)
    except SessionNotFoundError as e:
        _raise_http(request, status.HTTP_404_NOT_FOUND, "Session Not Found", e.message)
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "Session Busy", e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{session_id}/document",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload a PDF and start table extraction",
    operation_id="upload_document",
)
async def upload_document(
    request: Request,
    session_id: str,
    background_tasks: BackgroundTasks,
    manager: SessionManagerDep,
    app_settings: Annotated[Settings, Depends(get_settings)],
    file: UploadFile = File(...),
) -> Dict[str, Any]:
    """Accept the document and run page extraction after responding.

    Progress is observable through the events stream or by polling the session.
    """
    session = _get_session(request, manager, session_id)
    content = await file.read()

    if len(content) > app_settings.extraction.max_upload_bytes:
        _raise_http(
            request,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            "Document Too Large",
            f"Document exceeds {app_settings.extraction.max_upload_bytes} bytes",
        )

    try:
        session.accept_file(file.filename or "document.pdf", file.content_type)
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "Session Busy", e.message)
    except InvalidDocumentError as e:
        _raise_http(request, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "Unsupported Document", e.message)

    background_tasks.add_task(session.run_extraction, content)

    LOGGER.info(
        "Extraction scheduled",
        extra={"session_id": session_id, "file_name": file.filename, "size_bytes": len(content)},
    )
    return create_api_response(session.snapshot(), message="Extraction started", request=request)


@router.post(
    "/{session_id}/confirm",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Confirm the previewed tables and start structuring",
    operation_id="confirm_preview",
)
async def confirm_preview(
    request: Request,
    session_id: str,
    background_tasks: BackgroundTasks,
    manager: SessionManagerDep,
) -> Dict[str, Any]:
    session = _get_session(request, manager, session_id)
    try:
        session.begin_structuring()
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "Invalid Session State", e.message)

    background_tasks.add_task(session.run_structuring)
    return create_api_response(session.snapshot(), message="Structuring started", request=request)


@router.post(
    "/{session_id}/reset",
    summary="Discard the current document and start over",
    operation_id="reset_session",
)
async def reset_session(request: Request, session_id: str, manager: SessionManagerDep) -> Dict[str, Any]:
    session = _get_session(request, manager, session_id)
    try:
        session.reset()
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "Session Busy", e.message)
    return create_api_response(session.snapshot(), message="Session reset", request=request)


@router.get(
    "/{session_id}/events",
    summary="Stream session updates via SSE",
    operation_id="stream_session_events",
)
async def stream_session_events(
    request: Request,
    session_id: str,
    manager: SessionManagerDep,
    sse_manager: Annotated[SSEManager, Depends(get_sse_manager)],
) -> StreamingResponse:
    session = _get_session(request, manager, session_id)
    return StreamingResponse(
        sse_manager.stream_session_events(session),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get(
    "/{session_id}/tables/{index}",
    summary="Get one structured table",
    operation_id="get_table",
)
async def get_table(request: Request, session_id: str, index: int, manager: SessionManagerDep) -> Dict[str, Any]:
    session = _get_session(request, manager, session_id)
    result = session.snapshot().result
    if result is None:
        _raise_http(request, status.HTTP_409_CONFLICT, "No Results", "Session has no structured result yet")

    table = result.get_table(index)
    if table is None:
        _raise_http(
            request,
            status.HTTP_404_NOT_FOUND,
            "Table Not Found",
            f"Table index {index} out of range (0..{len(result.tables) - 1})",
        )
    return create_api_response(table, request=request)


@router.get(
    "/{session_id}/export/json",
    summary="Download the result as JSON",
    operation_id="export_json",
)
async def export_json(request: Request, session_id: str, manager: SessionManagerDep) -> Response:
    session = _get_session(request, manager, session_id)
    try:
        return _download(session.export_json())
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "No Results", e.message)


@router.get(
    "/{session_id}/export/csv",
    summary="Download all tables as one CSV file",
    operation_id="export_csv",
)
async def export_csv(request: Request, session_id: str, manager: SessionManagerDep) -> Response:
    session = _get_session(request, manager, session_id)
    try:
        return _download(session.export_csv())
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "No Results", e.message)


@router.post(
    "/{session_id}/export/database",
    summary="Export the result to the database",
    operation_id="export_database",
)
async def export_database(request: Request, session_id: str, manager: SessionManagerDep) -> Dict[str, Any]:
    """Run the database export and return its user-facing message.

    Export failures are reported with ``status: false``; the session shows
    the message until it expires.
    """
    session = _get_session(request, manager, session_id)
    try:
        outcome = await session.export_to_database()
    except InvalidTransitionError as e:
        _raise_http(request, status.HTTP_409_CONFLICT, "Export Not Available", e.message)

    return create_api_response(
        {"success": outcome.success, "message": outcome.message},
        message=outcome.message,
        status=outcome.success,
        request=request,
    )
