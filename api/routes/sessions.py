"""
Editing session endpoints: content, formatting, upload, convert, download.

Domain errors (VpdfError) are turned into JSON responses by the handler
registered in api.main.
"""

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from api.deps import SessionStore, get_session, get_store
from api.models import (
    ContentResponse,
    ContentUpdate,
    ConvertResponse,
    ErrorResponse,
    FormatRequest,
    NotificationFeed,
    SessionCreated,
    SessionState,
)
from api.rate_limiter import limiter, rate_limit_config
from config.logging_config import get_logger
from core.content import CanonicalContent, UnknownCommandError
from core.conversion import ConversionSession
from core.ingest import UploadedSource

logger = get_logger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])


def _content_response(session: ConversionSession, content: CanonicalContent) -> ContentResponse:
    return ContentResponse(
        content=content.content,
        is_rich=content.is_rich,
        html=content.html,
        state=session.state.value,
        unlocked=session.job.unlocked,
    )


@router.post("", response_model=SessionCreated, status_code=201)
@limiter.limit(rate_limit_config.get_limit("session_create"))
async def create_session(request: Request, store: SessionStore = Depends(get_store)):
    """Open a new editing session"""
    session = await store.create()
    return SessionCreated(session_id=session.id)


@router.get("/{session_id}", response_model=SessionState)
@limiter.limit(rate_limit_config.get_limit("status"))
async def get_session_state(request: Request, session: ConversionSession = Depends(get_session)):
    """Get job state and canonical content"""
    return SessionState(**session.snapshot())


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, store: SessionStore = Depends(get_store)):
    """Close a session, flushing a pending download"""
    if store.get(session_id) is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    await store.close(session_id)


@router.put("/{session_id}/content", response_model=ContentResponse)
@limiter.limit(rate_limit_config.get_limit("edit"))
async def update_content(
    request: Request,
    update: ContentUpdate,
    session: ConversionSession = Depends(get_session),
):
    """
    Editing finished (blur).

    The live markup is kept when it carries formatting; otherwise the
    live text is stored verbatim.
    """
    content = session.finalize(update.markup, update.text)
    return _content_response(session, content)


@router.post("/{session_id}/format", response_model=ContentResponse)
@limiter.limit(rate_limit_config.get_limit("edit"))
async def apply_format(
    request: Request,
    body: FormatRequest,
    session: ConversionSession = Depends(get_session),
):
    """Apply a toolbar command to the whole document"""
    try:
        content = session.apply_format(body.command, body.value)
    except UnknownCommandError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _content_response(session, content)


@router.post(
    "/{session_id}/upload",
    response_model=ContentResponse,
    responses={415: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
@limiter.limit(rate_limit_config.get_limit("upload"))
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    session: ConversionSession = Depends(get_session),
):
    """
    Replace the content with an uploaded document

    Accepts: TXT, MD, DOCX
    """
    data = await file.read()
    content = await session.upload(UploadedSource(filename=file.filename or "", data=data))
    return _content_response(session, content)


@router.post(
    "/{session_id}/convert",
    response_model=ConvertResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@limiter.limit(rate_limit_config.get_limit("convert"))
async def convert(request: Request, session: ConversionSession = Depends(get_session)):
    """
    Render the content to PDF.

    Returns once the file is saved. A convert request while another one
    runs is ignored.
    """
    path = await session.convert()
    if path is None:
        return ConvertResponse(status="ignored", state=session.state.value)
    return ConvertResponse(
        status="completed",
        state=session.state.value,
        download_url=f"/api/sessions/{session.id}/download",
    )


@router.get("/{session_id}/notifications", response_model=NotificationFeed)
async def get_notifications(
    session_id: str,
    since: int = 0,
    store: SessionStore = Depends(get_store),
):
    """Current notification plus history (newer than `since`)"""
    center = store.notifications(session_id)
    if center is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    current = center.current
    return NotificationFeed(
        current=current.to_dict() if current else None,
        history=[n.to_dict() for n in center.since(since)],
    )


@router.get("/{session_id}/download")
@limiter.limit(rate_limit_config.get_limit("download"))
async def download(request: Request, session: ConversionSession = Depends(get_session)):
    """Download the last saved PDF"""
    path = session.last_output
    if path is None or not path.exists():
        raise HTTPException(status_code=404, detail="No PDF has been generated yet")
    return FileResponse(path, media_type="application/pdf", filename=session.config.output_filename)
