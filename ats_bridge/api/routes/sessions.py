"""
Workflow session routes

A session walks one resume through the guided workflow:

    PUT  /sessions/{id}/source/text | source/upload   -> sourced
    POST /sessions/{id}/analyze                       -> analyzed (draft created)
    POST /sessions/{id}/rectify                       -> analyzed (draft revised, score refreshed)
    GET  /sessions/{id}/export                        -> PDF

A failed analyze/rectify still answers 200: the session comes back with
`last_error` set and the phase it fell back to. Requests that do not fit the
current phase (or arrive while a delegate call is running) get 409.
"""
from fastapi import APIRouter, Depends, File, UploadFile, status

from ats_bridge.api.dependencies import (
    get_document_service_dependency,
    get_session_store_dependency,
    get_workflow_service_dependency,
)
from ats_bridge.api.routes.analysis import pdf_attachment
from ats_bridge.api.schemas.request import DraftUpdateRequest, JobDescriptionRequest, SourceTextRequest
from ats_bridge.api.schemas.response import SessionResponse
from ats_bridge.core.workflow import (
    AnalyzeRequested,
    DraftEdited,
    JobDescriptionUpdated,
    RectifyRequested,
    ResetRequested,
    SourceProvided,
)
from ats_bridge.services.document_service import DocumentService
from ats_bridge.services.export_service import build_resume_pdf, export_filename
from ats_bridge.services.workflow_service import SessionStore, WorkflowService
from ats_bridge.utils.exceptions import DraftNotReadyError, UnsupportedFileTypeError
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(store: SessionStore = Depends(get_session_store_dependency)):
    """Start a new, empty workflow session."""
    return SessionResponse.from_session(store.create())


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store_dependency)):
    return SessionResponse.from_session(store.get(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store_dependency)):
    store.delete(session_id)


@router.put("/{session_id}/source/text", response_model=SessionResponse)
async def set_source_text(
    session_id: str,
    request: SourceTextRequest,
    store: SessionStore = Depends(get_session_store_dependency),
    document_service: DocumentService = Depends(get_document_service_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Use pasted text as the session's resume. Starts a new cycle if one was analyzed."""
    session = store.get(session_id)
    source = document_service.from_text(request.text)
    await workflow_service.dispatch(session, SourceProvided(source=source))
    return SessionResponse.from_session(session)


@router.put("/{session_id}/source/upload", response_model=SessionResponse)
async def set_source_upload(
    session_id: str,
    file: UploadFile = File(..., description="Resume file (.pdf, .txt, .md, .docx)"),
    store: SessionStore = Depends(get_session_store_dependency),
    document_service: DocumentService = Depends(get_document_service_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Use an uploaded document as the session's resume."""
    session = store.get(session_id)
    if not file.filename:
        raise UnsupportedFileTypeError("", [], message="Filename is required")

    content = await file.read()
    source = document_service.from_upload(content, file.filename)
    await workflow_service.dispatch(session, SourceProvided(source=source))
    return SessionResponse.from_session(session)


@router.put("/{session_id}/job-description", response_model=SessionResponse)
async def set_job_description(
    session_id: str,
    request: JobDescriptionRequest,
    store: SessionStore = Depends(get_session_store_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Replace the job description used by the next analyze / rectify."""
    session = store.get(session_id)
    await workflow_service.dispatch(session, JobDescriptionUpdated(job_description=request.job_description))
    return SessionResponse.from_session(session)


@router.post("/{session_id}/analyze", response_model=SessionResponse)
async def analyze_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Analyze the session's resume; on success the draft is rebuilt from the result."""
    session = store.get(session_id)
    await workflow_service.dispatch(session, AnalyzeRequested())
    return SessionResponse.from_session(session)


@router.post("/{session_id}/rectify", response_model=SessionResponse)
async def rectify_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Rewrite summary and experience, then re-score the revised draft."""
    session = store.get(session_id)
    await workflow_service.dispatch(session, RectifyRequested())
    return SessionResponse.from_session(session)


@router.patch("/{session_id}/draft", response_model=SessionResponse)
async def update_draft(
    session_id: str,
    request: DraftUpdateRequest,
    store: SessionStore = Depends(get_session_store_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Replace whole draft sections (e.g. the full experience list)."""
    session = store.get(session_id)
    await workflow_service.dispatch(session, DraftEdited(sections=request.sections()))
    return SessionResponse.from_session(session)


@router.post("/{session_id}/reset", response_model=SessionResponse)
async def reset_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store_dependency),
    workflow_service: WorkflowService = Depends(get_workflow_service_dependency)
):
    """Discard source, job description, analysis and draft."""
    session = store.get(session_id)
    await workflow_service.dispatch(session, ResetRequested())
    return SessionResponse.from_session(session)


@router.get("/{session_id}/export")
async def export_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store_dependency)
):
    """Download the current draft as a PDF."""
    draft = store.get(session_id).state.draft
    if draft is None:
        raise DraftNotReadyError()

    logger.info(f"Exporting draft of session {session_id}")
    return pdf_attachment(build_resume_pdf(draft), export_filename(draft))
