"""
Stateless analysis routes

Each call goes straight to the delegate model; nothing is kept between
requests. Use the /sessions routes for the guided analyze -> rectify -> export
workflow.

Supported resume formats: .pdf (sent to the model as-is), .txt, .md, .docx
"""
from typing import Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from ats_bridge.api.dependencies import (
    get_document_service_dependency,
    get_extraction_service_dependency,
    get_revision_service_dependency,
)
from ats_bridge.api.schemas.request import RectifyRequest, TextAnalyzeRequest
from ats_bridge.api.schemas.resume import AnalysisResult, RectifyResponse, ResumeDraft
from ats_bridge.services.document_service import DocumentService
from ats_bridge.services.export_service import build_resume_pdf, export_filename
from ats_bridge.services.extraction_service import ExtractionService
from ats_bridge.services.revision_service import RevisionService
from ats_bridge.utils.exceptions import UnsupportedFileTypeError
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Analysis"])


def pdf_attachment(content: bytes, filename: str) -> Response:
    # RFC 6266: plain ASCII fallback plus the UTF-8 name
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
        }
    )


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_text(
    request: TextAnalyzeRequest,
    document_service: DocumentService = Depends(get_document_service_dependency),
    extraction_service: ExtractionService = Depends(get_extraction_service_dependency)
):
    """
    Analyze pasted resume text.

    With a non-blank job_description the analysis is "specific" (scored against
    the role), otherwise "generalized".
    """
    source = document_service.from_text(request.text)
    return await extraction_service.analyze(source, request.job_description)


@router.post("/analyze/upload", response_model=AnalysisResult)
async def analyze_upload(
    file: UploadFile = File(..., description="Resume file (.pdf, .txt, .md, .docx)"),
    job_description: Optional[str] = Form(default=None, description="Target job description"),
    document_service: DocumentService = Depends(get_document_service_dependency),
    extraction_service: ExtractionService = Depends(get_extraction_service_dependency)
):
    """Analyze an uploaded resume document."""
    if not file.filename:
        raise UnsupportedFileTypeError("", [], message="Filename is required")

    content = await file.read()
    logger.info(f"Received resume upload: {file.filename} ({len(content)} bytes)")

    source = document_service.from_upload(content, file.filename)
    return await extraction_service.analyze(source, job_description)


@router.post("/rectify", response_model=RectifyResponse)
async def rectify(
    request: RectifyRequest,
    revision_service: RevisionService = Depends(get_revision_service_dependency)
):
    """
    Rewrite the summary and experience bullets of an analysis.

    The response uses the wire names revisedSummary / revisedExperience.
    """
    return await revision_service.revise(request.analysis, request.job_description)


@router.post("/export", response_class=Response)
async def export_draft(draft: ResumeDraft):
    """Render a resume draft as a downloadable PDF."""
    return pdf_attachment(build_resume_pdf(draft), export_filename(draft))
