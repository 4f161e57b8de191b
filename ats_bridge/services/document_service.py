"""
Document Service - turn uploads and pasted text into a ResumeSource

PDFs are passed through untouched as inline documents (base64 + media type)
so the delegate model reads the original layout. Plain text and Markdown are
decoded. DOCX text is extracted with python-docx, since the delegate does not
accept Word documents inline.
"""
import io
from pathlib import Path
from typing import Optional

from ats_bridge.api.schemas.resume import DocumentPayload, ResumeSource
from ats_bridge.utils.config import settings
from ats_bridge.utils.exceptions import (
    FileSizeExceededError,
    InvalidSourceError,
    UnsupportedFileTypeError,
)
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_EXTENSIONS = [".txt", ".md"]


class DocumentService:
    """Service for validating resume uploads and building resume sources."""

    def __init__(self, max_upload_size: Optional[int] = None, allowed_extensions: Optional[list] = None):
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE
        self.allowed_extensions = allowed_extensions or settings.ALLOWED_RESUME_EXTENSIONS

    def from_text(self, text: Optional[str]) -> ResumeSource:
        """Build a source from pasted resume text."""
        if text is None or not text.strip():
            raise InvalidSourceError("Resume text is empty")
        return ResumeSource(text=text.strip())

    def from_upload(self, content: bytes, filename: str) -> ResumeSource:
        """
        Build a source from an uploaded file.

        Args:
            content: Raw bytes of the upload
            filename: Original filename (used to determine file type)

        Returns:
            ResumeSource with either a document payload (PDF) or extracted text
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in self.allowed_extensions:
            raise UnsupportedFileTypeError(ext or "<none>", self.allowed_extensions)

        if len(content) > self.max_upload_size:
            raise FileSizeExceededError(self.max_upload_size)

        if not content:
            raise InvalidSourceError(f"Uploaded file '{filename}' is empty")

        if ext == ".pdf":
            logger.info(f"Accepted PDF resume: {filename} ({len(content)} bytes)")
            return ResumeSource(file=DocumentPayload.from_bytes(content, PDF_MIME_TYPE, filename))

        if ext in TEXT_EXTENSIONS:
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning(f"Rejected non UTF-8 text upload: {filename}")
                raise InvalidSourceError(f"'{filename}' is not valid UTF-8 text") from e
        elif ext == ".docx":
            text = self._extract_docx_text(content)
        else:
            raise UnsupportedFileTypeError(ext, self.allowed_extensions)

        if not text.strip():
            raise InvalidSourceError(f"Could not extract any text from '{filename}'")

        logger.info(f"Extracted {len(text)} characters from resume: {filename}")
        return ResumeSource(text=text.strip())

    def _extract_docx_text(self, content: bytes) -> str:
        """Extract paragraph and table text from DOCX using python-docx."""
        from docx import Document

        try:
            doc = Document(io.BytesIO(content))
        except Exception as e:
            logger.error(f"DOCX extraction failed: {e}")
            raise InvalidSourceError(f"Failed to read DOCX: {e}") from e

        paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]

        # Tables often hold the skills / dates columns
        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text.strip():
                        paragraphs.append(cell.text.strip())

        return "\n".join(paragraphs)


# Singleton
_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    """Get or create singleton document service."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
