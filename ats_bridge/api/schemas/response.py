"""
API response schemas
"""
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from ats_bridge.api.schemas.resume import AnalysisResult, ResumeDraft


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(description="API status")
    version: str = Field(description="API version")
    provider: str = Field(description="Configured delegate provider")
    model: str = Field(description="Configured delegate model")
    credential_configured: bool = Field(description="Whether the delegate credential is set")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "provider": "gemini",
                "model": "gemini-3-pro-preview",
                "credential_configured": True,
                "timestamp": "2025-01-15T10:30:00Z"
            }
        }


class SourceSummary(BaseModel):
    """What kind of resume source a session holds (document bytes are not echoed)"""

    kind: str = Field(description="'text' or 'file'")
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    characters: Optional[int] = Field(default=None, description="Length of a text source")


class FailureNoticeResponse(BaseModel):
    """Last failed workflow step"""

    step: str = Field(description="analyze, rectify or rescore")
    message: str
    error_type: str


class SessionResponse(BaseModel):
    """Snapshot of a workflow session"""

    session_id: str
    phase: str = Field(description="idle, sourced, analyzing, analyzed, revising or revised")
    is_analyzing: bool
    is_revising: bool
    job_description: str = ""
    source: Optional[SourceSummary] = None
    analysis: Optional[AnalysisResult] = None
    draft: Optional[ResumeDraft] = None
    baseline_score: Optional[float] = Field(
        default=None, description="match_score of the last completed analysis"
    )
    last_error: Optional[FailureNoticeResponse] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session) -> "SessionResponse":
        state = session.state

        source = None
        if state.source is not None:
            if state.source.file is not None:
                source = SourceSummary(
                    kind="file",
                    filename=state.source.file.name,
                    mime_type=state.source.file.mime_type,
                )
            else:
                source = SourceSummary(kind="text", characters=len(state.source.text))

        last_error = None
        if state.last_error is not None:
            last_error = FailureNoticeResponse(
                step=state.last_error.step,
                message=state.last_error.message,
                error_type=state.last_error.error_type,
            )

        return cls(
            session_id=session.session_id,
            phase=state.phase.value,
            is_analyzing=state.is_analyzing,
            is_revising=state.is_revising,
            job_description=state.job_description,
            source=source,
            analysis=state.analysis,
            draft=state.draft,
            baseline_score=state.baseline_score,
            last_error=last_error,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
