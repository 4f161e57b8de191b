"""
API request schemas
"""
from typing import Optional, List
from pydantic import BaseModel, Field

from ats_bridge.api.schemas.resume import (
    AnalysisResult,
    EducationEntry,
    ExperienceEntry,
    PersonalInfo,
    SkillCategory,
)


class TextAnalyzeRequest(BaseModel):
    """Analyze pasted resume text (stateless)"""

    text: str = Field(..., min_length=1, description="Resume content as plain text")
    job_description: Optional[str] = Field(
        default=None,
        description="Target job description; blank or missing gives a generalized analysis"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "text": "Jane Doe\njane@example.com | +1 555 0100\n\nExperience\nAcme Corp - Backend Engineer (2020 - Present)\n- Built billing APIs",
                "job_description": "Senior Python engineer with Kubernetes and AWS experience"
            }
        }


class RectifyRequest(BaseModel):
    """Rewrite a previous analysis (stateless)"""

    analysis: AnalysisResult = Field(..., description="A successful analysis result")
    job_description: Optional[str] = Field(default=None, description="Target job description")


class SourceTextRequest(BaseModel):
    """Set a session's resume source to pasted text"""

    text: str = Field(..., min_length=1, description="Resume content as plain text")


class JobDescriptionRequest(BaseModel):
    """Replace a session's job description"""

    job_description: str = Field(default="", description="Target job description; empty clears it")

    class Config:
        json_schema_extra = {
            "example": {
                "job_description": "Senior Python engineer with Kubernetes and AWS experience"
            }
        }


class DraftUpdateRequest(BaseModel):
    """
    Edit a session draft.

    Every provided field replaces that section wholesale; omitted fields are kept.
    """

    personal_info: Optional[PersonalInfo] = None
    education: Optional[List[EducationEntry]] = None
    experience: Optional[List[ExperienceEntry]] = None
    skills: Optional[List[SkillCategory]] = None
    certifications: Optional[List[str]] = None
    summary: Optional[str] = None

    def sections(self) -> dict:
        """Provided sections as plain data"""
        return self.model_dump(exclude_unset=True, exclude_none=True)
