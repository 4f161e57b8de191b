"""
Resume schemas shared by the extraction and revision services.

These models double as the output contract handed to the delegate model:
field names, required-ness and enum constraints below are exactly what the
model is constrained to produce.
"""
import base64
import binascii
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Literal


AnalysisMode = Literal["generalized", "specific"]
Severity = Literal["low", "medium", "high"]


class PersonalInfo(BaseModel):
    """Contact block of the resume."""
    name: str = Field(..., description="Full name of the candidate")
    role: Optional[str] = Field(None, description="Headline role, e.g. 'Senior Backend Engineer'")
    email: str = Field(..., description="Email address")
    phone: str = Field(..., description="Phone number")
    location: Optional[str] = Field(None, description="City / country")
    linkedin: Optional[str] = Field(None, description="Professional network profile URL")
    links: Optional[List[str]] = Field(None, description="Additional links (portfolio, GitHub, ...)")


class EducationEntry(BaseModel):
    """A single education entry."""
    institution: str = Field(..., description="School or university")
    degree: str = Field(..., description="Degree or programme")
    date: Optional[str] = Field(None, description="Date or date range as written")
    description: Optional[str] = Field(None, description="Honours, thesis, coursework")


class ExperienceEntry(BaseModel):
    """A single professional experience entry."""
    company: str = Field(..., description="Employer name")
    role: str = Field(..., description="Job title")
    date: Optional[str] = Field(None, description="Date range; 'Present' for ongoing roles")
    bullets: List[str] = Field(..., description="Every bullet point, in source order")


class SkillCategory(BaseModel):
    """A logical grouping of skills."""
    category: str = Field(..., description="Category label, e.g. 'Cloud & DevOps'")
    items: List[str] = Field(..., description="Skills in this category")


class AnalysisAnnotation(BaseModel):
    """A critique attached to a segment of the resume text."""
    text_segment: str = Field(..., description="Verbatim segment of the resume being critiqued")
    critique: str = Field(..., description="What is wrong with the segment")
    severity: Severity = Field(..., description="low, medium or high")
    suggested_fix: Optional[str] = Field(None, description="Suggested replacement text")


class AnalysisResult(BaseModel):
    """Full structured output of one extraction call."""
    match_score: float = Field(..., description="ATS match score, 0-100")
    personal_info: PersonalInfo
    education: List[EducationEntry]
    experience: List[ExperienceEntry]
    skills: List[SkillCategory]
    certifications: List[str]
    missing_keywords: List[str]
    hard_skill_gaps: List[str]
    soft_skill_gaps: List[str]
    formatting_issues: List[str]
    impact_analysis: str = Field(..., description="Narrative of the resume's impact; used as the draft summary")
    impact_score: float = Field(..., description="Impact score, 0-100")
    original_text: str = Field(..., description="Plain text of the input resume")
    annotations: List[AnalysisAnnotation]
    mode: AnalysisMode = Field(..., description="'specific' when a job description was supplied, else 'generalized'")


class RectifyResponse(BaseModel):
    """Output of one revision call."""
    model_config = ConfigDict(populate_by_name=True)

    revised_summary: str = Field(..., alias="revisedSummary", description="Rewritten professional summary")
    revised_experience: List[ExperienceEntry] = Field(
        ..., alias="revisedExperience", description="Rewritten experience entries, same companies and roles"
    )


class DocumentPayload(BaseModel):
    """An uploaded document carried as base64 text."""
    data: str = Field(..., description="Base64-encoded document bytes")
    mime_type: str = Field(..., description="Media type, e.g. application/pdf")
    name: str = Field(..., description="Original filename")

    @field_validator("data")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        try:
            decoded = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"data is not valid base64: {e}")
        if not decoded:
            raise ValueError("data is empty")
        return value

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    @classmethod
    def from_bytes(cls, content: bytes, mime_type: str, name: str) -> "DocumentPayload":
        return cls(data=base64.b64encode(content).decode("ascii"), mime_type=mime_type, name=name)


class ResumeSource(BaseModel):
    """Input of an extraction: inline text or an uploaded document, never both."""
    text: Optional[str] = Field(None, description="Pasted resume text")
    file: Optional[DocumentPayload] = Field(None, description="Uploaded resume document")

    @model_validator(mode="after")
    def _exactly_one(self) -> "ResumeSource":
        has_text = self.text is not None and bool(self.text.strip())
        has_file = self.file is not None
        if has_text == has_file:
            raise ValueError("Exactly one of 'text' or 'file' must be provided")
        return self

    @property
    def kind(self) -> str:
        return "file" if self.file is not None else "text"


class ResumeDraft(BaseModel):
    """Editable working copy of the resume, replaced section by section."""
    personal_info: PersonalInfo
    education: List[EducationEntry]
    experience: List[ExperienceEntry]
    skills: List[SkillCategory]
    certifications: List[str]
    summary: str

    @classmethod
    def from_analysis(cls, result: AnalysisResult) -> "ResumeDraft":
        return cls(
            personal_info=result.personal_info,
            education=result.education,
            experience=result.experience,
            skills=result.skills,
            certifications=result.certifications,
            summary=result.impact_analysis,
        )
