"""
Extraction Service - structured resume extraction and critique

Turns a resume source (pasted text or an inline document) plus an optional job
description into an AnalysisResult by delegating to the configured model.
"""
from typing import Optional

from ats_bridge.api.schemas.resume import AnalysisResult, ResumeSource, AnalysisMode
from ats_bridge.services.llm_provider import LLMProvider, get_llm_provider
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)

EXTRACTION_PROMPT = """You are a high-fidelity CV data architect.
TASK: Perform a FULL EXTRACTION of the provided CV, then audit it.

EXTRACTION RULES:
1. Lossless: capture EVERY role, company, bullet point, education entry, skill and certification.
   Never summarize, merge or drop items. Keep them in source order.
2. Copy personal data exactly (name, email, phone, headline role, location, profile links).
3. Normalize dates. When an end date lies in the future for what is clearly the current role,
   write "Present" instead.
4. Group skills into logical categories (e.g. Languages, Cloud & DevOps, Data, Soft Skills).
5. original_text must contain the plain text of the CV.

ANALYSIS:
- Mode: {mode_label}. Set "mode" to "{mode}".
- {scoring_rule}
- Be critical: match_score and impact_score are integers from 0 to 100.
- missing_keywords: {keyword_rule}
- hard_skill_gaps / soft_skill_gaps: skills the candidate should evidence but does not.
- formatting_issues: concrete ATS formatting problems (tables, columns, missing dates, inconsistent tense...).
- impact_analysis: a 3-4 sentence professional summary of the candidate's impact, written so it can
  serve as the resume's profile summary.
- annotations: critique specific text segments with a severity (low, medium, high) and a suggested fix.
{job_description_block}
OUTPUT FORMAT: JSON ONLY. DO NOT ADD MARKDOWN WRAPPERS."""

_GENERALIZED_SCORING = "No job description was supplied: score against general ATS formatting and impact best practices."
_SPECIFIC_SCORING = "Score how well the CV matches the TARGET JOB DESCRIPTION below."
_GENERALIZED_KEYWORDS = "industry-standard keywords expected for the candidate's own role that are absent."
_SPECIFIC_KEYWORDS = "keywords from the job description that are absent from the CV."


def resolve_mode(job_description: Optional[str]) -> AnalysisMode:
    """'specific' when the job description has non-whitespace content, else 'generalized'"""
    if job_description and job_description.strip():
        return "specific"
    return "generalized"


def build_extraction_prompt(job_description: Optional[str]) -> str:
    mode = resolve_mode(job_description)
    if mode == "specific":
        return EXTRACTION_PROMPT.format(
            mode_label="SPECIFIC ALIGNMENT",
            mode=mode,
            scoring_rule=_SPECIFIC_SCORING,
            keyword_rule=_SPECIFIC_KEYWORDS,
            job_description_block=f"\nTARGET JOB DESCRIPTION:\n{job_description.strip()}\n",
        )
    return EXTRACTION_PROMPT.format(
        mode_label="GENERAL",
        mode=mode,
        scoring_rule=_GENERALIZED_SCORING,
        keyword_rule=_GENERALIZED_KEYWORDS,
        job_description_block="",
    )


class ExtractionService:
    """Service for extracting and auditing resumes via the delegate model."""

    def __init__(self, llm_provider: Optional[LLMProvider] = None):
        self.llm_provider = llm_provider or get_llm_provider()

    async def analyze(self, source: ResumeSource, job_description: Optional[str] = None) -> AnalysisResult:
        """
        Extract and audit a resume.

        Args:
            source: Pasted text or an uploaded document (exactly one)
            job_description: Optional target job description

        Returns:
            AnalysisResult whose mode always reflects job_description

        Failures from the delegate propagate unchanged; there is no retry.
        """
        mode = resolve_mode(job_description)
        instructions = build_extraction_prompt(job_description)

        logger.info(f"Analyzing resume ({source.kind} source, mode={mode})")

        result = await self.llm_provider.generate_structured(
            output_type=AnalysisResult,
            instructions=instructions,
            document=source.file,
            text=source.text,
        )

        if result.mode != mode:
            logger.warning(f"Model reported mode={result.mode}, expected {mode}; keeping {mode}")
            result = result.model_copy(update={"mode": mode})

        logger.info(
            f"Analysis complete: match_score={result.match_score}, "
            f"experience={len(result.experience)}, education={len(result.education)}"
        )
        return result


# Singleton
_extraction_service: Optional[ExtractionService] = None


def get_extraction_service() -> ExtractionService:
    """Get or create singleton extraction service."""
    global _extraction_service
    if _extraction_service is None:
        _extraction_service = ExtractionService()
    return _extraction_service
