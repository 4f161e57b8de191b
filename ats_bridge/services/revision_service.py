"""
Revision Service - rewrites summary and experience bullets for impact
"""
import json
from typing import List, Optional

from ats_bridge.api.schemas.resume import AnalysisResult, RectifyResponse
from ats_bridge.services.llm_provider import LLMProvider, get_llm_provider
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)

RECTIFY_PROMPT = """You are a senior resume editor.
TASK: Rewrite the professional summary and every experience bullet for maximum impact without losing information.

ZERO-LOSS RULES:
1. Rewrite ALL bullets in Action -> Result form (strong verb, what was done, measurable outcome).
2. Keep 100% of the roles and companies from the input, in the same order, with their dates.
   Never drop or merge a bullet.
3. Never cut text mid-sentence. Every bullet must be a complete sentence.
4. Inject these keywords naturally where the experience supports them: [{keywords}].
{job_description_block}
INPUT EXPERIENCE:
{experience}

INPUT SUMMARY:
{summary}

OUTPUT FORMAT: JSON ONLY with revisedSummary and revisedExperience."""


def keywords_to_inject(analysis: AnalysisResult) -> List[str]:
    """missing_keywords followed by hard_skill_gaps, first occurrence wins"""
    seen = set()
    keywords = []
    for keyword in [*analysis.missing_keywords, *analysis.hard_skill_gaps]:
        key = keyword.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        keywords.append(keyword.strip())
    return keywords


def build_rectify_prompt(analysis: AnalysisResult, job_description: Optional[str] = None) -> str:
    experience = json.dumps(
        [entry.model_dump(exclude_none=True) for entry in analysis.experience],
        ensure_ascii=False,
        indent=2,
    )
    job_description_block = ""
    if job_description and job_description.strip():
        job_description_block = f"\nTARGET JOB DESCRIPTION:\n{job_description.strip()}\n"

    return RECTIFY_PROMPT.format(
        keywords=", ".join(keywords_to_inject(analysis)),
        job_description_block=job_description_block,
        experience=experience,
        summary=analysis.impact_analysis,
    )


class RevisionService:
    """Service for rewriting a previously analyzed resume."""

    def __init__(self, llm_provider: Optional[LLMProvider] = None):
        self.llm_provider = llm_provider or get_llm_provider()

    async def revise(self, analysis: AnalysisResult, job_description: Optional[str] = None) -> RectifyResponse:
        """
        Rewrite summary and experience of a successful analysis.

        Cardinality and keyword injection are requested from the model but not verified.
        """
        instructions = build_rectify_prompt(analysis, job_description)

        logger.info(f"Rectifying {len(analysis.experience)} experience entries")

        response = await self.llm_provider.generate_structured(
            output_type=RectifyResponse,
            instructions=instructions,
        )

        if len(response.revised_experience) < len(analysis.experience):
            logger.warning(
                f"Revision returned {len(response.revised_experience)} entries "
                f"for {len(analysis.experience)} inputs"
            )
        return response


# Singleton
_revision_service: Optional[RevisionService] = None


def get_revision_service() -> RevisionService:
    """Get or create singleton revision service."""
    global _revision_service
    if _revision_service is None:
        _revision_service = RevisionService()
    return _revision_service
