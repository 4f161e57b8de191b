"""
Resume workflow state machine

Pure transitions from (state, event) to (new state, effect). Nothing here
performs IO: effects only describe the delegate call (or user notification)
the driver in services/workflow_service.py must carry out, and the result of
that call comes back in as another event.

    idle -> sourced -> analyzing -> analyzed -> revising -> revised -> analyzed

Updates are wholesale: every transition replaces whole structures (analysis,
draft, draft sections), never individual fields inside them, except the
re-score which replaces exactly analysis.match_score.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union

from ats_bridge.api.schemas.resume import (
    AnalysisResult,
    ExperienceEntry,
    RectifyResponse,
    ResumeDraft,
    ResumeSource,
)
from ats_bridge.utils.exceptions import (
    ATSBridgeException,
    InvalidTransitionError,
    OperationInProgressError,
)


class Phase(str, Enum):
    IDLE = "idle"
    SOURCED = "sourced"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    REVISING = "revising"
    REVISED = "revised"


BUSY_PHASES = (Phase.ANALYZING, Phase.REVISING, Phase.REVISED)

DRAFT_SECTIONS = ("personal_info", "education", "experience", "skills", "certifications", "summary")


@dataclass(frozen=True)
class FailureNotice:
    """User-visible notification of a failed workflow step"""
    step: str
    message: str
    error_type: str


@dataclass(frozen=True)
class WorkflowState:
    phase: Phase = Phase.IDLE
    source: Optional[ResumeSource] = None
    job_description: str = ""
    analysis: Optional[AnalysisResult] = None
    draft: Optional[ResumeDraft] = None
    baseline_score: Optional[float] = None
    last_error: Optional[FailureNotice] = None

    @property
    def is_analyzing(self) -> bool:
        return self.phase == Phase.ANALYZING

    @property
    def is_revising(self) -> bool:
        # the re-score belongs to the rectify operation
        return self.phase in (Phase.REVISING, Phase.REVISED)

    @property
    def is_busy(self) -> bool:
        return self.phase in BUSY_PHASES


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class SourceProvided:
    source: ResumeSource


@dataclass(frozen=True)
class JobDescriptionUpdated:
    job_description: str


@dataclass(frozen=True)
class AnalyzeRequested:
    pass


@dataclass(frozen=True)
class AnalysisCompleted:
    result: AnalysisResult


@dataclass(frozen=True)
class AnalysisFailed:
    message: str
    error_type: str = "Error"


@dataclass(frozen=True)
class RectifyRequested:
    pass


@dataclass(frozen=True)
class RectifyCompleted:
    response: RectifyResponse


@dataclass(frozen=True)
class RectifyFailed:
    message: str
    error_type: str = "Error"


@dataclass(frozen=True)
class RescoreCompleted:
    result: AnalysisResult


@dataclass(frozen=True)
class RescoreFailed:
    message: str
    error_type: str = "Error"


@dataclass(frozen=True)
class DraftEdited:
    """Replace one or more whole draft sections"""
    sections: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResetRequested:
    pass


Event = Union[
    SourceProvided, JobDescriptionUpdated, AnalyzeRequested, AnalysisCompleted, AnalysisFailed,
    RectifyRequested, RectifyCompleted, RectifyFailed, RescoreCompleted, RescoreFailed,
    DraftEdited, ResetRequested,
]


# =============================================================================
# Effects
# =============================================================================

@dataclass(frozen=True)
class RunAnalysis:
    source: ResumeSource
    job_description: str


@dataclass(frozen=True)
class RunRectify:
    analysis: AnalysisResult
    job_description: str


@dataclass(frozen=True)
class RunRescore:
    text: str
    job_description: str


@dataclass(frozen=True)
class NotifyFailure:
    notice: FailureNotice


Effect = Union[RunAnalysis, RunRectify, RunRescore, NotifyFailure]


class Transition(NamedTuple):
    state: WorkflowState
    effect: Optional[Effect] = None


# =============================================================================
# Helpers
# =============================================================================

def render_plain_text(summary: str, experience: List[ExperienceEntry]) -> str:
    """Plain-text rendering of summary + experience used to re-score a revision"""
    entries = "\n".join(
        f"{entry.role} at {entry.company}\n" + "\n".join(entry.bullets)
        for entry in experience
    )
    return f"{summary}\n\n{entries}"


def _fail(state: WorkflowState, step: str, message: str, error_type: str, phase: Phase) -> Transition:
    notice = FailureNotice(step=step, message=message, error_type=error_type)
    return Transition(replace(state, phase=phase, last_error=notice), NotifyFailure(notice))


def _reject(state: WorkflowState, event: Event) -> ATSBridgeException:
    if state.is_busy:
        return OperationInProgressError(state.phase.value)
    return InvalidTransitionError(type(event).__name__, state.phase.value)


# =============================================================================
# Transition function
# =============================================================================

def transition(state: WorkflowState, event: Event) -> Transition:
    """
    Apply one event to a state.

    Raises:
        OperationInProgressError: a user event arrived while a delegate call is in flight
        InvalidTransitionError: the event does not apply to the current phase
    """
    phase = state.phase

    if isinstance(event, SourceProvided):
        if phase not in (Phase.IDLE, Phase.SOURCED, Phase.ANALYZED):
            raise _reject(state, event)
        # a new resume starts a new cycle
        return Transition(WorkflowState(
            phase=Phase.SOURCED,
            source=event.source,
            job_description=state.job_description,
        ))

    if isinstance(event, JobDescriptionUpdated):
        if state.is_busy:
            raise _reject(state, event)
        return Transition(replace(state, job_description=event.job_description))

    if isinstance(event, AnalyzeRequested):
        if phase not in (Phase.SOURCED, Phase.ANALYZED) or state.source is None:
            raise _reject(state, event)
        return Transition(
            replace(state, phase=Phase.ANALYZING, last_error=None),
            RunAnalysis(source=state.source, job_description=state.job_description),
        )

    if isinstance(event, AnalysisCompleted):
        if phase != Phase.ANALYZING:
            raise _reject(state, event)
        result = event.result
        return Transition(replace(
            state,
            phase=Phase.ANALYZED,
            analysis=result,
            draft=ResumeDraft.from_analysis(result),
            baseline_score=result.match_score,
            last_error=None,
        ))

    if isinstance(event, AnalysisFailed):
        if phase != Phase.ANALYZING:
            raise _reject(state, event)
        back_to = Phase.ANALYZED if state.analysis is not None else Phase.SOURCED
        return _fail(state, "analyze", event.message, event.error_type, back_to)

    if isinstance(event, RectifyRequested):
        if phase != Phase.ANALYZED or state.analysis is None or state.draft is None:
            raise _reject(state, event)
        return Transition(
            replace(state, phase=Phase.REVISING, last_error=None),
            RunRectify(analysis=state.analysis, job_description=state.job_description),
        )

    if isinstance(event, RectifyCompleted):
        if phase != Phase.REVISING:
            raise _reject(state, event)
        draft = state.draft.model_copy(update={
            "summary": event.response.revised_summary,
            "experience": event.response.revised_experience,
        })
        return Transition(
            replace(state, phase=Phase.REVISED, draft=draft),
            RunRescore(
                text=render_plain_text(draft.summary, draft.experience),
                job_description=state.job_description,
            ),
        )

    if isinstance(event, RectifyFailed):
        if phase != Phase.REVISING:
            raise _reject(state, event)
        return _fail(state, "rectify", event.message, event.error_type, Phase.ANALYZED)

    if isinstance(event, RescoreCompleted):
        if phase != Phase.REVISED:
            raise _reject(state, event)
        analysis = state.analysis.model_copy(update={"match_score": event.result.match_score})
        return Transition(replace(state, phase=Phase.ANALYZED, analysis=analysis))

    if isinstance(event, RescoreFailed):
        if phase != Phase.REVISED:
            raise _reject(state, event)
        # the revised draft stays; only the score update is lost
        return _fail(state, "rescore", event.message, event.error_type, Phase.ANALYZED)

    if isinstance(event, DraftEdited):
        if phase != Phase.ANALYZED or state.draft is None:
            raise _reject(state, event)
        unknown = set(event.sections) - set(DRAFT_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown draft sections: {', '.join(sorted(unknown))}")
        draft = ResumeDraft.model_validate({**dict(state.draft), **event.sections})
        return Transition(replace(state, draft=draft))

    if isinstance(event, ResetRequested):
        if state.is_busy:
            raise _reject(state, event)
        return Transition(WorkflowState())

    raise TypeError(f"Unknown workflow event: {event!r}")
