"""
Workflow Service - drives the resume workflow state machine

The state machine in core/workflow.py only describes what should happen.
This driver carries the effects out: it awaits the extraction/revision calls
one after another and feeds their outcome back as events until no effect is
left. Delegate failures never escape a dispatch; they become failure events,
which the state machine turns into a user-visible notice.

All mutation happens on the event loop thread. The busy phase is entered
before the first await, so a duplicate request for the same session is
rejected instead of queued. A cancelled step is committed as a failure
before the cancellation propagates.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from ats_bridge.core.workflow import (
    AnalysisCompleted,
    AnalysisFailed,
    Effect,
    Event,
    NotifyFailure,
    RectifyCompleted,
    RectifyFailed,
    RescoreCompleted,
    RescoreFailed,
    RunAnalysis,
    RunRectify,
    RunRescore,
    WorkflowState,
    transition,
)
from ats_bridge.api.schemas.resume import ResumeSource
from ats_bridge.services.extraction_service import ExtractionService, get_extraction_service
from ats_bridge.services.revision_service import RevisionService, get_revision_service
from ats_bridge.utils.exceptions import ATSBridgeException, SessionNotFoundError
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WorkflowSession:
    """One user's workflow: an id and the current state value"""
    session_id: str
    state: WorkflowState = field(default_factory=WorkflowState)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


class SessionStore:
    """In-memory session registry (no persistence)"""

    def __init__(self):
        self._sessions: Dict[str, WorkflowSession] = {}

    def create(self) -> WorkflowSession:
        session = WorkflowSession(session_id=uuid.uuid4().hex)
        self._sessions[session.session_id] = session
        logger.info(f"Created workflow session {session.session_id}")
        return session

    def get(self, session_id: str) -> WorkflowSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)
        logger.info(f"Deleted workflow session {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)


class WorkflowService:
    """Executes workflow events and their effects for a session."""

    def __init__(
        self,
        extraction_service: Optional[ExtractionService] = None,
        revision_service: Optional[RevisionService] = None
    ):
        self.extraction_service = extraction_service or get_extraction_service()
        self.revision_service = revision_service or get_revision_service()

    async def dispatch(self, session: WorkflowSession, event: Event) -> WorkflowState:
        """
        Apply an event and run every effect it leads to.

        Raises:
            InvalidTransitionError / OperationInProgressError: the event was rejected;
            the session state is untouched.
        """
        result = transition(session.state, event)
        self._commit(session, result.state)

        effect = result.effect
        while effect is not None:
            try:
                follow_up = await self._execute(effect)
            except asyncio.CancelledError:
                self._abort(session, effect)
                raise
            if follow_up is None:
                break
            result = transition(session.state, follow_up)
            self._commit(session, result.state)
            effect = result.effect

        return session.state

    def _abort(self, session: WorkflowSession, effect: Effect) -> None:
        """Leave the busy phase when the running step is cancelled."""
        if isinstance(effect, RunAnalysis):
            event = AnalysisFailed(message="Analysis was cancelled", error_type="CancelledError")
        elif isinstance(effect, RunRectify):
            event = RectifyFailed(message="Rectification was cancelled", error_type="CancelledError")
        elif isinstance(effect, RunRescore):
            event = RescoreFailed(message="Re-score was cancelled", error_type="CancelledError")
        else:
            return

        logger.warning(f"Session {session.session_id}: {event.message}")
        self._commit(session, transition(session.state, event).state)

    def _commit(self, session: WorkflowSession, state: WorkflowState) -> None:
        if state.phase != session.state.phase:
            logger.debug(f"Session {session.session_id}: {session.state.phase.value} -> {state.phase.value}")
        session.state = state
        session.updated_at = _now()

    async def _execute(self, effect: Effect) -> Optional[Event]:
        if isinstance(effect, RunAnalysis):
            try:
                analysis = await self.extraction_service.analyze(effect.source, effect.job_description)
            except Exception as e:
                return AnalysisFailed(*self._describe_failure("Analysis", e))
            return AnalysisCompleted(result=analysis)

        if isinstance(effect, RunRectify):
            try:
                response = await self.revision_service.revise(effect.analysis, effect.job_description)
            except Exception as e:
                return RectifyFailed(*self._describe_failure("Rectification", e))
            return RectifyCompleted(response=response)

        if isinstance(effect, RunRescore):
            if not effect.text.strip():
                return RescoreFailed(message="Revised resume is empty", error_type="InvalidSourceError")
            try:
                rescored = await self.extraction_service.analyze(
                    ResumeSource(text=effect.text), effect.job_description
                )
            except Exception as e:
                return RescoreFailed(*self._describe_failure("Re-score", e))
            return RescoreCompleted(result=rescored)

        if isinstance(effect, NotifyFailure):
            notice = effect.notice
            logger.error(f"Workflow step '{notice.step}' failed ({notice.error_type}): {notice.message}")
            return None

        raise TypeError(f"Unknown workflow effect: {effect!r}")

    @staticmethod
    def _describe_failure(step: str, error: Exception) -> Tuple[str, str]:
        """(message, error_type) for a failed step; unexpected errors are logged with traceback"""
        if isinstance(error, ATSBridgeException):
            logger.warning(f"{step} failed: {error.message}")
            return error.message, error.__class__.__name__
        logger.error(f"{step} failed unexpectedly: {error}", exc_info=True)
        return str(error) or error.__class__.__name__, error.__class__.__name__


# Singletons
_session_store: Optional[SessionStore] = None
_workflow_service: Optional[WorkflowService] = None


def get_session_store() -> SessionStore:
    """Get or create singleton session store."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


def get_workflow_service() -> WorkflowService:
    """Get or create singleton workflow service."""
    global _workflow_service
    if _workflow_service is None:
        _workflow_service = WorkflowService()
    return _workflow_service
