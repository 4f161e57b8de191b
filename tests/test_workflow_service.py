import asyncio

import pytest

from ats_bridge.api.schemas.resume import ResumeSource
from ats_bridge.core.workflow import (
    AnalyzeRequested,
    JobDescriptionUpdated,
    Phase,
    RectifyRequested,
    ResetRequested,
    SourceProvided,
)
from ats_bridge.services.extraction_service import ExtractionService
from ats_bridge.services.revision_service import RevisionService
from ats_bridge.services.workflow_service import SessionStore, WorkflowService
from ats_bridge.utils.exceptions import (
    InvalidTransitionError,
    MalformedResponseError,
    OperationInProgressError,
    SessionNotFoundError,
    TransportFailureError,
)
from conftest import make_analysis, make_rectify_response


@pytest.fixture
def workflow(fake_llm):
    return WorkflowService(
        extraction_service=ExtractionService(llm_provider=fake_llm),
        revision_service=RevisionService(llm_provider=fake_llm),
    )


@pytest.fixture
def session():
    return SessionStore().create()


async def analyzed(workflow, session, fake_llm, **analysis_overrides):
    fake_llm.queue(make_analysis(**analysis_overrides))
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="Jane Doe resume")))
    return await workflow.dispatch(session, AnalyzeRequested())


def test_session_store_lifecycle():
    store = SessionStore()
    session = store.create()

    assert store.get(session.session_id) is session
    assert len(store) == 1

    store.delete(session.session_id)
    assert len(store) == 0
    with pytest.raises(SessionNotFoundError):
        store.get(session.session_id)
    with pytest.raises(SessionNotFoundError):
        store.delete(session.session_id)


@pytest.mark.anyio
async def test_analyze_success(workflow, session, fake_llm):
    state = await analyzed(workflow, session, fake_llm)

    assert state.phase == Phase.ANALYZED
    assert state.analysis.personal_info.name == "Jane Doe"
    assert state.draft.summary == state.analysis.impact_analysis
    assert state.baseline_score == 62
    assert state.last_error is None
    assert session.state is state


@pytest.mark.anyio
async def test_job_description_reaches_extraction(workflow, session, fake_llm):
    fake_llm.queue(make_analysis(mode="specific"))
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="cv")))
    await workflow.dispatch(session, JobDescriptionUpdated(job_description="Rust developer"))

    state = await workflow.dispatch(session, AnalyzeRequested())

    assert state.analysis.mode == "specific"
    assert "Rust developer" in fake_llm.calls[0]["instructions"]


@pytest.mark.anyio
async def test_analyze_failure_becomes_notice(workflow, session, fake_llm):
    fake_llm.queue(TransportFailureError("Gemini call failed: 503"))
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="cv")))

    state = await workflow.dispatch(session, AnalyzeRequested())

    assert state.phase == Phase.SOURCED
    assert state.analysis is None
    assert state.last_error.step == "analyze"
    assert state.last_error.error_type == "TransportFailureError"
    assert "503" in state.last_error.message


@pytest.mark.anyio
async def test_unexpected_error_does_not_leave_session_busy(workflow, session, fake_llm):
    fake_llm.queue(RuntimeError("unexpected"))
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="cv")))

    state = await workflow.dispatch(session, AnalyzeRequested())

    assert not state.is_busy
    assert state.last_error.error_type == "RuntimeError"


@pytest.mark.anyio
async def test_rectify_then_rescore(workflow, session, fake_llm):
    await analyzed(workflow, session, fake_llm, match_score=50)
    before = session.state
    response = make_rectify_response()
    fake_llm.queue(response, make_analysis(match_score=81, impact_score=12))

    state = await workflow.dispatch(session, RectifyRequested())

    assert state.phase == Phase.ANALYZED
    assert state.draft.summary == response.revised_summary
    assert state.draft.experience == response.revised_experience
    assert state.draft.education == before.draft.education
    assert state.analysis.match_score == 81
    assert state.analysis.impact_score == before.analysis.impact_score
    assert state.baseline_score == 50

    rescore_call = fake_llm.calls[-1]
    assert rescore_call["text"].startswith(response.revised_summary + "\n\n")
    assert "Backend Engineer at Acme Corp" in rescore_call["text"]


@pytest.mark.anyio
async def test_rectify_failure_keeps_draft(workflow, session, fake_llm):
    await analyzed(workflow, session, fake_llm)
    draft = session.state.draft
    fake_llm.queue(MalformedResponseError("bad"))

    state = await workflow.dispatch(session, RectifyRequested())

    assert state.phase == Phase.ANALYZED
    assert state.draft == draft
    assert state.last_error.step == "rectify"


@pytest.mark.anyio
async def test_rescore_failure_keeps_revised_draft(workflow, session, fake_llm):
    await analyzed(workflow, session, fake_llm)
    score = session.state.analysis.match_score
    response = make_rectify_response()
    fake_llm.queue(response, TransportFailureError("timeout"))

    state = await workflow.dispatch(session, RectifyRequested())

    assert state.phase == Phase.ANALYZED
    assert state.draft.summary == response.revised_summary
    assert state.analysis.match_score == score
    assert state.last_error.step == "rescore"


@pytest.mark.anyio
async def test_rectify_before_analysis_is_rejected(workflow, session):
    with pytest.raises(InvalidTransitionError):
        await workflow.dispatch(session, RectifyRequested())


@pytest.mark.anyio
async def test_requests_rejected_while_analysis_in_flight(session, analysis):
    release = asyncio.Event()

    class SlowExtraction:
        async def analyze(self, source, job_description=None):
            await release.wait()
            return analysis

    workflow = WorkflowService(extraction_service=SlowExtraction(), revision_service=object())
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="cv")))

    task = asyncio.create_task(workflow.dispatch(session, AnalyzeRequested()))
    await asyncio.sleep(0)

    assert session.state.is_analyzing
    with pytest.raises(OperationInProgressError):
        await workflow.dispatch(session, AnalyzeRequested())
    with pytest.raises(OperationInProgressError):
        await workflow.dispatch(session, ResetRequested())

    release.set()
    state = await task
    assert state.phase == Phase.ANALYZED


@pytest.mark.anyio
async def test_cancelled_analysis_releases_session(session):
    class HangingExtraction:
        async def analyze(self, source, job_description=None):
            await asyncio.Event().wait()

    workflow = WorkflowService(extraction_service=HangingExtraction(), revision_service=object())
    await workflow.dispatch(session, SourceProvided(source=ResumeSource(text="cv")))

    task = asyncio.create_task(workflow.dispatch(session, AnalyzeRequested()))
    await asyncio.sleep(0)
    assert session.state.is_analyzing

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.state.phase == Phase.SOURCED
    assert session.state.last_error.step == "analyze"
    assert session.state.last_error.error_type == "CancelledError"

    state = await workflow.dispatch(session, ResetRequested())
    assert state.phase == Phase.IDLE


@pytest.mark.anyio
async def test_cancelled_rectify_keeps_draft(workflow, session, fake_llm):
    state = await analyzed(workflow, session, fake_llm)
    draft = state.draft

    class HangingRevision:
        async def revise(self, analysis, job_description=None):
            await asyncio.Event().wait()

    workflow.revision_service = HangingRevision()
    task = asyncio.create_task(workflow.dispatch(session, RectifyRequested()))
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.state.phase == Phase.ANALYZED
    assert session.state.draft == draft
    assert session.state.last_error.error_type == "CancelledError"


@pytest.mark.anyio
async def test_reset_after_analysis(workflow, session, fake_llm):
    await analyzed(workflow, session, fake_llm)

    state = await workflow.dispatch(session, ResetRequested())

    assert state.phase == Phase.IDLE
    assert state.source is None
    assert state.draft is None
