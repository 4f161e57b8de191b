import pytest

from ats_bridge.api.schemas.resume import AnalysisResult, DocumentPayload, ResumeSource
from ats_bridge.services.extraction_service import (
    ExtractionService,
    build_extraction_prompt,
    resolve_mode,
)
from ats_bridge.utils.exceptions import MalformedResponseError, TransportFailureError
from conftest import make_analysis


@pytest.mark.parametrize("job_description, expected", [
    (None, "generalized"),
    ("", "generalized"),
    ("   \n\t", "generalized"),
    ("Senior Python engineer", "specific"),
])
def test_resolve_mode(job_description, expected):
    assert resolve_mode(job_description) == expected


def test_specific_prompt_embeds_job_description():
    prompt = build_extraction_prompt("  Senior Python engineer, Kubernetes  ")

    assert "SPECIFIC ALIGNMENT" in prompt
    assert "TARGET JOB DESCRIPTION:\nSenior Python engineer, Kubernetes" in prompt
    assert '"mode" to "specific"' in prompt


def test_generalized_prompt_has_no_job_description():
    prompt = build_extraction_prompt(None)

    assert "GENERAL" in prompt
    assert "TARGET JOB DESCRIPTION" not in prompt
    assert '"mode" to "generalized"' in prompt


@pytest.mark.anyio
async def test_text_source_is_passed_as_text(fake_llm):
    fake_llm.queue(make_analysis())
    service = ExtractionService(llm_provider=fake_llm)

    result = await service.analyze(ResumeSource(text="Jane Doe resume"))

    call = fake_llm.calls[0]
    assert call["output_type"] is AnalysisResult
    assert call["text"] == "Jane Doe resume"
    assert call["document"] is None
    assert result.mode == "generalized"


@pytest.mark.anyio
async def test_file_source_is_passed_as_document(fake_llm):
    fake_llm.queue(make_analysis(mode="specific"))
    service = ExtractionService(llm_provider=fake_llm)
    payload = DocumentPayload.from_bytes(b"%PDF-1.4", "application/pdf", "cv.pdf")

    await service.analyze(ResumeSource(file=payload), job_description="Data engineer")

    call = fake_llm.calls[0]
    assert call["document"] == payload
    assert call["text"] is None
    assert "Data engineer" in call["instructions"]


@pytest.mark.anyio
async def test_mode_follows_job_description_not_model(fake_llm):
    fake_llm.queue(make_analysis(mode="generalized"), make_analysis(mode="specific"))
    service = ExtractionService(llm_provider=fake_llm)

    specific = await service.analyze(ResumeSource(text="cv"), job_description="Go developer")
    generalized = await service.analyze(ResumeSource(text="cv"), job_description="  ")

    assert specific.mode == "specific"
    assert generalized.mode == "generalized"


@pytest.mark.anyio
async def test_sequence_order_and_length_preserved(fake_llm, analysis):
    fake_llm.queue(analysis)
    service = ExtractionService(llm_provider=fake_llm)

    result = await service.analyze(ResumeSource(text="cv"))

    assert [e.company for e in result.experience] == ["Acme Corp", "Globex"]
    assert result.experience[0].bullets == ["Built billing APIs", "Maintained CI pipelines"]
    assert [e.institution for e in result.education] == ["TU Berlin", "Uni Hamburg"]
    assert result.missing_keywords == ["Kubernetes", "Terraform"]


@pytest.mark.anyio
@pytest.mark.parametrize("error", [
    MalformedResponseError("bad json"),
    TransportFailureError("boom"),
])
async def test_delegate_failures_propagate(fake_llm, error):
    fake_llm.queue(error)
    service = ExtractionService(llm_provider=fake_llm)

    with pytest.raises(type(error)):
        await service.analyze(ResumeSource(text="cv"))
