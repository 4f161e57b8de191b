import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.test import TestModel as StubModel

from ats_bridge.api.schemas.resume import AnalysisResult, DocumentPayload, RectifyResponse
from ats_bridge.services.llm_provider import LLMProvider
from ats_bridge.utils.config import settings
from ats_bridge.utils.exceptions import (
    EmptyResponseError,
    MalformedResponseError,
    MissingCredentialError,
    TransportFailureError,
)
from conftest import SAMPLE_ANALYSIS


def gemini_client(text=None, side_effect=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=text), side_effect=side_effect
    )
    return client


@pytest.fixture(autouse=True)
def gemini_settings(monkeypatch):
    monkeypatch.setattr(settings, "AI_PROVIDER", "gemini")
    monkeypatch.setattr(settings, "GOOGLE_API_KEY", "test-key")


@pytest.mark.anyio
async def test_valid_response_is_parsed():
    client = gemini_client(json.dumps(SAMPLE_ANALYSIS))
    provider = LLMProvider(client=client)

    result = await provider.generate_structured(AnalysisResult, "Analyze", text="Jane Doe")

    assert isinstance(result, AnalysisResult)
    assert result.personal_info.name == "Jane Doe"
    assert [e.company for e in result.experience] == ["Acme Corp", "Globex"]


@pytest.mark.anyio
async def test_request_carries_schema_and_text_payload():
    client = gemini_client(json.dumps(SAMPLE_ANALYSIS))
    provider = LLMProvider(client=client)

    await provider.generate_structured(AnalysisResult, "SYSTEM PROMPT", text="Jane Doe")

    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == settings.GEMINI_MODEL
    config = kwargs["config"]
    assert config.response_mime_type == "application/json"
    assert config.response_schema is AnalysisResult
    assert config.thinking_config.thinking_budget == settings.GEMINI_THINKING_BUDGET

    parts = kwargs["contents"][0].parts
    assert parts[0].text == "SYSTEM PROMPT"
    assert parts[1].text == "CV CONTENT:\nJane Doe"


@pytest.mark.anyio
async def test_document_is_sent_inline():
    client = gemini_client(json.dumps(SAMPLE_ANALYSIS))
    provider = LLMProvider(client=client)
    document = DocumentPayload.from_bytes(b"%PDF-1.4 resume", "application/pdf", "cv.pdf")

    await provider.generate_structured(AnalysisResult, "Analyze", document=document)

    parts = client.aio.models.generate_content.call_args.kwargs["contents"][0].parts
    assert len(parts) == 2
    assert parts[1].inline_data.mime_type == "application/pdf"
    assert parts[1].inline_data.data == b"%PDF-1.4 resume"


@pytest.mark.anyio
async def test_instructions_only_request_has_single_part():
    client = gemini_client(json.dumps({"revisedSummary": "s", "revisedExperience": []}))
    provider = LLMProvider(client=client)

    result = await provider.generate_structured(RectifyResponse, "Rewrite")

    assert result.revised_summary == "s"
    parts = client.aio.models.generate_content.call_args.kwargs["contents"][0].parts
    assert len(parts) == 1


@pytest.mark.anyio
async def test_missing_credential_fails_before_any_call(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_API_KEY", "   ")
    client = gemini_client(json.dumps(SAMPLE_ANALYSIS))
    provider = LLMProvider(client=client)

    with pytest.raises(MissingCredentialError) as exc_info:
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")

    assert exc_info.value.status_code == 503
    assert exc_info.value.details == {"credential": "GOOGLE_API_KEY"}
    client.aio.models.generate_content.assert_not_called()


@pytest.mark.anyio
@pytest.mark.parametrize("text", [None, "", "  \n "])
async def test_empty_response(text):
    provider = LLMProvider(client=gemini_client(text))

    with pytest.raises(EmptyResponseError):
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")


@pytest.mark.anyio
async def test_invalid_json_is_malformed():
    provider = LLMProvider(client=gemini_client('{"match_score": 80, '))

    with pytest.raises(MalformedResponseError):
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")


@pytest.mark.anyio
async def test_non_object_json_is_malformed():
    provider = LLMProvider(client=gemini_client("[1, 2, 3]"))

    with pytest.raises(MalformedResponseError):
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")


@pytest.mark.anyio
async def test_missing_required_field_is_malformed():
    data = dict(SAMPLE_ANALYSIS)
    del data["annotations"]
    provider = LLMProvider(client=gemini_client(json.dumps(data)))

    with pytest.raises(MalformedResponseError) as exc_info:
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")

    locs = [err["loc"] for err in exc_info.value.details["errors"]]
    assert ["annotations"] in locs


@pytest.mark.anyio
async def test_type_mismatch_is_not_coerced():
    data = {**SAMPLE_ANALYSIS, "match_score": "85"}
    provider = LLMProvider(client=gemini_client(json.dumps(data)))

    with pytest.raises(MalformedResponseError):
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")


@pytest.mark.anyio
async def test_code_fences_are_stripped():
    text = "```json\n" + json.dumps(SAMPLE_ANALYSIS) + "\n```"
    provider = LLMProvider(client=gemini_client(text))

    result = await provider.generate_structured(AnalysisResult, "Analyze", text="cv")
    assert result.match_score == 62


@pytest.mark.anyio
async def test_transport_failure_is_wrapped():
    provider = LLMProvider(client=gemini_client(side_effect=RuntimeError("quota exceeded")))

    with pytest.raises(TransportFailureError) as exc_info:
        await provider.generate_structured(AnalysisResult, "Analyze", text="cv")

    assert "quota exceeded" in exc_info.value.message
    assert exc_info.value.details == {"provider": "gemini"}


# -----------------------------------------------------------------------------
# Pydantic AI providers
# -----------------------------------------------------------------------------

@pytest.fixture
def openai_settings(monkeypatch):
    monkeypatch.setattr(settings, "AI_PROVIDER", "openai")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")


@pytest.mark.anyio
async def test_agent_returns_structured_output(openai_settings):
    model = StubModel(custom_output_args={
        "revisedSummary": "Sharper summary",
        "revisedExperience": [{"company": "Acme", "role": "Engineer", "bullets": ["Did X, gaining Y"]}],
    })
    provider = LLMProvider(model=model)

    result = await provider.generate_structured(RectifyResponse, "Rewrite")

    assert not provider.uses_native_schema
    assert result.revised_summary == "Sharper summary"
    assert result.revised_experience[0].company == "Acme"


@pytest.mark.anyio
async def test_agent_schema_mismatch_is_malformed(openai_settings):
    provider = LLMProvider(model=StubModel(custom_output_args={"unexpected": True}))

    with pytest.raises(MalformedResponseError):
        await provider.generate_structured(RectifyResponse, "Rewrite")


@pytest.mark.anyio
async def test_agent_transport_failure_is_wrapped(openai_settings):
    def broken(messages, info):
        raise RuntimeError("connection reset")

    provider = LLMProvider(model=FunctionModel(broken))

    with pytest.raises(TransportFailureError) as exc_info:
        await provider.generate_structured(RectifyResponse, "Rewrite")

    assert exc_info.value.details == {"provider": "openai"}


@pytest.mark.anyio
async def test_agent_missing_credential(monkeypatch):
    monkeypatch.setattr(settings, "AI_PROVIDER", "anthropic")
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", None)
    provider = LLMProvider(model=StubModel())

    with pytest.raises(MissingCredentialError) as exc_info:
        await provider.generate_structured(RectifyResponse, "Rewrite")

    assert exc_info.value.details == {"credential": "ANTHROPIC_API_KEY"}


def test_unsupported_provider(monkeypatch):
    monkeypatch.setattr(settings, "AI_PROVIDER", "mistral")
    provider = LLMProvider()

    with pytest.raises(ValueError):
        provider.model
