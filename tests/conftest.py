import os

# Must be set before ats_bridge.utils.config is imported anywhere
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["AI_PROVIDER"] = "gemini"
os.environ.setdefault("GOOGLE_API_KEY", "test-key")

from typing import Any, List, Optional

import pytest

from ats_bridge.api.schemas.resume import AnalysisResult, RectifyResponse


SAMPLE_ANALYSIS = {
    "match_score": 62,
    "personal_info": {
        "name": "Jane Doe",
        "role": "Backend Engineer",
        "email": "jane@example.com",
        "phone": "+1 555 0100",
        "location": "Berlin, Germany",
        "linkedin": "https://linkedin.com/in/janedoe",
        "links": ["https://github.com/janedoe"],
    },
    "education": [
        {"institution": "TU Berlin", "degree": "MSc Computer Science", "date": "2014 - 2016"},
        {"institution": "Uni Hamburg", "degree": "BSc Informatics", "date": "2011 - 2014"},
    ],
    "experience": [
        {
            "company": "Acme Corp",
            "role": "Backend Engineer",
            "date": "2020 - Present",
            "bullets": ["Built billing APIs", "Maintained CI pipelines"],
        },
        {
            "company": "Globex",
            "role": "Software Developer",
            "date": "2016 - 2020",
            "bullets": ["Wrote internal tools"],
        },
    ],
    "skills": [
        {"category": "Languages", "items": ["Python", "Go"]},
        {"category": "Cloud & DevOps", "items": ["Docker"]},
    ],
    "certifications": ["AWS Certified Developer"],
    "missing_keywords": ["Kubernetes", "Terraform"],
    "hard_skill_gaps": ["kubernetes", "AWS Lambda"],
    "soft_skill_gaps": ["Stakeholder management"],
    "formatting_issues": ["Two-column layout"],
    "impact_analysis": "Backend engineer with seven years of API and tooling work.",
    "impact_score": 55,
    "original_text": "Jane Doe\nBackend Engineer\n...",
    "annotations": [
        {
            "text_segment": "Built billing APIs",
            "critique": "No measurable outcome",
            "severity": "medium",
            "suggested_fix": "Built billing APIs processing 2M invoices/month",
        }
    ],
    "mode": "generalized",
}


def make_analysis(**overrides) -> AnalysisResult:
    return AnalysisResult.model_validate({**SAMPLE_ANALYSIS, **overrides})


def make_rectify_response(**overrides) -> RectifyResponse:
    data = {
        "revisedSummary": "Backend engineer who cut invoice latency by 40%.",
        "revisedExperience": [
            {
                "company": "Acme Corp",
                "role": "Backend Engineer",
                "date": "2020 - Present",
                "bullets": [
                    "Built Kubernetes-hosted billing APIs, processing 2M invoices per month",
                    "Rebuilt CI pipelines with Terraform, cutting build time by 30%",
                ],
            },
            {
                "company": "Globex",
                "role": "Software Developer",
                "date": "2016 - 2020",
                "bullets": ["Wrote internal tools that saved 10 hours of manual work weekly"],
            },
        ],
    }
    data.update(overrides)
    return RectifyResponse.model_validate(data)


class FakeLLMProvider:
    """Stands in for LLMProvider: returns queued results in order and records every call."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate_structured(self, output_type, instructions, document=None, text=None):
        self.calls.append({
            "output_type": output_type,
            "instructions": instructions,
            "document": document,
            "text": text,
        })
        if not self.responses:
            raise AssertionError("FakeLLMProvider has no queued response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def analysis():
    return make_analysis()


@pytest.fixture
def rectify_response():
    return make_rectify_response()
