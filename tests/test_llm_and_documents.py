"""
Tests for `services/llm_service.py` (OpenAI client stubbed) and
`services/document_service.py` (ReportLab rendering).
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from domain.errors import ExternalServiceError
from services.document_service import render_proposal_pdf, render_report_pdf
from services.llm_service import OpenAILLMService


class _StubCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _service(completions: _StubCompletions, transcript="hello") -> OpenAILLMService:
    service = OpenAILLMService(api_key="sk-test", model="gpt-4o")
    transcriptions = SimpleNamespace(create=lambda **kwargs: SimpleNamespace(text=transcript))
    service._client = SimpleNamespace(
        chat=SimpleNamespace(completions=completions),
        audio=SimpleNamespace(transcriptions=transcriptions),
    )
    return service


def test_generate_proposal_content_requests_json() -> None:
    completions = _StubCompletions(content='{"executiveSummary": "Hi"}')

    content = _service(completions).generate_proposal_content({"client_name": "Jane", "features": ["CMS"]})

    assert content == {"executiveSummary": "Hi"}
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["model"] == "gpt-4o"


@pytest.mark.parametrize(
    "completions",
    [
        _StubCompletions(content="not json"),
        _StubCompletions(content="[1, 2]"),
        _StubCompletions(error=RuntimeError("rate limited")),
    ],
)
def test_llm_failures_raise_external_service_error(completions) -> None:
    with pytest.raises(ExternalServiceError):
        _service(completions).analyze_transcript("transcript", "discovery")


def test_transcribe_audio_returns_text() -> None:
    assert _service(_StubCompletions(), transcript="We need a store.").transcribe_audio(b"a", "call.m4a") == "We need a store."


def test_render_proposal_pdf_escapes_markup() -> None:
    pdf = render_proposal_pdf(
        proposal_number="PROP-2025-0001",
        client_name="Jane <Doe>",
        company="Acme & Sons",
        package="standard",
        price=15000,
        currency="USD",
        content={
            "executiveSummary": "Revenue < costs & growth > 0",
            "deliverables": ["Site", "CMS"],
            "timeline": [{"phase": "Design", "duration": "2 weeks", "description": "Wireframes"}],
            "nextSteps": ["Sign"],
        },
    )

    assert pdf.startswith(b"%PDF")


def test_render_report_pdf_with_empty_sections() -> None:
    pdf = render_report_pdf("Acme", "February 2025", {"support_tickets": {}}, {})

    assert pdf.startswith(b"%PDF")
