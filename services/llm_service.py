"""
Language-model generation (OpenAI).

Every call asks for a JSON object and returns the parsed dict. Any SDK or
parsing failure is raised as ExternalServiceError so callers never see a
half-written record.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Protocol

from openai import OpenAI

from domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)

PROPOSAL_SYSTEM_PROMPT = (
    "You are a professional proposal writer for a web development agency. "
    "Create compelling, detailed proposal content that highlights value and expertise. "
    "Respond with a JSON object."
)

TRANSCRIPT_SYSTEM_PROMPT = (
    "You are an expert meeting analyst for a web development agency. "
    "Analyze meeting transcripts and extract key information for project planning "
    "and client management. Respond with a JSON object."
)

REPORT_SYSTEM_PROMPT = (
    "You are an expert web agency account manager. Generate insightful monthly "
    "reports that demonstrate value to clients. Respond with a JSON object."
)


class LLMService(Protocol):
    def generate_proposal_content(self, context: Mapping[str, Any]) -> dict[str, Any]: ...

    def analyze_transcript(self, transcript: str, meeting_type: str) -> dict[str, Any]: ...

    def generate_report_insights(self, report_data: Mapping[str, Any]) -> dict[str, Any]: ...

    def transcribe_audio(self, audio: bytes, filename: str) -> str: ...


def _proposal_prompt(context: Mapping[str, Any]) -> str:
    return (
        "Generate a professional web development proposal with these details:\n\n"
        f"Client: {context.get('client_name')} ({context.get('company')})\n"
        f"Package: {context.get('package')} (${context.get('price')})\n"
        f"Timeline: {context.get('timeline')}\n"
        f"Features: {', '.join(context.get('features') or [])}\n"
        f"Custom Requirements: {context.get('custom_requirements') or 'None specified'}\n"
        f"Client Notes: {context.get('notes') or 'None'}\n\n"
        "Return a JSON object with: executiveSummary, projectScope, deliverables (array), "
        "timeline (array of {phase, duration, description}), investment "
        "({total, breakdown: [{item, amount}]}), nextSteps (array), terms (array)."
    )


def _transcript_prompt(transcript: str, meeting_type: str) -> str:
    return (
        f"Analyze this {meeting_type} meeting transcript and provide structured insights:\n\n"
        f"{transcript}\n\n"
        "Return a JSON object with: summary, keyPoints (array), actionItems (array), "
        "budget (string), timeline (string), concerns (array), nextSteps (array)."
    )


def _report_prompt(report_data: Mapping[str, Any]) -> str:
    return (
        "Generate a monthly report summary for this client:\n\n"
        f"{json.dumps(report_data, indent=2, default=str)}\n\n"
        "Return a JSON object with: summary, achievements (array), metrics "
        "({uptime, performance, security}), recommendations (array), "
        "nextMonthFocus (array), highlights (array)."
    )


class OpenAILLMService:
    """OpenAI-backed implementation of LLMService."""

    def __init__(self, api_key: str, model: str = "gpt-4o", transcription_model: str = "whisper-1"):
        self._client = OpenAI(api_key=api_key)
        self._model = model
        self._transcription_model = transcription_model

    def _complete_json(self, system_prompt: str, user_prompt: str, temperature: float, purpose: str) -> dict[str, Any]:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=temperature,
            )
            content = response.choices[0].message.content or "{}"
            parsed = json.loads(content)
        except Exception as exc:
            logger.error("LLM request failed", extra={"purpose": purpose, "error": str(exc)})
            raise ExternalServiceError(f"Failed to generate {purpose}: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExternalServiceError(f"Failed to generate {purpose}: expected a JSON object")
        return parsed

    def generate_proposal_content(self, context: Mapping[str, Any]) -> dict[str, Any]:
        return self._complete_json(PROPOSAL_SYSTEM_PROMPT, _proposal_prompt(context), 0.7, "proposal content")

    def analyze_transcript(self, transcript: str, meeting_type: str) -> dict[str, Any]:
        return self._complete_json(
            TRANSCRIPT_SYSTEM_PROMPT, _transcript_prompt(transcript, meeting_type), 0.3, "transcript analysis"
        )

    def generate_report_insights(self, report_data: Mapping[str, Any]) -> dict[str, Any]:
        return self._complete_json(REPORT_SYSTEM_PROMPT, _report_prompt(report_data), 0.7, "report insights")

    def transcribe_audio(self, audio: bytes, filename: str) -> str:
        try:
            result = self._client.audio.transcriptions.create(
                model=self._transcription_model,
                file=(filename, audio),
                language="en",
            )
        except Exception as exc:
            logger.error("Transcription failed", extra={"filename": filename, "error": str(exc)})
            raise ExternalServiceError(f"Failed to transcribe {filename}: {exc}") from exc
        return result.text


__all__ = ["LLMService", "OpenAILLMService"]
