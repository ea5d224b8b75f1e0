"""
Domain: Meetings and discovery-call analysis.

A discovery call qualifies its Lead when the analysis shows any of:
- a budget that mentions a currency amount
- an urgent timeline ("urgent" / "soon")
- technical requirements among the key points (ecommerce / CMS / integration)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple
from uuid import UUID

_CURRENCY_MARKERS = ("$", "£", "€")
_URGENT_MARKERS = ("urgent", "soon")
_TECHNICAL_MARKERS = ("ecommerce", "e-commerce", "cms", "integration")

AUDIO_EXTENSIONS = (".mp3", ".m4a", ".wav", ".mp4", ".mov")


class MeetingType(str, Enum):
    DISCOVERY = "discovery"
    KICKOFF = "kickoff"
    REVIEW = "review"


@dataclass(frozen=True, slots=True)
class Meeting:
    meeting_id: UUID
    type: MeetingType
    lead_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    transcript_path: Optional[str] = None
    ai_summary: Optional[str] = None
    action_items: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_discovery_for_lead(self) -> bool:
        return self.type is MeetingType.DISCOVERY and self.lead_id is not None


def _as_str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


@dataclass(frozen=True, slots=True)
class TranscriptAnalysis:
    """Structured LLM analysis of a meeting transcript."""

    summary: str = ""
    key_points: Tuple[str, ...] = ()
    action_items: Tuple[str, ...] = ()
    budget: str = ""
    timeline: str = ""
    concerns: Tuple[str, ...] = ()
    next_steps: Tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TranscriptAnalysis":
        return cls(
            summary=str(data.get("summary") or ""),
            key_points=tuple(_as_str_list(data.get("keyPoints"))),
            action_items=tuple(_as_str_list(data.get("actionItems"))),
            budget=str(data.get("budget") or ""),
            timeline=str(data.get("timeline") or ""),
            concerns=tuple(_as_str_list(data.get("concerns"))),
            next_steps=tuple(_as_str_list(data.get("nextSteps"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "actionItems": list(self.action_items),
            "budget": self.budget,
            "timeline": self.timeline,
            "concerns": list(self.concerns),
            "nextSteps": list(self.next_steps),
        }


def qualification_reasons(analysis: TranscriptAnalysis) -> List[str]:
    """Reasons the discovery call qualifies the lead; empty means it does not."""

    reasons: List[str] = []
    if any(marker in analysis.budget for marker in _CURRENCY_MARKERS):
        reasons.append("Budget discussed.")
    timeline = analysis.timeline.lower()
    if any(marker in timeline for marker in _URGENT_MARKERS):
        reasons.append("Urgent timeline.")
    if any(
        marker in point.lower() for point in analysis.key_points for marker in _TECHNICAL_MARKERS
    ):
        reasons.append("Technical requirements identified.")
    return reasons


def is_audio_file(path: str) -> bool:
    return path.lower().endswith(AUDIO_EXTENSIONS)
