"""
Meeting transcription and discovery-call analysis.

A recording is transcribed, analyzed by the LLM, and the transcript stored as
an asset. Discovery calls linked to a Lead can qualify and convert the Lead
when the analysis shows budget, urgency or technical scope.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from domain.errors import NotFoundError, ValidationError
from domain.lead import LeadStatus
from domain.meeting import Meeting, TranscriptAnalysis, is_audio_file, qualification_reasons
from repositories.lead_repository import get_lead_by_id, update_lead_status
from repositories.meeting_repository import get_meeting_by_id, insert_asset, record_meeting_transcript
from repositories.storage_repository import download_file, upload_file
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext
from services.conversion_service import ConversionResult, convert_lead

logger = logging.getLogger(__name__)

RECORDINGS_PREFIX = "recordings/"
DEFAULT_AUDIO_FILENAME = "audio.m4a"


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    meeting_id: UUID
    transcript: str
    analysis: TranscriptAnalysis
    transcript_path: str
    lead_qualified: bool = False
    conversion: Optional[ConversionResult] = None


def transcript_path(meeting_id: UUID) -> str:
    return f"transcripts/meeting-{meeting_id}-transcript.txt"


def meeting_id_from_recording_path(path: str) -> Optional[UUID]:
    """
    Meeting id for an uploaded recording at `recordings/meeting-<id>/<file>`.

    Returns None for non-audio files, other folders, or a malformed id.
    """

    if RECORDINGS_PREFIX not in path or not is_audio_file(path):
        return None
    parts = path.split(RECORDINGS_PREFIX, 1)[1].split("/")
    if len(parts) < 2:
        return None
    try:
        return UUID(parts[0].replace("meeting-", "", 1))
    except ValueError:
        return None


def _load_audio(ctx: ServiceContext, storage_path: Optional[str], audio_base64: Optional[str]) -> tuple[bytes, str]:
    if storage_path:
        return download_file(ctx.db, ctx.settings.storage_bucket, storage_path), storage_path.rsplit("/", 1)[-1]
    try:
        return base64.b64decode(audio_base64 or "", validate=True), DEFAULT_AUDIO_FILENAME
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("audio_base64 is not valid base64") from exc


def transcribe_and_summarize(
    ctx: ServiceContext,
    meeting_id: UUID,
    storage_path: Optional[str] = None,
    audio_base64: Optional[str] = None,
    by_uid: str = SYSTEM_USER,
) -> TranscriptionResult:
    """
    Transcribe a meeting recording and store the analysis.

    Args:
        storage_path: Bucket path of the recording
        audio_base64: Inline recording; used when storage_path is not given

    Raises:
        ValidationError: no audio source, or undecodable inline audio
        NotFoundError: unknown meeting
        ExternalServiceError: transcription or analysis failed
    """

    if not storage_path and not audio_base64:
        raise ValidationError("Either storage_path or audio_base64 must be provided")

    meeting = get_meeting_by_id(ctx.db, meeting_id)
    if meeting is None:
        raise NotFoundError("meeting", meeting_id)

    audio, filename = _load_audio(ctx, storage_path, audio_base64)
    transcript = ctx.llm.transcribe_audio(audio, filename)
    analysis = TranscriptAnalysis.from_mapping(ctx.llm.analyze_transcript(transcript, meeting.type.value))

    path = upload_file(
        ctx.db,
        ctx.settings.storage_bucket,
        transcript_path(meeting_id),
        transcript.encode("utf-8"),
        "text/plain",
    )
    now = ctx.now()
    record_meeting_transcript(ctx.db, meeting_id, path, analysis.summary, analysis.action_items, now)
    insert_asset(
        ctx.db,
        kind="transcript",
        storage_path=path,
        status="approved",
        created_at=now,
        client_id=meeting.client_id,
        project_id=meeting.project_id,
    )
    log_activity(
        ctx,
        by_uid,
        "meeting_transcribed",
        {"meetingId": str(meeting_id), "transcriptLength": len(transcript)},
        client_id=meeting.client_id,
        project_id=meeting.project_id,
    )

    qualified = False
    conversion: Optional[ConversionResult] = None
    if meeting.is_discovery_for_lead:
        qualified, conversion = _apply_discovery_analysis(ctx, meeting, analysis)

    return TranscriptionResult(
        meeting_id=meeting_id,
        transcript=transcript,
        analysis=analysis,
        transcript_path=path,
        lead_qualified=qualified,
        conversion=conversion,
    )


def _apply_discovery_analysis(
    ctx: ServiceContext,
    meeting: Meeting,
    analysis: TranscriptAnalysis,
) -> tuple[bool, Optional[ConversionResult]]:
    lead = get_lead_by_id(ctx.db, meeting.lead_id)
    if lead is None or lead.is_deleted:
        logger.info("Discovery call for missing lead", extra={"lead_id": str(meeting.lead_id)})
        return False, None

    reasons = qualification_reasons(analysis)
    if not reasons:
        logger.info("Discovery call did not qualify lead", extra={"lead_id": str(lead.lead_id)})
        return False, None

    notes = (
        f"{lead.notes}\n\nDiscovery Call Analysis:\n{analysis.summary}\n\n"
        f"Qualification: {' '.join(reasons)}"
    ).strip()
    update_lead_status(ctx.db, lead.lead_id, LeadStatus.QUALIFIED, ctx.now(), notes=notes)

    conversion = convert_lead(
        ctx,
        lead.lead_id,
        key_points=analysis.key_points,
        client_notes=analysis.summary or None,
        internal_notes=(
            f"Converted from lead {lead.lead_id}. Discovery call analysis: "
            f"{json.dumps(analysis.to_dict())}"
        ),
    )
    return True, conversion


__all__ = [
    "TranscriptionResult",
    "transcript_path",
    "meeting_id_from_recording_path",
    "transcribe_and_summarize",
]
