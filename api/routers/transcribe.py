"""
Transcription API Endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_context, to_http_exception
from api.models import TranscribeRequest, TranscribeResponse
from domain.errors import DomainError
from services.context import ServiceContext
from services.transcription_service import meeting_id_from_recording_path, transcribe_and_summarize

router = APIRouter()


@router.post(
    "/transcribe",
    response_model=TranscribeResponse,
    summary="Transcribe Meeting",
    description="Transcribe a meeting recording and analyze it. Discovery calls may qualify and convert the lead.",
)
def transcribe_endpoint(request: TranscribeRequest, ctx: ServiceContext = Depends(get_context)):
    meeting_id = request.meeting_id
    if meeting_id is None and request.storage_path:
        meeting_id = meeting_id_from_recording_path(request.storage_path)
    if meeting_id is None:
        raise HTTPException(status_code=400, detail="meeting_id is required")

    try:
        result = transcribe_and_summarize(
            ctx,
            meeting_id,
            storage_path=request.storage_path,
            audio_base64=request.audio_base64,
        )
        conversion = result.conversion
        return TranscribeResponse(
            meeting_id=result.meeting_id,
            transcript=result.transcript,
            analysis=result.analysis.to_dict(),
            transcript_path=result.transcript_path,
            lead_qualified=result.lead_qualified,
            client_id=conversion.client_id if conversion else None,
            project_id=conversion.project_id if conversion else None,
        )

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to transcribe meeting: {str(e)}")
