"""
Meeting and asset repository (persistence).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID, uuid4

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.meeting import Meeting, MeetingType
from domain.time import to_iso_utc
from repositories.rows import checked_rows, first_row, optional_str, optional_uuid, uuid_str

_MEETINGS_TABLE: str = "meetings"
_ASSETS_TABLE: str = "assets"


def _row_to_meeting(row: Mapping[str, Any]) -> Meeting:
    return Meeting(
        meeting_id=UUID(str(row["meeting_id"])),
        type=MeetingType(str(row["type"])),
        lead_id=optional_uuid(row.get("lead_id")),
        client_id=optional_uuid(row.get("client_id")),
        project_id=optional_uuid(row.get("project_id")),
        transcript_path=optional_str(row.get("transcript_path")),
        ai_summary=optional_str(row.get("ai_summary")),
        action_items=tuple(row.get("action_items") or ()),
    )


def get_meeting_by_id(db: SupabaseClient, meeting_id: UUID) -> Optional[Meeting]:
    response = (
        db.table(_MEETINGS_TABLE)
        .select("*")
        .eq("meeting_id", str(meeting_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch meeting")
    return _row_to_meeting(row) if row else None


def record_meeting_transcript(
    db: SupabaseClient,
    meeting_id: UUID,
    transcript_path: str,
    ai_summary: str,
    action_items: Iterable[str],
    updated_at: datetime,
) -> None:
    response = (
        db.table(_MEETINGS_TABLE)
        .update(
            {
                "transcript_path": transcript_path,
                "ai_summary": ai_summary,
                "action_items": list(action_items),
                "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("meeting_id", str(meeting_id))
        .execute()
    )
    checked_rows(response, "record meeting transcript")


def insert_asset(
    db: SupabaseClient,
    kind: str,
    storage_path: str,
    status: str,
    created_at: datetime,
    client_id: Optional[UUID] = None,
    project_id: Optional[UUID] = None,
) -> UUID:
    asset_id = uuid4()
    payload = {
        "asset_id": str(asset_id),
        "client_id": uuid_str(client_id),
        "project_id": uuid_str(project_id),
        "kind": kind,
        "storage_path": storage_path,
        "status": status,
        "created_at_utc": to_iso_utc(created_at, name="created_at"),
    }
    checked_rows(db.table(_ASSETS_TABLE).insert(payload).execute(), "insert asset")
    return asset_id


__all__ = [
    "get_meeting_by_id",
    "record_meeting_transcript",
    "insert_asset",
]
