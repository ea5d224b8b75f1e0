"""
Audit, activity and outbound-notification records (persistence).

Audit logs and activities are append-only: this module exposes inserts and
reads only, never updates or deletes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping
from uuid import UUID, uuid4

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.activity import Activity, ActivityType, AuditLog
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.rows import checked_rows, optional_uuid, uuid_str

_AUDIT_LOGS_TABLE: str = "audit_logs"
_ACTIVITIES_TABLE: str = "activities"
_NOTIFICATIONS_TABLE: str = "notifications"
_SCHEDULED_EMAILS_TABLE: str = "scheduled_emails"


def insert_audit_log(db: SupabaseClient, log: AuditLog) -> None:
    payload = {
        "log_id": str(log.log_id),
        "at_utc": to_iso_utc(log.at, name="at"),
        "by_uid": log.by_uid,
        "action": log.action,
        "payload_hash": log.payload_hash,
        "client_id": uuid_str(log.client_id),
        "project_id": uuid_str(log.project_id),
    }
    checked_rows(db.table(_AUDIT_LOGS_TABLE).insert(payload).execute(), "insert audit log")


def insert_activity(db: SupabaseClient, activity: Activity) -> None:
    payload = {
        "activity_id": str(activity.activity_id),
        "message": activity.message,
        "type": activity.type.value,
        "user_id": activity.user_id,
        "client_id": uuid_str(activity.client_id),
        "project_id": uuid_str(activity.project_id),
        "timestamp_utc": to_iso_utc(activity.timestamp, name="timestamp"),
    }
    checked_rows(db.table(_ACTIVITIES_TABLE).insert(payload).execute(), "insert activity")


def _row_to_activity(row: Mapping[str, Any]) -> Activity:
    return Activity(
        activity_id=UUID(str(row["activity_id"])),
        message=str(row["message"]),
        type=ActivityType(str(row["type"])),
        user_id=str(row["user_id"]),
        timestamp=parse_utc_datetime(row["timestamp_utc"]),
        client_id=optional_uuid(row.get("client_id")),
        project_id=optional_uuid(row.get("project_id")),
    )


def list_client_activities(db: SupabaseClient, client_id: UUID, start: datetime, end: datetime) -> List[Activity]:
    """Activities for a client with start <= timestamp < end."""

    response = (
        db.table(_ACTIVITIES_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .gte("timestamp_utc", to_iso_utc(start, name="start"))
        .lt("timestamp_utc", to_iso_utc(end, name="end"))
        .execute()
    )
    return [_row_to_activity(row) for row in checked_rows(response, "list activities")]


def insert_notification(
    db: SupabaseClient,
    notification_type: str,
    lead_id: UUID,
    message: str,
    created_at: datetime,
) -> UUID:
    notification_id = uuid4()
    payload = {
        "notification_id": str(notification_id),
        "type": notification_type,
        "lead_id": str(lead_id),
        "message": message,
        "sent": False,
        "created_at_utc": to_iso_utc(created_at, name="created_at"),
    }
    checked_rows(db.table(_NOTIFICATIONS_TABLE).insert(payload).execute(), "insert notification")
    return notification_id


def insert_scheduled_email(
    db: SupabaseClient,
    lead_id: UUID,
    email: str,
    name: str,
    email_type: str,
    scheduled_for: datetime,
) -> UUID:
    email_id = uuid4()
    payload = {
        "email_id": str(email_id),
        "lead_id": str(lead_id),
        "email": email,
        "name": name,
        "type": email_type,
        "scheduled_for_utc": to_iso_utc(scheduled_for, name="scheduled_for"),
        "sent": False,
    }
    checked_rows(db.table(_SCHEDULED_EMAILS_TABLE).insert(payload).execute(), "schedule email")
    return email_id


__all__ = [
    "insert_audit_log",
    "insert_activity",
    "list_client_activities",
    "insert_notification",
    "insert_scheduled_email",
]
