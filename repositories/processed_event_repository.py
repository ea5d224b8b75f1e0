"""
Processed payment-event log (persistence).

Keyed by the payment platform's globally unique event id. A row's presence
means the event has been (or is being) applied.
"""

from __future__ import annotations

from datetime import datetime

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.time import to_iso_utc
from repositories.rows import checked_rows, first_row

_PROCESSED_EVENTS_TABLE: str = "processed_events"


def is_event_processed(db: SupabaseClient, event_id: str) -> bool:
    response = (
        db.table(_PROCESSED_EVENTS_TABLE)
        .select("event_id")
        .eq("event_id", event_id)
        .limit(1)
        .execute()
    )
    return first_row(response, "check processed event") is not None


def record_processed_event(db: SupabaseClient, event_id: str, event_type: str, processed_at: datetime) -> None:
    payload = {
        "event_id": event_id,
        "event_type": event_type,
        "processed_at_utc": to_iso_utc(processed_at, name="processed_at"),
    }
    checked_rows(db.table(_PROCESSED_EVENTS_TABLE).insert(payload).execute(), "record processed event")


def release_processed_event(db: SupabaseClient, event_id: str) -> None:
    """Forget an event whose side effects failed, so a redelivery is applied."""

    response = db.table(_PROCESSED_EVENTS_TABLE).delete().eq("event_id", event_id).execute()
    checked_rows(response, "release processed event")


__all__ = [
    "is_event_processed",
    "record_processed_event",
    "release_processed_event",
]
