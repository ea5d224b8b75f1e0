"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (scoring, deduplication policy, qualification) belong here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.lead import Lead, LeadStatus, Utm
from domain.time import (
    parse_optional_utc_datetime,
    parse_utc_datetime,
    to_iso_utc,
    to_optional_iso_utc,
)
from repositories.rows import checked_rows, first_row, optional_str, optional_uuid, uuid_str

# Supabase table name for Lead records.
# Keep this aligned with your database schema.
_LEADS_TABLE: str = "leads"


def _lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    return {
        "lead_id": str(lead.lead_id),
        "name": lead.name,
        "company": lead.company,
        "email": lead.email,
        "phone": lead.phone or "",
        "source": lead.source,
        "notes": lead.notes,
        "utm": lead.utm.to_dict(),
        "budget_range": lead.budget_range,
        "project_type": lead.project_type,
        "timeline": lead.timeline,
        "lead_fingerprint": lead.lead_fingerprint,
        "score": lead.score,
        "status": lead.status.value,
        "is_deleted": lead.is_deleted,
        "deleted_at_utc": to_optional_iso_utc(lead.deleted_at, name="deleted_at"),
        "client_id": uuid_str(lead.client_id),
        "project_id": uuid_str(lead.project_id),
        "converted_at_utc": to_optional_iso_utc(lead.converted_at, name="converted_at"),
        "created_at_utc": to_iso_utc(lead.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(lead.updated_at, name="updated_at"),
    }


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    return Lead(
        lead_id=UUID(str(row["lead_id"])),
        name=str(row["name"]),
        company=str(row["company"]),
        email=str(row["email"]),
        source=str(row["source"]),
        lead_fingerprint=str(row["lead_fingerprint"]),
        score=int(row["score"]),
        status=LeadStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        phone=optional_str(row.get("phone")),
        notes=str(row.get("notes") or ""),
        utm=Utm.from_mapping(row.get("utm")),
        budget_range=optional_str(row.get("budget_range")),
        project_type=optional_str(row.get("project_type")),
        timeline=optional_str(row.get("timeline")),
        is_deleted=bool(row.get("is_deleted", False)),
        deleted_at=parse_optional_utc_datetime(row.get("deleted_at_utc")),
        client_id=optional_uuid(row.get("client_id")),
        project_id=optional_uuid(row.get("project_id")),
        converted_at=parse_optional_utc_datetime(row.get("converted_at_utc")),
    )


def insert_lead(db: SupabaseClient, lead: Lead) -> None:
    """
    Insert a Lead into Supabase.

    Raises:
    - RuntimeError if Supabase returns an error response.
    - ValueError/TypeError for invalid domain values (e.g., timestamps).
    """

    payload = _lead_to_row(lead)
    response = db.table(_LEADS_TABLE).insert(payload).execute()
    checked_rows(response, "insert lead")


def get_lead_by_id(db: SupabaseClient, lead_id: UUID) -> Optional[Lead]:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found (soft-deleted leads included)
    - None if no record exists for the given ID
    """

    response = (
        db.table(_LEADS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch lead")
    return _row_to_lead(row) if row else None


def find_active_lead_by_fingerprint(db: SupabaseClient, fingerprint: str) -> Optional[Lead]:
    """Return the non-deleted Lead holding `fingerprint`, if any."""

    response = (
        db.table(_LEADS_TABLE)
        .select("*")
        .eq("lead_fingerprint", fingerprint)
        .eq("is_deleted", False)
        .limit(1)
        .execute()
    )
    row = first_row(response, "look up lead fingerprint")
    return _row_to_lead(row) if row else None


def list_active_leads(db: SupabaseClient, status: LeadStatus | None = None) -> List[Lead]:
    """List non-deleted Leads, optionally filtered by status."""

    query = db.table(_LEADS_TABLE).select("*").eq("is_deleted", False)
    if status is not None:
        query = query.eq("status", status.value)

    rows = checked_rows(query.execute(), "list leads")
    return [_row_to_lead(row) for row in rows]


def update_lead_status(
    db: SupabaseClient,
    lead_id: UUID,
    status: LeadStatus,
    updated_at: datetime,
    notes: Optional[str] = None,
) -> None:
    payload: dict[str, Any] = {
        "status": status.value,
        "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
    }
    if notes is not None:
        payload["notes"] = notes

    response = db.table(_LEADS_TABLE).update(payload).eq("lead_id", str(lead_id)).execute()
    checked_rows(response, "update lead status")


def soft_delete_lead(db: SupabaseClient, lead_id: UUID, deleted_at: datetime) -> None:
    stamp = to_iso_utc(deleted_at, name="deleted_at")
    response = (
        db.table(_LEADS_TABLE)
        .update({"is_deleted": True, "deleted_at_utc": stamp, "updated_at_utc": stamp})
        .eq("lead_id", str(lead_id))
        .execute()
    )
    checked_rows(response, "soft delete lead")


def claim_lead_conversion(db: SupabaseClient, lead_id: UUID, converted_at: datetime) -> bool:
    """
    Set converted_at on the Lead only if it has never been set.

    This is a conditional write (`converted_at_utc IS NULL`), so at most one
    caller wins the claim. Returns True for the winner.
    """

    stamp = to_iso_utc(converted_at, name="converted_at")
    response = (
        db.table(_LEADS_TABLE)
        .update({"converted_at_utc": stamp, "updated_at_utc": stamp})
        .eq("lead_id", str(lead_id))
        .is_("converted_at_utc", "null")
        .execute()
    )
    return bool(checked_rows(response, "claim lead conversion"))


def link_conversion_references(
    db: SupabaseClient,
    lead_id: UUID,
    client_id: UUID,
    project_id: UUID,
    updated_at: datetime,
) -> bool:
    """
    Attach the converted Client/Project ids to the Lead if none are attached yet.

    Returns True for the caller whose write linked them.
    """

    response = (
        db.table(_LEADS_TABLE)
        .update(
            {
                "client_id": str(client_id),
                "project_id": str(project_id),
                "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("lead_id", str(lead_id))
        .is_("client_id", "null")
        .execute()
    )
    return bool(checked_rows(response, "link lead to client/project"))


__all__ = [
    "insert_lead",
    "get_lead_by_id",
    "find_active_lead_by_fingerprint",
    "list_active_leads",
    "update_lead_status",
    "soft_delete_lead",
    "claim_lead_conversion",
    "link_conversion_references",
]
