"""
Proposal repository (persistence).

Number allocation reads the highest sequence issued for a year and orders by
the integer number_sequence column, not the text number. Callers combine that
read with an insert (read-then-write, not atomic).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.project import Package
from domain.proposal import Proposal, ProposalStatus, number_prefix, parse_proposal_number
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc, to_optional_iso_utc
from repositories.rows import checked_rows, first_row, optional_str, optional_uuid, uuid_str

_PROPOSALS_TABLE: str = "proposals"

# Column stamped when a proposal enters each status.
_STATUS_TIMESTAMP_COLUMNS: dict[ProposalStatus, str] = {
    ProposalStatus.SENT: "sent_at_utc",
    ProposalStatus.SIGNED: "signed_at_utc",
    ProposalStatus.DECLINED: "declined_at_utc",
}


def _proposal_to_row(proposal: Proposal) -> dict[str, Any]:
    return {
        "proposal_id": str(proposal.proposal_id),
        "lead_id": uuid_str(proposal.lead_id),
        "client_id": uuid_str(proposal.client_id),
        "package": proposal.package.value,
        "price": proposal.price,
        "currency": proposal.currency,
        "status": proposal.status.value,
        "version": proposal.version,
        "proposal_number": proposal.proposal_number,
        "number_sequence": parse_proposal_number(proposal.proposal_number)[1],
        "content": dict(proposal.content),
        "urgent_delivery": proposal.urgent_delivery,
        "document_path": proposal.document_path,
        "sent_at_utc": to_optional_iso_utc(proposal.sent_at, name="sent_at"),
        "signed_at_utc": to_optional_iso_utc(proposal.signed_at, name="signed_at"),
        "declined_at_utc": to_optional_iso_utc(proposal.declined_at, name="declined_at"),
        "created_at_utc": to_iso_utc(proposal.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(proposal.updated_at, name="updated_at"),
    }


def _row_to_proposal(row: Mapping[str, Any]) -> Proposal:
    return Proposal(
        proposal_id=UUID(str(row["proposal_id"])),
        package=Package(str(row["package"])),
        price=int(row["price"]),
        status=ProposalStatus(str(row["status"])),
        version=int(row.get("version") or 1),
        proposal_number=str(row["proposal_number"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        lead_id=optional_uuid(row.get("lead_id")),
        client_id=optional_uuid(row.get("client_id")),
        currency=str(row.get("currency") or "USD"),
        urgent_delivery=bool(row.get("urgent_delivery", False)),
        content=row.get("content") or {},
        document_path=optional_str(row.get("document_path")),
        sent_at=parse_optional_utc_datetime(row.get("sent_at_utc")),
        signed_at=parse_optional_utc_datetime(row.get("signed_at_utc")),
        declined_at=parse_optional_utc_datetime(row.get("declined_at_utc")),
    )


def insert_proposal(db: SupabaseClient, proposal: Proposal) -> None:
    response = db.table(_PROPOSALS_TABLE).insert(_proposal_to_row(proposal)).execute()
    checked_rows(response, "insert proposal")


def get_proposal_by_id(db: SupabaseClient, proposal_id: UUID) -> Optional[Proposal]:
    response = (
        db.table(_PROPOSALS_TABLE)
        .select("*")
        .eq("proposal_id", str(proposal_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch proposal")
    return _row_to_proposal(row) if row else None


def get_latest_proposal_number(db: SupabaseClient, year: int) -> Optional[str]:
    """Highest proposal_number issued in `year`, or None for a fresh year."""

    response = (
        db.table(_PROPOSALS_TABLE)
        .select("proposal_number")
        .gte("proposal_number", number_prefix(year))
        .lt("proposal_number", number_prefix(year + 1))
        .order("number_sequence", desc=True)
        .limit(1)
        .execute()
    )
    row = first_row(response, "read latest proposal number")
    return str(row["proposal_number"]) if row else None


def list_proposal_numbers(db: SupabaseClient) -> List[Mapping[str, Any]]:
    response = db.table(_PROPOSALS_TABLE).select("proposal_id, proposal_number").execute()
    return checked_rows(response, "list proposal numbers")


def update_proposal_status(
    db: SupabaseClient,
    proposal_id: UUID,
    expected_status: ProposalStatus,
    status: ProposalStatus,
    at: datetime,
) -> bool:
    """
    Conditionally move a proposal from `expected_status` to `status`.

    Returns False if the stored status no longer matches (someone else moved it).
    """

    stamp = to_iso_utc(at, name="at")
    payload: dict[str, Any] = {"status": status.value, "updated_at_utc": stamp}
    column = _STATUS_TIMESTAMP_COLUMNS.get(status)
    if column:
        payload[column] = stamp

    response = (
        db.table(_PROPOSALS_TABLE)
        .update(payload)
        .eq("proposal_id", str(proposal_id))
        .eq("status", expected_status.value)
        .execute()
    )
    return bool(checked_rows(response, "update proposal status"))


__all__ = [
    "insert_proposal",
    "get_proposal_by_id",
    "get_latest_proposal_number",
    "list_proposal_numbers",
    "update_proposal_status",
]
