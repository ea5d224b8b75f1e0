"""
Invoice repository (persistence).

Invoice status is only ever changed from payment events; the functions here are
the write paths those handlers use.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.invoice import Invoice, InvoiceStatus, InvoiceType
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc, to_optional_iso_utc
from repositories.rows import checked_rows, first_row, optional_str, optional_uuid, uuid_str

_INVOICES_TABLE: str = "invoices"


def _invoice_to_row(invoice: Invoice) -> dict[str, Any]:
    return {
        "invoice_id": str(invoice.invoice_id),
        "client_id": str(invoice.client_id),
        "project_id": uuid_str(invoice.project_id),
        "proposal_id": uuid_str(invoice.proposal_id),
        "amount": invoice.amount,
        "currency": invoice.currency,
        "type": invoice.type.value,
        "status": invoice.status.value,
        "stripe_invoice_id": invoice.stripe_invoice_id,
        "paid_at_utc": to_optional_iso_utc(invoice.paid_at, name="paid_at"),
        "due_at_utc": to_optional_iso_utc(invoice.due_at, name="due_at"),
        "created_at_utc": to_iso_utc(invoice.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(invoice.updated_at, name="updated_at"),
    }


def _row_to_invoice(row: Mapping[str, Any]) -> Invoice:
    return Invoice(
        invoice_id=UUID(str(row["invoice_id"])),
        client_id=UUID(str(row["client_id"])),
        amount=int(row["amount"]),
        currency=str(row.get("currency") or "USD"),
        type=InvoiceType(str(row["type"])),
        status=InvoiceStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        project_id=optional_uuid(row.get("project_id")),
        proposal_id=optional_uuid(row.get("proposal_id")),
        stripe_invoice_id=optional_str(row.get("stripe_invoice_id")),
        paid_at=parse_optional_utc_datetime(row.get("paid_at_utc")),
        due_at=parse_optional_utc_datetime(row.get("due_at_utc")),
    )


def insert_invoice(db: SupabaseClient, invoice: Invoice) -> None:
    response = db.table(_INVOICES_TABLE).insert(_invoice_to_row(invoice)).execute()
    checked_rows(response, "insert invoice")


def get_invoice_by_stripe_id(db: SupabaseClient, stripe_invoice_id: str) -> Optional[Invoice]:
    response = (
        db.table(_INVOICES_TABLE)
        .select("*")
        .eq("stripe_invoice_id", stripe_invoice_id)
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch invoice by external id")
    return _row_to_invoice(row) if row else None


def get_deposit_invoice_for_proposal(db: SupabaseClient, proposal_id: UUID) -> Optional[Invoice]:
    response = (
        db.table(_INVOICES_TABLE)
        .select("*")
        .eq("proposal_id", str(proposal_id))
        .eq("type", InvoiceType.DEPOSIT.value)
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch proposal deposit invoice")
    return _row_to_invoice(row) if row else None


def list_invoices_for_client(db: SupabaseClient, client_id: UUID) -> List[Invoice]:
    response = db.table(_INVOICES_TABLE).select("*").eq("client_id", str(client_id)).execute()
    return [_row_to_invoice(row) for row in checked_rows(response, "list invoices")]


def mark_invoice_paid(db: SupabaseClient, invoice_id: UUID, paid_at: datetime) -> None:
    stamp = to_iso_utc(paid_at, name="paid_at")
    response = (
        db.table(_INVOICES_TABLE)
        .update({"status": InvoiceStatus.PAID.value, "paid_at_utc": stamp, "updated_at_utc": stamp})
        .eq("invoice_id", str(invoice_id))
        .execute()
    )
    checked_rows(response, "mark invoice paid")


def mark_invoice_overdue(db: SupabaseClient, invoice_id: UUID, updated_at: datetime) -> None:
    response = (
        db.table(_INVOICES_TABLE)
        .update(
            {
                "status": InvoiceStatus.OVERDUE.value,
                "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("invoice_id", str(invoice_id))
        .execute()
    )
    checked_rows(response, "mark invoice overdue")


__all__ = [
    "insert_invoice",
    "get_invoice_by_stripe_id",
    "get_deposit_invoice_for_proposal",
    "list_invoices_for_client",
    "mark_invoice_paid",
    "mark_invoice_overdue",
]
