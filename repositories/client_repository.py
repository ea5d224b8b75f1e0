"""
Client repository for managing agency client accounts.

Provides functions to create, query and update clients. Plan changes are made
by the payment-event handlers; nothing here decides them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.client import Client, Contact, Plan
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.rows import checked_rows, first_row, optional_str

_CLIENTS_TABLE: str = "clients"


def _client_to_row(client: Client) -> dict[str, Any]:
    return {
        "client_id": str(client.client_id),
        "company": client.company,
        "legal_name": client.legal_name or client.company,
        "contacts": [contact.to_dict() for contact in client.contacts],
        "billing_email": client.billing_email,
        "plan": client.plan.value,
        "stripe_customer_id": client.stripe_customer_id,
        "created_at_utc": to_iso_utc(client.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(client.updated_at, name="updated_at"),
    }


def _row_to_client(row: Mapping[str, Any]) -> Client:
    return Client(
        client_id=UUID(str(row["client_id"])),
        company=str(row["company"]),
        billing_email=str(row["billing_email"]),
        plan=Plan(str(row.get("plan") or Plan.NONE.value)),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        legal_name=optional_str(row.get("legal_name")),
        contacts=tuple(Contact.from_mapping(item) for item in row.get("contacts") or []),
        stripe_customer_id=optional_str(row.get("stripe_customer_id")),
    )


def insert_client(db: SupabaseClient, client: Client) -> None:
    response = db.table(_CLIENTS_TABLE).insert(_client_to_row(client)).execute()
    checked_rows(response, "insert client")


def get_client_by_id(db: SupabaseClient, client_id: UUID) -> Optional[Client]:
    """
    Get a client by their ID.

    Returns:
        Client domain model or None if not found
    """
    response = (
        db.table(_CLIENTS_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch client")
    return _row_to_client(row) if row else None


def get_client_by_stripe_customer(db: SupabaseClient, stripe_customer_id: str) -> Optional[Client]:
    """Resolve the client billed under an external customer reference."""

    response = (
        db.table(_CLIENTS_TABLE)
        .select("*")
        .eq("stripe_customer_id", stripe_customer_id)
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch client by customer")
    return _row_to_client(row) if row else None


def list_clients(db: SupabaseClient) -> List[Client]:
    response = db.table(_CLIENTS_TABLE).select("*").execute()
    return [_row_to_client(row) for row in checked_rows(response, "list clients")]


def list_clients_with_care_plan(db: SupabaseClient) -> List[Client]:
    response = db.table(_CLIENTS_TABLE).select("*").neq("plan", Plan.NONE.value).execute()
    return [_row_to_client(row) for row in checked_rows(response, "list care-plan clients")]


def update_client_plan(db: SupabaseClient, client_id: UUID, plan: Plan, updated_at: datetime) -> None:
    response = (
        db.table(_CLIENTS_TABLE)
        .update({"plan": plan.value, "updated_at_utc": to_iso_utc(updated_at, name="updated_at")})
        .eq("client_id", str(client_id))
        .execute()
    )
    checked_rows(response, "update client plan")


__all__ = [
    "insert_client",
    "get_client_by_id",
    "get_client_by_stripe_customer",
    "list_clients",
    "list_clients_with_care_plan",
    "update_client_plan",
]
