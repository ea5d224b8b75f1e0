"""
Subscription repository (persistence).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.client import Plan
from domain.subscription import Subscription, SubscriptionStatus
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc, to_optional_iso_utc
from repositories.rows import checked_rows, first_row, optional_str

_SUBSCRIPTIONS_TABLE: str = "subscriptions"


def _subscription_to_row(subscription: Subscription) -> dict[str, Any]:
    return {
        "subscription_id": str(subscription.subscription_id),
        "client_id": str(subscription.client_id),
        "plan": subscription.plan.value,
        "status": subscription.status.value,
        "stripe_subscription_id": subscription.stripe_subscription_id,
        "last_invoice_status": subscription.last_invoice_status,
        "current_period_end_utc": to_optional_iso_utc(subscription.current_period_end, name="current_period_end"),
        "created_at_utc": to_iso_utc(subscription.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(subscription.updated_at, name="updated_at"),
    }


def _row_to_subscription(row: Mapping[str, Any]) -> Subscription:
    return Subscription(
        subscription_id=UUID(str(row["subscription_id"])),
        client_id=UUID(str(row["client_id"])),
        plan=Plan(str(row["plan"])),
        status=SubscriptionStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        stripe_subscription_id=optional_str(row.get("stripe_subscription_id")),
        last_invoice_status=optional_str(row.get("last_invoice_status")),
        current_period_end=parse_optional_utc_datetime(row.get("current_period_end_utc")),
    )


def insert_subscription(db: SupabaseClient, subscription: Subscription) -> None:
    response = db.table(_SUBSCRIPTIONS_TABLE).insert(_subscription_to_row(subscription)).execute()
    checked_rows(response, "insert subscription")


def get_subscription_by_stripe_id(db: SupabaseClient, stripe_subscription_id: str) -> Optional[Subscription]:
    response = (
        db.table(_SUBSCRIPTIONS_TABLE)
        .select("*")
        .eq("stripe_subscription_id", stripe_subscription_id)
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch subscription")
    return _row_to_subscription(row) if row else None


def get_active_subscription_for_client(db: SupabaseClient, client_id: UUID) -> Optional[Subscription]:
    response = (
        db.table(_SUBSCRIPTIONS_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .eq("status", SubscriptionStatus.ACTIVE.value)
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch active subscription")
    return _row_to_subscription(row) if row else None


def update_subscription(
    db: SupabaseClient,
    subscription_id: UUID,
    updated_at: datetime,
    status: Optional[SubscriptionStatus] = None,
    current_period_end: Optional[datetime] = None,
    last_invoice_status: Optional[str] = None,
) -> None:
    """Partial update: only the provided fields are written."""

    payload: dict[str, Any] = {"updated_at_utc": to_iso_utc(updated_at, name="updated_at")}
    if status is not None:
        payload["status"] = status.value
    if current_period_end is not None:
        payload["current_period_end_utc"] = to_iso_utc(current_period_end, name="current_period_end")
    if last_invoice_status is not None:
        payload["last_invoice_status"] = last_invoice_status

    response = (
        db.table(_SUBSCRIPTIONS_TABLE)
        .update(payload)
        .eq("subscription_id", str(subscription_id))
        .execute()
    )
    checked_rows(response, "update subscription")


__all__ = [
    "insert_subscription",
    "get_subscription_by_stripe_id",
    "get_active_subscription_for_client",
    "update_subscription",
]
