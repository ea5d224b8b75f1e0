"""
Payment event (Stripe webhook) ingestion.

Order of operations for every delivery:
1. Verify the signature. A failure is rejected before anything is read or written.
2. Skip events whose id is already in the processed-events log.
3. Record the event id, then dispatch by type.
4. If the handler raises, the record is released and the error propagates, so
   Stripe's own retry delivers the event again.

Lookups that miss (invoice, client, subscription, proposal not found) are
logged and ignored: Stripe can deliver events before the local record exists.
Unknown event types are acknowledged.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from uuid import UUID, uuid4

import stripe

from domain.client import Plan
from domain.errors import InvalidTransitionError, NotFoundError, SignatureVerificationError, ValidationError
from domain.invoice import InvoiceType
from domain.subscription import Subscription, SubscriptionStatus, plan_for_price_id, status_from_external
from domain.time import from_epoch_seconds
from repositories.client_repository import get_client_by_id, get_client_by_stripe_customer, update_client_plan
from repositories.invoice_repository import get_invoice_by_stripe_id, mark_invoice_overdue, mark_invoice_paid
from repositories.processed_event_repository import (
    is_event_processed,
    record_processed_event,
    release_processed_event,
)
from repositories.subscription_repository import (
    get_active_subscription_for_client,
    get_subscription_by_stripe_id,
    insert_subscription,
    update_subscription,
)
from services.activity_service import log_activity
from services.context import ServiceContext
from services.project_stage_service import advance_on_deposit
from services.proposal_service import accept_proposal_signature

logger = logging.getLogger(__name__)

STRIPE_USER = "stripe"

EventObject = Mapping[str, Any]
EventHandler = Callable[[ServiceContext, EventObject], None]


@dataclass(frozen=True, slots=True)
class WebhookResult:
    """
    outcome: processed | duplicate | ignored
    """
    event_id: str
    event_type: str
    outcome: str


def verify_event(payload: bytes, signature: Optional[str], secret: str) -> dict[str, Any]:
    """
    Verify the Stripe signature header and return the event as a plain dict.

    Raises:
        SignatureVerificationError: missing or invalid signature, or a malformed payload
    """

    if not signature:
        logger.warning("Webhook rejected: missing signature header")
        raise SignatureVerificationError("Missing stripe-signature header")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Webhook rejected: signature verification failed", extra={"error": str(exc)})
        raise SignatureVerificationError(f"Webhook signature verification failed: {exc}") from exc
    return json.loads(payload)


def _cents_to_units(amount: Any) -> float:
    return (amount or 0) / 100


# Invoice events


def handle_invoice_paid(ctx: ServiceContext, invoice_obj: EventObject) -> None:
    stripe_invoice_id = invoice_obj.get("id")
    invoice = get_invoice_by_stripe_id(ctx.db, stripe_invoice_id) if stripe_invoice_id else None
    if invoice is None:
        logger.info("Paid invoice not found locally", extra={"stripe_invoice_id": stripe_invoice_id})
        return

    # Already-paid invoices (a second delivery, or a deposit recorded at
    # signature) are not re-stamped or audited again.
    newly_paid = not invoice.is_paid
    if newly_paid:
        mark_invoice_paid(ctx.db, invoice.invoice_id, ctx.now())
        log_activity(
            ctx,
            STRIPE_USER,
            "invoice_paid",
            {
                "invoiceId": str(invoice.invoice_id),
                "stripeInvoiceId": stripe_invoice_id,
                "amount": _cents_to_units(invoice_obj.get("amount_paid")),
                "currency": invoice_obj.get("currency"),
            },
            client_id=invoice.client_id,
            project_id=invoice.project_id,
        )
    else:
        logger.info("Invoice already paid", extra={"invoice_id": str(invoice.invoice_id)})

    if invoice.type is InvoiceType.DEPOSIT:
        if invoice.project_id is not None:
            advance_on_deposit(ctx, invoice.project_id)
    elif invoice.type is InvoiceType.MILESTONE and newly_paid:
        log_activity(
            ctx,
            STRIPE_USER,
            "milestone_payment_received",
            {"invoiceId": str(invoice.invoice_id)},
            client_id=invoice.client_id,
            project_id=invoice.project_id,
        )
    elif invoice.type is InvoiceType.CARE:
        subscription = get_active_subscription_for_client(ctx.db, invoice.client_id)
        if subscription is None:
            logger.info("No active subscription for care payment", extra={"client_id": str(invoice.client_id)})
            return
        update_subscription(ctx.db, subscription.subscription_id, ctx.now(), last_invoice_status="paid")


def handle_invoice_payment_failed(ctx: ServiceContext, invoice_obj: EventObject) -> None:
    stripe_invoice_id = invoice_obj.get("id")
    invoice = get_invoice_by_stripe_id(ctx.db, stripe_invoice_id) if stripe_invoice_id else None
    if invoice is None:
        logger.info("Failed invoice not found locally", extra={"stripe_invoice_id": stripe_invoice_id})
        return

    mark_invoice_overdue(ctx.db, invoice.invoice_id, ctx.now())
    log_activity(
        ctx,
        STRIPE_USER,
        "invoice_payment_failed",
        {"invoiceId": str(invoice.invoice_id), "stripeInvoiceId": stripe_invoice_id},
        client_id=invoice.client_id,
    )


# Subscription events


def _price_id(subscription_obj: EventObject) -> Optional[str]:
    items = (subscription_obj.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


def _period_end(subscription_obj: EventObject):
    # Newer API versions carry the period on the subscription item.
    value = subscription_obj.get("current_period_end")
    if value is None:
        items = (subscription_obj.get("items") or {}).get("data") or []
        value = items[0].get("current_period_end") if items else None
    return from_epoch_seconds(value) if value else None


def handle_subscription_created(ctx: ServiceContext, subscription_obj: EventObject) -> None:
    customer_id = subscription_obj.get("customer")
    client = get_client_by_stripe_customer(ctx.db, customer_id) if customer_id else None
    if client is None:
        logger.info("Subscription for unknown customer", extra={"stripe_customer_id": customer_id})
        return

    if get_subscription_by_stripe_id(ctx.db, subscription_obj["id"]) is not None:
        logger.info("Subscription already recorded", extra={"stripe_subscription_id": subscription_obj["id"]})
        return

    plan = plan_for_price_id(_price_id(subscription_obj), ctx.settings.care_price_ids)
    now = ctx.now()
    insert_subscription(
        ctx.db,
        Subscription(
            subscription_id=uuid4(),
            client_id=client.client_id,
            plan=plan,
            status=SubscriptionStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            stripe_subscription_id=subscription_obj["id"],
            current_period_end=_period_end(subscription_obj),
        ),
    )
    update_client_plan(ctx.db, client.client_id, plan, now)
    log_activity(
        ctx,
        STRIPE_USER,
        "subscription_created",
        {"subscriptionId": subscription_obj["id"], "plan": plan.value},
        client_id=client.client_id,
    )


def handle_subscription_updated(ctx: ServiceContext, subscription_obj: EventObject) -> None:
    subscription = get_subscription_by_stripe_id(ctx.db, subscription_obj.get("id", ""))
    if subscription is None:
        logger.info("Updated subscription not found locally", extra={"stripe_subscription_id": subscription_obj.get("id")})
        return

    update_subscription(
        ctx.db,
        subscription.subscription_id,
        ctx.now(),
        status=status_from_external(subscription_obj.get("status")),
        current_period_end=_period_end(subscription_obj),
    )


def handle_subscription_deleted(ctx: ServiceContext, subscription_obj: EventObject) -> None:
    subscription = get_subscription_by_stripe_id(ctx.db, subscription_obj.get("id", ""))
    if subscription is None:
        logger.info("Deleted subscription not found locally", extra={"stripe_subscription_id": subscription_obj.get("id")})
        return

    now = ctx.now()
    update_subscription(ctx.db, subscription.subscription_id, now, status=SubscriptionStatus.CANCELED)
    if get_client_by_id(ctx.db, subscription.client_id) is not None:
        update_client_plan(ctx.db, subscription.client_id, Plan.NONE, now)


# Checkout and one-off payments


def handle_checkout_completed(ctx: ServiceContext, session_obj: EventObject) -> None:
    metadata = session_obj.get("metadata") or {}
    raw_proposal_id = metadata.get("proposalId") or metadata.get("proposal_id")
    if not raw_proposal_id:
        logger.info("Checkout session without proposal reference", extra={"session_id": session_obj.get("id")})
        return

    try:
        proposal_id = UUID(str(raw_proposal_id))
    except ValueError:
        logger.info("Checkout session with malformed proposal id", extra={"proposal_id": raw_proposal_id})
        return

    try:
        accept_proposal_signature(ctx, proposal_id, external_invoice_ref=session_obj.get("invoice"), by_uid=STRIPE_USER)
    except NotFoundError:
        logger.info("Checkout for unknown proposal", extra={"proposal_id": str(proposal_id)})
    except InvalidTransitionError as exc:
        logger.warning("Checkout for proposal that cannot be signed", extra={"proposal_id": str(proposal_id), "error": str(exc)})


def handle_payment_intent_succeeded(ctx: ServiceContext, intent_obj: EventObject) -> None:
    log_activity(
        ctx,
        STRIPE_USER,
        "payment_succeeded",
        {
            "paymentIntentId": intent_obj.get("id"),
            "amount": _cents_to_units(intent_obj.get("amount")),
            "currency": intent_obj.get("currency"),
        },
    )


EVENT_HANDLERS: dict[str, EventHandler] = {
    "invoice.payment_succeeded": handle_invoice_paid,
    "invoice.payment_failed": handle_invoice_payment_failed,
    "customer.subscription.created": handle_subscription_created,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "checkout.session.completed": handle_checkout_completed,
    "payment_intent.succeeded": handle_payment_intent_succeeded,
}


def process_event(ctx: ServiceContext, event: Mapping[str, Any]) -> WebhookResult:
    """Apply an already-verified event exactly once."""

    event_id = str(event.get("id") or "")
    event_type = str(event.get("type") or "")
    if not event_id:
        raise ValidationError("Event has no id")

    if is_event_processed(ctx.db, event_id):
        logger.info("Duplicate webhook event skipped", extra={"event_id": event_id, "event_type": event_type})
        return WebhookResult(event_id=event_id, event_type=event_type, outcome="duplicate")

    record_processed_event(ctx.db, event_id, event_type, ctx.now())

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled webhook event type", extra={"event_id": event_id, "event_type": event_type})
        return WebhookResult(event_id=event_id, event_type=event_type, outcome="ignored")

    data_object = (event.get("data") or {}).get("object") or {}
    try:
        handler(ctx, data_object)
    except Exception:
        logger.exception("Webhook handler failed", extra={"event_id": event_id, "event_type": event_type})
        release_processed_event(ctx.db, event_id)
        raise

    logger.info("Webhook event processed", extra={"event_id": event_id, "event_type": event_type})
    return WebhookResult(event_id=event_id, event_type=event_type, outcome="processed")


def handle_webhook(ctx: ServiceContext, payload: bytes, signature: Optional[str]) -> WebhookResult:
    event = verify_event(payload, signature, ctx.settings.stripe_webhook_secret)
    return process_event(ctx, event)


__all__ = [
    "EVENT_HANDLERS",
    "WebhookResult",
    "verify_event",
    "process_event",
    "handle_webhook",
]
