"""
Tests for `services/payment_webhook_service.py`.

Covers:
- Signature verification runs before anything is read or written.
- Each event id is applied at most once; duplicates are acknowledged.
- Unknown event types are acknowledged without side effects.
- A failing handler releases the event id so a redelivery is processed.
- Deposit payment advances its project from intake to copy exactly once.
- Subscription events keep the client's plan in step.
- checkout.session.completed accepts the referenced proposal's signature,
  and a redelivery after a failure finishes it.
"""

from __future__ import annotations

import json
from uuid import uuid4

import pytest

from domain.client import Plan
from domain.errors import SignatureVerificationError, ValidationError
from domain.invoice import InvoiceStatus, InvoiceType
from domain.lead import LeadStatus
from domain.project import ProjectStatus
from repositories.client_repository import get_client_by_id
from repositories.invoice_repository import get_invoice_by_stripe_id
from repositories.lead_repository import get_lead_by_id
from repositories.project_repository import get_project_by_id
from repositories.subscription_repository import get_subscription_by_stripe_id
from services.payment_webhook_service import EVENT_HANDLERS, handle_webhook, process_event


def _payload(event) -> bytes:
    return json.dumps(event).encode("utf-8")


# Verification


def test_valid_signature_is_processed(ctx, fake_db, event_factory, signer) -> None:
    event = event_factory("payment_intent.succeeded", {"id": "pi_1", "amount": 150000, "currency": "usd"})
    payload = _payload(event)

    result = handle_webhook(ctx, payload, signer(payload))

    assert result.outcome == "processed"
    assert fake_db.rows("processed_events")[0]["event_id"] == event["id"]
    assert fake_db.rows("audit_logs")[0]["action"] == "payment_succeeded"


def test_invalid_signature_is_rejected_before_any_write(ctx, fake_db, event_factory, signer) -> None:
    payload = _payload(event_factory("payment_intent.succeeded", {"id": "pi_1"}))

    with pytest.raises(SignatureVerificationError):
        handle_webhook(ctx, payload, signer(payload, secret="whsec_wrong"))

    assert fake_db.rows("processed_events") == []
    assert fake_db.rows("audit_logs") == []


def test_missing_signature_is_rejected(ctx, fake_db, event_factory) -> None:
    payload = _payload(event_factory("payment_intent.succeeded", {"id": "pi_1"}))

    with pytest.raises(SignatureVerificationError):
        handle_webhook(ctx, payload, None)

    assert fake_db.rows("processed_events") == []


def test_tampered_payload_is_rejected(ctx, event_factory, signer) -> None:
    payload = _payload(event_factory("payment_intent.succeeded", {"id": "pi_1", "amount": 100}))
    header = signer(payload)
    tampered = payload.replace(b'"amount": 100', b'"amount": 999')

    with pytest.raises(SignatureVerificationError):
        handle_webhook(ctx, tampered, header)


# Idempotency and dispatch


def test_duplicate_event_is_acknowledged_without_reapplying(ctx, fake_db, event_factory) -> None:
    event = event_factory("payment_intent.succeeded", {"id": "pi_1", "amount": 100})

    first = process_event(ctx, event)
    second = process_event(ctx, event)

    assert (first.outcome, second.outcome) == ("processed", "duplicate")
    assert len(fake_db.rows("processed_events")) == 1
    assert len(fake_db.rows("audit_logs")) == 1


def test_unknown_event_type_is_ignored(ctx, fake_db, event_factory) -> None:
    result = process_event(ctx, event_factory("customer.created", {"id": "cus_1"}))

    assert result.outcome == "ignored"
    assert fake_db.rows("audit_logs") == []
    assert fake_db.rows("clients") == []


def test_event_without_id_is_rejected(ctx) -> None:
    with pytest.raises(ValidationError):
        process_event(ctx, {"type": "invoice.paid", "data": {"object": {}}})


def test_failed_handler_releases_event_for_redelivery(ctx, fake_db, event_factory, monkeypatch) -> None:
    event = event_factory("payment_intent.succeeded", {"id": "pi_1", "amount": 100})

    def boom(ctx, obj):
        raise RuntimeError("database unavailable")

    monkeypatch.setitem(EVENT_HANDLERS, "payment_intent.succeeded", boom)
    with pytest.raises(RuntimeError):
        process_event(ctx, event)
    assert fake_db.rows("processed_events") == []

    monkeypatch.undo()
    assert process_event(ctx, event).outcome == "processed"


# Invoices


def test_deposit_paid_advances_project_once(ctx, fake_db, seed, clock, event_factory) -> None:
    client = seed.client()
    project = seed.project(client.client_id)
    seed.invoice(client.client_id, project_id=project.project_id, stripe_invoice_id="in_dep")
    event_obj = {"id": "in_dep", "amount_paid": 600000, "currency": "usd"}

    process_event(ctx, event_factory("invoice.payment_succeeded", event_obj))

    invoice = get_invoice_by_stripe_id(ctx.db, "in_dep")
    assert invoice.status is InvoiceStatus.PAID
    assert invoice.paid_at == clock()
    moved = get_project_by_id(ctx.db, project.project_id)
    assert moved.status is ProjectStatus.COPY
    copy_stamp = moved.milestone(ProjectStatus.COPY)

    # Same payment delivered again under a new event id
    clock.advance(hours=1)
    process_event(ctx, event_factory("invoice.payment_succeeded", event_obj))

    again = get_project_by_id(ctx.db, project.project_id)
    assert again.status is ProjectStatus.COPY
    assert again.milestone(ProjectStatus.COPY) == copy_stamp
    assert get_invoice_by_stripe_id(ctx.db, "in_dep").paid_at == invoice.paid_at


def test_milestone_payment_is_logged(ctx, fake_db, seed, event_factory) -> None:
    client = seed.client()
    seed.invoice(client.client_id, type=InvoiceType.MILESTONE, stripe_invoice_id="in_ms")

    process_event(ctx, event_factory("invoice.payment_succeeded", {"id": "in_ms", "amount_paid": 100}))

    actions = [row["action"] for row in fake_db.rows("audit_logs")]
    assert actions == ["invoice_paid", "milestone_payment_received"]


def test_paid_invoice_is_audited_once(ctx, fake_db, seed, event_factory) -> None:
    client = seed.client()
    seed.invoice(client.client_id, type=InvoiceType.MILESTONE, stripe_invoice_id="in_ms")
    event_obj = {"id": "in_ms", "amount_paid": 100}

    # Stripe sends invoice.paid alongside invoice.payment_succeeded
    assert process_event(ctx, event_factory("invoice.paid", event_obj)).outcome == "ignored"
    process_event(ctx, event_factory("invoice.payment_succeeded", event_obj))
    process_event(ctx, event_factory("invoice.payment_succeeded", event_obj))

    actions = [row["action"] for row in fake_db.rows("audit_logs")]
    assert actions == ["invoice_paid", "milestone_payment_received"]
    assert len(fake_db.rows("activities")) == 2


def test_unknown_invoice_is_a_no_op(ctx, fake_db, event_factory) -> None:
    result = process_event(ctx, event_factory("invoice.payment_succeeded", {"id": "in_missing"}))

    assert result.outcome == "processed"
    assert fake_db.rows("audit_logs") == []


def test_payment_failed_marks_invoice_overdue(ctx, seed, event_factory) -> None:
    client = seed.client()
    seed.invoice(client.client_id, type=InvoiceType.CARE, stripe_invoice_id="in_care")

    process_event(ctx, event_factory("invoice.payment_failed", {"id": "in_care"}))

    assert get_invoice_by_stripe_id(ctx.db, "in_care").status is InvoiceStatus.OVERDUE


# Subscriptions


def _subscription_obj(sub_id="sub_1", customer="cus_1", price_id="price_care_plus", status="active"):
    return {
        "id": sub_id,
        "customer": customer,
        "status": status,
        "items": {"data": [{"price": {"id": price_id}, "current_period_end": 1743465600}]},
    }


def test_subscription_lifecycle_tracks_client_plan(ctx, seed, event_factory) -> None:
    client = seed.client(stripe_customer_id="cus_1")

    process_event(ctx, event_factory("customer.subscription.created", _subscription_obj()))

    subscription = get_subscription_by_stripe_id(ctx.db, "sub_1")
    assert subscription.plan is Plan.CARE_PLUS
    assert subscription.current_period_end is not None
    assert get_client_by_id(ctx.db, client.client_id).plan is Plan.CARE_PLUS

    process_event(ctx, event_factory("customer.subscription.updated", _subscription_obj(status="past_due")))
    assert get_subscription_by_stripe_id(ctx.db, "sub_1").status.value == "on_hold"

    process_event(ctx, event_factory("customer.subscription.deleted", _subscription_obj()))
    assert get_subscription_by_stripe_id(ctx.db, "sub_1").status.value == "canceled"
    assert get_client_by_id(ctx.db, client.client_id).plan is Plan.NONE


def test_care_invoice_paid_updates_subscription(ctx, fake_db, seed, event_factory) -> None:
    client = seed.client(stripe_customer_id="cus_1")
    process_event(ctx, event_factory("customer.subscription.created", _subscription_obj()))
    seed.invoice(client.client_id, type=InvoiceType.CARE, stripe_invoice_id="in_care")

    process_event(ctx, event_factory("invoice.payment_succeeded", {"id": "in_care", "amount_paid": 50000}))

    assert fake_db.rows("subscriptions")[0]["last_invoice_status"] == "paid"


def test_unmapped_price_falls_back_to_basic_plan(ctx, seed, event_factory) -> None:
    seed.client(stripe_customer_id="cus_1")

    process_event(ctx, event_factory("customer.subscription.created", _subscription_obj(price_id="price_other")))

    assert get_subscription_by_stripe_id(ctx.db, "sub_1").plan is Plan.CARE_BASIC


def test_subscription_for_unknown_customer_is_ignored(ctx, fake_db, event_factory) -> None:
    process_event(ctx, event_factory("customer.subscription.created", _subscription_obj(customer="cus_x")))

    assert fake_db.rows("subscriptions") == []


# Checkout


def test_checkout_completed_signs_proposal(ctx, fake_db, seed, event_factory) -> None:
    lead = seed.lead()
    proposal = seed.proposal(lead_id=lead.lead_id)
    session = {"id": "cs_1", "invoice": "in_checkout", "metadata": {"proposalId": str(proposal.proposal_id)}}

    process_event(ctx, event_factory("checkout.session.completed", session))
    process_event(ctx, event_factory("checkout.session.completed", session))

    assert fake_db.rows("proposals")[0]["status"] == "signed"
    invoices = fake_db.rows("invoices")
    assert len(invoices) == 1
    assert invoices[0]["amount"] == 6000
    assert invoices[0]["stripe_invoice_id"] == "in_checkout"
    assert get_lead_by_id(ctx.db, lead.lead_id).status is LeadStatus.WON


def test_checkout_redelivered_after_failure_creates_deposit(ctx, fake_db, seed, event_factory, monkeypatch) -> None:
    lead = seed.lead()
    proposal = seed.proposal(lead_id=lead.lead_id)
    event = event_factory("checkout.session.completed", {"id": "cs_1", "metadata": {"proposalId": str(proposal.proposal_id)}})

    def unavailable(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("services.proposal_service.insert_invoice", unavailable)
    with pytest.raises(RuntimeError):
        process_event(ctx, event)

    monkeypatch.undo()
    assert process_event(ctx, event).outcome == "processed"

    assert fake_db.rows("proposals")[0]["status"] == "signed"
    assert len(fake_db.rows("invoices")) == 1
    assert len(fake_db.rows("clients")) == 1


def test_checkout_for_unknown_proposal_is_a_no_op(ctx, fake_db, event_factory) -> None:
    session = {"id": "cs_1", "metadata": {"proposal_id": str(uuid4())}}

    result = process_event(ctx, event_factory("checkout.session.completed", session))

    assert result.outcome == "processed"
    assert fake_db.rows("invoices") == []
