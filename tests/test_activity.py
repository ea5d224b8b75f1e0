"""
Tests for `domain/activity.py` and `services/activity_service.py`.
"""

from __future__ import annotations

import base64
import json
from uuid import uuid4

import pytest

from domain.activity import ActivityType, activity_type_for_action, payload_hash
from services.activity_service import log_activity


@pytest.mark.parametrize(
    "action, expected",
    [
        ("project_status_updated", ActivityType.PROJECT),
        ("invoice_paid", ActivityType.PAYMENT),
        ("payment_succeeded", ActivityType.PAYMENT),
        ("proposal_generated", ActivityType.LEAD),
        ("lead_created", ActivityType.LEAD),
        ("ticket_opened", ActivityType.SUPPORT),
        ("subscription_created", ActivityType.PROJECT),
    ],
)
def test_activity_type_for_action(action, expected) -> None:
    assert activity_type_for_action(action) is expected


def test_payload_hash_is_key_order_independent() -> None:
    assert payload_hash({"a": 1, "b": 2}) == payload_hash({"b": 2, "a": 1})
    assert json.loads(base64.b64decode(payload_hash({"a": 1}))) == {"a": 1}


def test_log_activity_writes_one_audit_log_and_one_activity(ctx, fake_db, clock) -> None:
    client_id = uuid4()

    log_activity(ctx, "user-1", "invoice_paid", {"invoiceId": "x"}, client_id=client_id)

    (audit,) = fake_db.rows("audit_logs")
    (activity,) = fake_db.rows("activities")
    assert audit["by_uid"] == "user-1"
    assert audit["payload_hash"] == payload_hash({"invoiceId": "x"})
    assert audit["at_utc"] == clock().isoformat()
    assert activity["type"] == "payment"
    assert activity["message"] == "Invoice paid"
    assert activity["client_id"] == str(client_id)
