"""
Lead lifecycle: intake, status changes and soft deletion.

Intake runs validate -> dedup -> score -> insert, then the side effects:
activity log, a 48-hour follow-up email, and for high scores an automatic
qualification with a high-value-lead notification.

The fingerprint check is read-then-insert with no storage-level uniqueness
constraint; scripts/reconcile_records.py reports any duplicates that slip
through the race window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

from domain.errors import ConflictError, NotFoundError
from domain.lead import Lead, LeadStatus, LeadSubmission, Utm
from domain.scoring import qualifies_automatically, score_lead
from repositories.activity_repository import insert_notification, insert_scheduled_email
from repositories.lead_repository import (
    find_active_lead_by_fingerprint,
    get_lead_by_id,
    insert_lead,
    soft_delete_lead as soft_delete_lead_row,
    update_lead_status as update_lead_status_row,
)
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext

logger = logging.getLogger(__name__)

FOLLOW_UP_DELAY = timedelta(hours=48)
FOLLOW_UP_EMAIL_TYPE = "follow_up"
HIGH_VALUE_NOTIFICATION_TYPE = "high_value_lead"


@dataclass(frozen=True, slots=True)
class LeadCreationResult:
    lead: Lead
    auto_qualified: bool


def create_lead(ctx: ServiceContext, submission: LeadSubmission, by_uid: str = SYSTEM_USER) -> LeadCreationResult:
    """
    Create a Lead from a validated submission.

    Raises:
        ConflictError: a non-deleted Lead already has this email/company fingerprint
    """

    fingerprint = submission.fingerprint
    existing = find_active_lead_by_fingerprint(ctx.db, fingerprint)
    if existing is not None:
        logger.info("Duplicate lead rejected", extra={"lead_id": str(existing.lead_id)})
        raise ConflictError(f"A lead for {submission.email} at {submission.company} already exists")

    score = score_lead(submission)
    auto_qualified = qualifies_automatically(score)
    now = ctx.now()

    lead = Lead(
        lead_id=uuid4(),
        name=submission.name.strip(),
        company=submission.company.strip(),
        email=submission.email.strip().lower(),
        source=submission.source,
        lead_fingerprint=fingerprint,
        score=score,
        status=LeadStatus.NEW,
        created_at=now,
        updated_at=now,
        phone=submission.phone,
        notes=submission.stored_notes(),
        utm=submission.utm or Utm(),
        budget_range=submission.budget_range,
        project_type=submission.project_type,
        timeline=submission.timeline,
    )
    insert_lead(ctx.db, lead)

    log_activity(
        ctx,
        by_uid,
        "lead_created",
        {"leadId": str(lead.lead_id), "source": lead.source, "score": score},
    )

    insert_scheduled_email(
        ctx.db,
        lead_id=lead.lead_id,
        email=lead.email,
        name=lead.name,
        email_type=FOLLOW_UP_EMAIL_TYPE,
        scheduled_for=now + FOLLOW_UP_DELAY,
    )

    if auto_qualified:
        update_lead_status_row(ctx.db, lead.lead_id, LeadStatus.QUALIFIED, now)
        lead = replace(lead, status=LeadStatus.QUALIFIED)
        insert_notification(
            ctx.db,
            notification_type=HIGH_VALUE_NOTIFICATION_TYPE,
            lead_id=lead.lead_id,
            message=f"High-value lead: {lead.name} from {lead.company} (Score: {score})",
            created_at=now,
        )

    logger.info(
        "Lead created",
        extra={"lead_id": str(lead.lead_id), "score": score, "auto_qualified": auto_qualified},
    )
    return LeadCreationResult(lead=lead, auto_qualified=auto_qualified)


def require_lead(ctx: ServiceContext, lead_id: UUID) -> Lead:
    lead = get_lead_by_id(ctx.db, lead_id)
    if lead is None or lead.is_deleted:
        raise NotFoundError("lead", lead_id)
    return lead


def update_lead_status(
    ctx: ServiceContext,
    lead_id: UUID,
    status: LeadStatus,
    by_uid: str = SYSTEM_USER,
    notes: Optional[str] = None,
) -> Lead:
    """Set a Lead's status (manual pipeline moves are not order-checked)."""

    lead = require_lead(ctx, lead_id)
    now = ctx.now()
    update_lead_status_row(ctx.db, lead_id, status, now, notes=notes)
    log_activity(
        ctx,
        by_uid,
        "lead_status_updated",
        {"leadId": str(lead_id), "from": lead.status.value, "to": status.value},
        client_id=lead.client_id,
        project_id=lead.project_id,
    )
    return replace(lead, status=status, updated_at=now, notes=notes if notes is not None else lead.notes)


def soft_delete_lead(ctx: ServiceContext, lead_id: UUID, by_uid: str = SYSTEM_USER) -> None:
    require_lead(ctx, lead_id)
    soft_delete_lead_row(ctx.db, lead_id, ctx.now())
    log_activity(ctx, by_uid, "lead_deleted", {"leadId": str(lead_id)})


__all__ = [
    "FOLLOW_UP_DELAY",
    "LeadCreationResult",
    "create_lead",
    "require_lead",
    "update_lead_status",
    "soft_delete_lead",
]
