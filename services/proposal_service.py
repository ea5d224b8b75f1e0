"""
Proposal lifecycle: generation, send, decline and signature acceptance.

State machine (domain.proposal.PROPOSAL_TRANSITIONS):
    draft -> sent -> signed
    draft | sent -> declined

Numbering reads the highest number issued this year and increments it. The
read-then-insert is not atomic; reconciliation reports any duplicate numbers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional
from uuid import UUID, uuid4

from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.invoice import Invoice, InvoiceStatus, InvoiceType
from domain.lead import LeadStatus
from domain.project import Package
from domain.proposal import (
    DEFAULT_CURRENCY,
    PACKAGE_CATALOG,
    Proposal,
    ProposalStatus,
    calculate_price,
    deposit_amount,
    next_proposal_number,
)
from repositories.client_repository import get_client_by_id
from repositories.invoice_repository import get_deposit_invoice_for_proposal, insert_invoice
from repositories.lead_repository import update_lead_status as update_lead_status_row
from repositories.proposal_repository import (
    get_latest_proposal_number,
    get_proposal_by_id,
    insert_proposal,
    update_proposal_status,
)
from repositories.storage_repository import upload_file
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext
from services.conversion_service import convert_lead
from services.document_service import render_proposal_pdf
from services.lead_service import require_lead

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True, slots=True)
class SignatureAcceptance:
    """
    Outcome of accepting a proposal signature.

    already_signed: True when the proposal was signed before this call.
    invoice_id: the proposal's deposit invoice, whether created now or earlier.
    """
    proposal_id: UUID
    already_signed: bool
    invoice_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None


def proposal_document_path(proposal_id: UUID, proposal_number: str) -> str:
    return f"proposals/{proposal_id}/proposal-{proposal_number}.pdf"


def require_proposal(ctx: ServiceContext, proposal_id: UUID) -> Proposal:
    proposal = get_proposal_by_id(ctx.db, proposal_id)
    if proposal is None:
        raise NotFoundError("proposal", proposal_id)
    return proposal


def generate_proposal(
    ctx: ServiceContext,
    package: Package,
    lead_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    custom_requirements: Optional[str] = None,
    urgent_delivery: bool = False,
    by_uid: str = SYSTEM_USER,
) -> Proposal:
    """
    Create a draft proposal with LLM copy and a rendered PDF.

    Args:
        package: Package tier being proposed
        lead_id / client_id: Exactly one must be given
        custom_requirements: Free-text requirements passed to the copywriter
        urgent_delivery: Applies the urgent-delivery price multiplier

    Returns:
        The persisted Proposal with document_path attached

    Raises:
        ValidationError: both or neither of lead_id / client_id given
        NotFoundError: the referenced Lead or Client does not exist
        ExternalServiceError: proposal copy generation failed
    """

    if (lead_id is None) == (client_id is None):
        raise ValidationError("Provide exactly one of lead_id or client_id")

    if lead_id is not None:
        lead = require_lead(ctx, lead_id)
        client_name, company, email, notes = lead.name, lead.company, lead.email, lead.notes
    else:
        client = get_client_by_id(ctx.db, client_id)
        if client is None:
            raise NotFoundError("client", client_id)
        contact = client.primary_contact
        client_name = contact.name if contact else client.company
        company, email, notes = client.company, client.billing_email, ""

    now = ctx.now()
    proposal_number = next_proposal_number(now.year, get_latest_proposal_number(ctx.db, now.year))
    tier = PACKAGE_CATALOG[package]
    price = calculate_price(package, urgent_delivery)

    content = ctx.llm.generate_proposal_content(
        {
            "client_name": client_name,
            "company": company,
            "email": email,
            "package": package.value,
            "price": price,
            "timeline": tier.timeline,
            "features": list(tier.features),
            "custom_requirements": custom_requirements,
            "notes": notes,
        }
    )

    # The draft row is inserted only after its PDF is stored.
    proposal_id = uuid4()
    pdf = render_proposal_pdf(
        proposal_number=proposal_number,
        client_name=client_name,
        company=company,
        package=package.value,
        price=price,
        currency=DEFAULT_CURRENCY,
        content=content,
    )
    path = upload_file(
        ctx.db,
        ctx.settings.storage_bucket,
        proposal_document_path(proposal_id, proposal_number),
        pdf,
        PDF_CONTENT_TYPE,
    )

    proposal = Proposal(
        proposal_id=proposal_id,
        package=package,
        price=price,
        status=ProposalStatus.DRAFT,
        version=1,
        proposal_number=proposal_number,
        created_at=now,
        updated_at=now,
        lead_id=lead_id,
        client_id=client_id,
        urgent_delivery=urgent_delivery,
        content=content,
        document_path=path,
    )
    insert_proposal(ctx.db, proposal)

    log_activity(
        ctx,
        by_uid,
        "proposal_generated",
        {"proposalId": str(proposal.proposal_id), "proposalNumber": proposal_number, "package": package.value, "price": price},
        client_id=client_id,
    )
    logger.info(
        "Proposal generated",
        extra={"proposal_id": str(proposal.proposal_id), "proposal_number": proposal_number, "price": price},
    )
    return proposal


def _move(ctx: ServiceContext, proposal: Proposal, target: ProposalStatus) -> Proposal:
    proposal.require_transition(target)
    now = ctx.now()
    if not update_proposal_status(ctx.db, proposal.proposal_id, proposal.status, target, now):
        raise ConflictError(f"Proposal {proposal.proposal_id} changed status concurrently; reload and retry")

    stamps = {
        ProposalStatus.SENT: "sent_at",
        ProposalStatus.SIGNED: "signed_at",
        ProposalStatus.DECLINED: "declined_at",
    }
    return replace(proposal, status=target, updated_at=now, **{stamps[target]: now})


def send_proposal(ctx: ServiceContext, proposal_id: UUID, by_uid: str = SYSTEM_USER) -> Proposal:
    """
    draft -> sent.

    Raises:
        NotFoundError: unknown proposal
        InvalidTransitionError: the proposal is not a draft
    """

    proposal = _move(ctx, require_proposal(ctx, proposal_id), ProposalStatus.SENT)
    if proposal.lead_id is not None:
        update_lead_status_row(ctx.db, proposal.lead_id, LeadStatus.PROPOSAL_SENT, proposal.updated_at)
    log_activity(
        ctx,
        by_uid,
        "proposal_sent",
        {"proposalId": str(proposal_id), "proposalNumber": proposal.proposal_number},
        client_id=proposal.client_id,
    )
    return proposal


def decline_proposal(ctx: ServiceContext, proposal_id: UUID, by_uid: str = SYSTEM_USER) -> Proposal:
    proposal = _move(ctx, require_proposal(ctx, proposal_id), ProposalStatus.DECLINED)
    log_activity(
        ctx,
        by_uid,
        "proposal_declined",
        {"proposalId": str(proposal_id), "proposalNumber": proposal.proposal_number},
        client_id=proposal.client_id,
    )
    return proposal


def accept_proposal_signature(
    ctx: ServiceContext,
    proposal_id: UUID,
    external_invoice_ref: Optional[str] = None,
    by_uid: str = "stripe",
) -> SignatureAcceptance:
    """
    Mark a proposal signed and create its paid deposit invoice.

    A lead-sourced proposal converts its Lead into a Client and Project, and
    the deposit invoice is attached to them. Each step is skipped when its
    record already exists and the proposal is moved to signed last, so a call
    that failed partway is completed by the next one. Calling this again for
    a signed proposal creates nothing.

    Raises:
        NotFoundError: unknown proposal
        InvalidTransitionError: the proposal was declined
    """

    proposal = require_proposal(ctx, proposal_id)
    already_signed = proposal.status is ProposalStatus.SIGNED
    if not already_signed:
        proposal.require_transition(ProposalStatus.SIGNED)

    client_id = proposal.client_id
    project_id: Optional[UUID] = None
    if proposal.lead_id is not None:
        conversion = convert_lead(ctx, proposal.lead_id, package=proposal.package, by_uid=by_uid)
        client_id, project_id = conversion.client_id, conversion.project_id
        if not already_signed:
            update_lead_status_row(ctx.db, proposal.lead_id, LeadStatus.WON, ctx.now())

    deposit = get_deposit_invoice_for_proposal(ctx.db, proposal_id)
    if deposit is None:
        now = ctx.now()
        deposit = Invoice(
            invoice_id=uuid4(),
            client_id=client_id,
            project_id=project_id,
            proposal_id=proposal_id,
            amount=deposit_amount(proposal.price),
            currency=proposal.currency,
            type=InvoiceType.DEPOSIT,
            status=InvoiceStatus.PAID,
            created_at=now,
            updated_at=now,
            stripe_invoice_id=external_invoice_ref,
            paid_at=now,
        )
        insert_invoice(ctx.db, deposit)

    if not already_signed:
        try:
            _move(ctx, proposal, ProposalStatus.SIGNED)
        except ConflictError:
            if require_proposal(ctx, proposal_id).status is not ProposalStatus.SIGNED:
                raise
            already_signed = True

    if not already_signed:
        log_activity(
            ctx,
            by_uid,
            "proposal_accepted",
            {"proposalId": str(proposal_id), "depositInvoiceId": str(deposit.invoice_id), "amount": deposit.amount},
            client_id=client_id,
            project_id=project_id,
        )
        logger.info(
            "Proposal signed",
            extra={"proposal_id": str(proposal_id), "invoice_id": str(deposit.invoice_id), "deposit": deposit.amount},
        )
    return SignatureAcceptance(
        proposal_id=proposal_id,
        already_signed=already_signed,
        invoice_id=deposit.invoice_id,
        client_id=client_id,
        project_id=project_id,
    )


__all__ = [
    "SignatureAcceptance",
    "proposal_document_path",
    "require_proposal",
    "generate_proposal",
    "send_proposal",
    "decline_proposal",
    "accept_proposal_signature",
]
