"""
Lead API Endpoints.

Endpoints for lead intake, status changes and soft deletion.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import get_context, to_http_exception
from api.models import LeadCreateRequest, LeadResponse, LeadStatusRequest
from domain.errors import DomainError
from domain.lead import LeadSubmission, Utm
from services.context import ServiceContext
from services.lead_service import create_lead, soft_delete_lead, update_lead_status

router = APIRouter()


@router.post(
    "/leads",
    response_model=LeadResponse,
    status_code=201,
    summary="Create Lead",
    description="Validate, deduplicate and score an inbound lead.",
)
def create_lead_endpoint(request: LeadCreateRequest, ctx: ServiceContext = Depends(get_context)):
    """
    Create a lead from a form submission.

    **Process:**
    1. Validates name, company, email and source
    2. Rejects a duplicate email/company pair with 409
    3. Scores the lead (0-100) and stores it
    4. Schedules a follow-up email in 48 hours
    5. Scores of 80 and above are qualified automatically
    """
    try:
        submission = LeadSubmission(
            name=request.name,
            company=request.company,
            email=request.email,
            source=request.source,
            phone=request.phone,
            notes=request.notes,
            utm=Utm.from_mapping(request.utm.model_dump()) if request.utm else None,
            budget_range=request.budget_range,
            project_type=request.project_type,
            timeline=request.timeline,
        )
        result = create_lead(ctx, submission)
        return LeadResponse(
            lead_id=result.lead.lead_id,
            status=result.lead.status,
            score=result.lead.score,
            auto_qualified=result.auto_qualified,
        )

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create lead: {str(e)}")


@router.post(
    "/leads/{lead_id}/status",
    response_model=LeadResponse,
    summary="Update Lead Status",
)
def update_lead_status_endpoint(
    lead_id: UUID,
    request: LeadStatusRequest,
    ctx: ServiceContext = Depends(get_context),
):
    try:
        lead = update_lead_status(ctx, lead_id, request.status, notes=request.notes)
        return LeadResponse(
            lead_id=lead.lead_id,
            status=lead.status,
            score=lead.score,
            client_id=lead.client_id,
            project_id=lead.project_id,
        )

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update lead: {str(e)}")


@router.delete("/leads/{lead_id}", status_code=204, summary="Delete Lead")
def delete_lead_endpoint(lead_id: UUID, ctx: ServiceContext = Depends(get_context)):
    """Soft-delete a lead. Leads are never removed from storage."""
    try:
        soft_delete_lead(ctx, lead_id)
        return Response(status_code=204)

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete lead: {str(e)}")
