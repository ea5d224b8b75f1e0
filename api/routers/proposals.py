"""
Proposal API Endpoints.

Endpoints for generating proposals and moving them through send/decline.
Signing arrives through the payment webhook (checkout.session.completed).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_context, to_http_exception
from api.models import ProposalGenerateRequest, ProposalResponse
from domain.errors import DomainError
from domain.proposal import Proposal, deposit_amount
from services.context import ServiceContext
from services.proposal_service import decline_proposal, generate_proposal, send_proposal

router = APIRouter()


def _to_response(proposal: Proposal) -> ProposalResponse:
    return ProposalResponse(
        proposal_id=proposal.proposal_id,
        proposal_number=proposal.proposal_number,
        status=proposal.status.value,
        package=proposal.package,
        price=proposal.price,
        deposit=deposit_amount(proposal.price),
        currency=proposal.currency,
        version=proposal.version,
        lead_id=proposal.lead_id,
        client_id=proposal.client_id,
        document_path=proposal.document_path,
    )


@router.post(
    "/proposals/generate",
    response_model=ProposalResponse,
    status_code=201,
    summary="Generate Proposal",
)
def generate_proposal_endpoint(request: ProposalGenerateRequest, ctx: ServiceContext = Depends(get_context)):
    """
    Generate a draft proposal for a lead or client.

    **Pricing:** starter 8,500 / standard 15,000 / premium 25,000, x1.3 for urgent delivery.
    The deposit due on signature is 40% of the price.
    """
    try:
        proposal = generate_proposal(
            ctx,
            package=request.package,
            lead_id=request.lead_id,
            client_id=request.client_id,
            custom_requirements=request.custom_requirements,
            urgent_delivery=request.urgent_delivery,
        )
        return _to_response(proposal)

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to generate proposal: {str(e)}")


@router.post("/proposals/{proposal_id}/send", response_model=ProposalResponse, summary="Send Proposal")
def send_proposal_endpoint(proposal_id: UUID, ctx: ServiceContext = Depends(get_context)):
    try:
        return _to_response(send_proposal(ctx, proposal_id))

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to send proposal: {str(e)}")


@router.post("/proposals/{proposal_id}/decline", response_model=ProposalResponse, summary="Decline Proposal")
def decline_proposal_endpoint(proposal_id: UUID, ctx: ServiceContext = Depends(get_context)):
    try:
        return _to_response(decline_proposal(ctx, proposal_id))

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to decline proposal: {str(e)}")
