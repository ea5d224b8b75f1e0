"""
Stripe webhook endpoint.

The raw request body is needed for signature verification, so this endpoint
reads it directly and runs the (blocking) processing in the threadpool.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_context, to_http_exception
from api.models import WebhookResponse
from domain.errors import DomainError
from services.context import ServiceContext
from services.payment_webhook_service import handle_webhook

router = APIRouter()


@router.post("/stripe/webhook", response_model=WebhookResponse, summary="Stripe Webhook")
async def stripe_webhook_endpoint(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    ctx: ServiceContext = Depends(get_context),
):
    """
    Ingest a Stripe event.

    - 400 when the signature is missing or invalid (nothing is processed)
    - 200 for processed, duplicate and unhandled event types
    - 500 when a handler fails; Stripe retries the delivery
    """
    payload = await request.body()
    try:
        result = await run_in_threadpool(handle_webhook, ctx, payload, stripe_signature)
        return WebhookResponse(event_id=result.event_id, event_type=result.event_type, outcome=result.outcome)

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to process webhook: {str(e)}")
