"""
Shared router dependencies and error mapping.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    SignatureVerificationError,
    ValidationError,
)
from services.context import ServiceContext


def get_context(request: Request) -> ServiceContext:
    """The ServiceContext built at startup (overridden in tests)."""

    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Service is not configured")
    return context


def to_http_exception(exc: DomainError) -> HTTPException:
    """
    Map a domain error to its HTTP status.

    ValidationError (incl. InvalidTransitionError) -> 400
    SignatureVerificationError                     -> 400
    NotFoundError                                  -> 404
    ConflictError                                  -> 409
    anything else (e.g. ExternalServiceError)      -> 500
    """

    if isinstance(exc, (ValidationError, SignatureVerificationError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
