"""
Domain: error taxonomy.

Services raise these; API routers translate them into HTTP status codes.
Lookups driven by payment webhooks never raise NotFoundError; they log and
return instead.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures."""


class ValidationError(DomainError, ValueError):
    """Malformed or incomplete input. Raised before any write happens."""


class InvalidTransitionError(ValidationError):
    """A status change that the entity's transition table does not allow."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")


class NotFoundError(DomainError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConflictError(DomainError):
    """The write would violate a uniqueness rule (e.g. duplicate lead fingerprint)."""


class SignatureVerificationError(DomainError):
    """An inbound payment event failed authenticity verification."""


class ExternalServiceError(DomainError):
    """A managed platform (LLM, storage, payments) failed or returned garbage."""
