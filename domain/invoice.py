"""
Domain: Invoice entity.

Invoice status is driven only by inbound payment events (and by proposal
signature acceptance, which records its deposit as already paid). There is no
user-facing action that changes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp


class InvoiceType(str, Enum):
    DEPOSIT = "deposit"
    MILESTONE = "milestone"
    CARE = "care"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True, slots=True)
class Invoice:
    invoice_id: UUID
    client_id: UUID
    amount: int
    currency: str
    type: InvoiceType
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime

    project_id: Optional[UUID] = None
    proposal_id: Optional[UUID] = None
    stripe_invoice_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    due_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("amount must be >= 0")
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        require_optional_utc_timestamp("paid_at", self.paid_at)
        require_optional_utc_timestamp("due_at", self.due_at)

    @property
    def is_paid(self) -> bool:
        return self.status is InvoiceStatus.PAID
