"""
Domain: Client accounts.

A Client is created exactly once per converted Lead (one-directional, never
reversed). It owns Projects, Invoices and Subscriptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple
from uuid import UUID

from .time import require_utc_timestamp


class Plan(str, Enum):
    NONE = "none"
    CARE_BASIC = "care_basic"
    CARE_PLUS = "care_plus"
    CARE_PRO = "care_pro"


@dataclass(frozen=True, slots=True)
class Contact:
    name: str
    email: str
    phone: str = ""
    role: str = "Primary Contact"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Contact":
        return cls(
            name=str(data.get("name", "")),
            email=str(data.get("email", "")),
            phone=str(data.get("phone") or ""),
            role=str(data.get("role") or "Primary Contact"),
        )

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "email": self.email, "phone": self.phone, "role": self.role}


@dataclass(frozen=True, slots=True)
class Client:
    """
    Client account with billing state.

    plan mirrors the active care-plan subscription (none when there is none).
    """

    client_id: UUID
    company: str
    billing_email: str
    plan: Plan
    created_at: datetime
    updated_at: datetime

    legal_name: Optional[str] = None
    contacts: Tuple[Contact, ...] = field(default_factory=tuple)
    stripe_customer_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)

    @property
    def primary_contact(self) -> Optional[Contact]:
        return self.contacts[0] if self.contacts else None

    def has_care_plan(self) -> bool:
        return self.plan is not Plan.NONE
