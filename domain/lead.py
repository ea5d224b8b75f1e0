"""
Domain: Lead entity.

Contract excerpts implemented here:
- A Lead represents a single inbound enquiry and is uniquely identified by lead_id (UUID).
- lead_fingerprint = md5(lower(email) + "-" + lower(company)); no two non-deleted
  Leads may share a fingerprint.
- Status is one of: new, qualified, discovery_booked, proposal_sent, won, lost.
- Leads are soft-deleted only (is_deleted); they are never hard-deleted.
- After conversion the Lead carries client_id/project_id back-references and a
  converted_at marker that is set exactly once.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .errors import ValidationError
from .time import require_optional_utc_timestamp, require_utc_timestamp

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LeadStatus(str, Enum):
    NEW = "new"
    QUALIFIED = "qualified"
    DISCOVERY_BOOKED = "discovery_booked"
    PROPOSAL_SENT = "proposal_sent"
    WON = "won"
    LOST = "lost"


def compute_fingerprint(email: str, company: str) -> str:
    """Deduplication key for a (email, company) pair. Case-insensitive."""

    key = f"{email.lower()}-{company.lower()}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Utm:
    """Marketing attribution triple captured with the submission."""

    source: Optional[str] = None
    medium: Optional[str] = None
    campaign: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Utm":
        data = data or {}
        return cls(
            source=data.get("source") or None,
            medium=data.get("medium") or None,
            campaign=data.get("campaign") or None,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            key: value
            for key, value in (("source", self.source), ("medium", self.medium), ("campaign", self.campaign))
            if value
        }


@dataclass(frozen=True, slots=True)
class LeadSubmission:
    """
    Raw inbound lead submission, validated at construction.

    Raises ValidationError for malformed input so nothing is written.
    """

    name: str
    company: str
    email: str
    source: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    utm: Optional[Utm] = None
    budget_range: Optional[str] = None
    project_type: Optional[str] = None
    timeline: Optional[str] = None

    def __post_init__(self) -> None:
        if len((self.name or "").strip()) < 2:
            raise ValidationError("name must be at least 2 characters")
        if len((self.company or "").strip()) < 2:
            raise ValidationError("company must be at least 2 characters")
        if not _EMAIL_PATTERN.match(self.email or ""):
            raise ValidationError(f"Invalid email address: {self.email!r}")
        if not (self.source or "").strip():
            raise ValidationError("source is required")

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.email, self.company)

    @property
    def email_domain(self) -> str:
        return self.email.rsplit("@", 1)[-1].lower()

    def stored_notes(self) -> str:
        """Notes as persisted: free text followed by budget/type/timeline lines."""

        lines = [self.notes or ""]
        if self.budget_range:
            lines.append(f"Budget: {self.budget_range}")
        if self.project_type:
            lines.append(f"Type: {self.project_type}")
        if self.timeline:
            lines.append(f"Timeline: {self.timeline}")
        return "\n".join(lines).strip()


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Persisted Lead.

    Immutability:
    - The entity is frozen; status changes produce a new instance via
      dataclasses.replace() in the lifecycle service.
    """

    lead_id: UUID
    name: str
    company: str
    email: str
    source: str
    lead_fingerprint: str
    score: int
    status: LeadStatus
    created_at: datetime
    updated_at: datetime

    phone: Optional[str] = None
    notes: str = ""
    utm: Utm = Utm()
    budget_range: Optional[str] = None
    project_type: Optional[str] = None
    timeline: Optional[str] = None

    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    # Conversion back-references
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    converted_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError("score must be within [0, 100]")
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        require_optional_utc_timestamp("deleted_at", self.deleted_at)
        require_optional_utc_timestamp("converted_at", self.converted_at)

    @property
    def is_converted(self) -> bool:
        return self.converted_at is not None
