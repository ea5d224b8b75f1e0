"""
Domain: Proposal entity, pricing and numbering.

Contract excerpts implemented here:
- A Proposal references exactly one of a Lead or a Client.
- proposal_number format: PROP-<year:4>-<sequence:4, zero-padded>; the
  sequence is scoped to the calendar year and restarts at 0001.
- price = package base price x 1.3 for urgent delivery, rounded half-up.
- Signing creates a deposit of 40% of the price, rounded half-up.
- Status: draft -(send)-> sent -(signature)-> signed; draft|sent -(decline)-> declined.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .errors import InvalidTransitionError, ValidationError
from .project import Package
from .rounding import round_half_up
from .time import require_optional_utc_timestamp, require_utc_timestamp

URGENT_DELIVERY_MULTIPLIER = 1.3
DEPOSIT_RATE = 0.4
DEFAULT_CURRENCY = "USD"

_NUMBER_PATTERN = re.compile(r"^PROP-(\d{4})-(\d{4,})$")


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"
    DECLINED = "declined"


PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.DRAFT: frozenset({ProposalStatus.SENT, ProposalStatus.SIGNED, ProposalStatus.DECLINED}),
    ProposalStatus.SENT: frozenset({ProposalStatus.SIGNED, ProposalStatus.DECLINED}),
    ProposalStatus.SIGNED: frozenset(),
    ProposalStatus.DECLINED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class PackageTier:
    package: Package
    price: int
    timeline: str
    features: tuple[str, ...]


PACKAGE_CATALOG: dict[Package, PackageTier] = {
    Package.STARTER: PackageTier(
        package=Package.STARTER,
        price=8500,
        timeline="2-3 weeks",
        features=("5 pages", "Responsive design", "Basic SEO", "Contact forms", "1 month support"),
    ),
    Package.STANDARD: PackageTier(
        package=Package.STANDARD,
        price=15000,
        timeline="4-6 weeks",
        features=(
            "10 pages",
            "CMS integration",
            "Advanced SEO",
            "E-commerce ready",
            "Analytics setup",
            "3 months support",
        ),
    ),
    Package.PREMIUM: PackageTier(
        package=Package.PREMIUM,
        price=25000,
        timeline="6-8 weeks",
        features=(
            "Unlimited pages",
            "Custom CMS",
            "Advanced integrations",
            "Performance optimization",
            "Security hardening",
            "6 months support",
        ),
    ),
}


def calculate_price(package: Package, urgent_delivery: bool = False) -> int:
    base = PACKAGE_CATALOG[package].price
    multiplier = URGENT_DELIVERY_MULTIPLIER if urgent_delivery else 1.0
    return round_half_up(base * multiplier)


def deposit_amount(price: int) -> int:
    return round_half_up(price * DEPOSIT_RATE)


def number_prefix(year: int) -> str:
    return f"PROP-{year:04d}-"


def format_proposal_number(year: int, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    return f"{number_prefix(year)}{sequence:04d}"


def parse_proposal_number(number: str) -> tuple[int, int]:
    """Return (year, sequence). Raises ValueError for anything else."""

    match = _NUMBER_PATTERN.match(number or "")
    if match is None:
        raise ValueError(f"Not a proposal number: {number!r}")
    return int(match.group(1)), int(match.group(2))


def next_proposal_number(year: int, latest_in_year: Optional[str]) -> str:
    """
    Next number for `year` given the highest number already issued that year.

    A missing or unparseable latest number starts the year at 0001.
    """

    sequence = 1
    if latest_in_year:
        try:
            latest_year, latest_sequence = parse_proposal_number(latest_in_year)
        except ValueError:
            latest_year, latest_sequence = year, 0
        if latest_year == year:
            sequence = latest_sequence + 1
    return format_proposal_number(year, sequence)


@dataclass(frozen=True, slots=True)
class Proposal:
    proposal_id: UUID
    package: Package
    price: int
    status: ProposalStatus
    version: int
    proposal_number: str
    created_at: datetime
    updated_at: datetime

    lead_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    currency: str = DEFAULT_CURRENCY
    urgent_delivery: bool = False
    content: Mapping[str, Any] = field(default_factory=dict)
    document_path: Optional[str] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if (self.lead_id is None) == (self.client_id is None):
            raise ValidationError("A proposal must reference exactly one of lead_id or client_id")
        if self.version < 1:
            raise ValueError("version must be >= 1")
        if self.price < 0:
            raise ValueError("price must be >= 0")
        parse_proposal_number(self.proposal_number)
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        require_optional_utc_timestamp("sent_at", self.sent_at)
        require_optional_utc_timestamp("signed_at", self.signed_at)
        require_optional_utc_timestamp("declined_at", self.declined_at)

    @property
    def is_lead_sourced(self) -> bool:
        return self.lead_id is not None

    def require_transition(self, target: ProposalStatus) -> None:
        if target not in PROPOSAL_TRANSITIONS[self.status]:
            raise InvalidTransitionError("proposal", self.status.value, target.value)
