"""
Domain: care-plan Subscription.

Mirrors an external billing subscription's lifecycle:
- created  -> active, Client.plan set from the price id
- updated  -> active if the external status is "active", otherwise on_hold
- deleted  -> canceled, Client.plan reset to none
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID

from .client import Plan
from .time import require_optional_utc_timestamp, require_utc_timestamp

DEFAULT_PLAN = Plan.CARE_BASIC


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    CANCELED = "canceled"


def plan_for_price_id(price_id: Optional[str], price_map: Mapping[str, Plan]) -> Plan:
    """Unmapped (or missing) price ids fall back to the lowest care tier."""

    if not price_id:
        return DEFAULT_PLAN
    return price_map.get(price_id, DEFAULT_PLAN)


def status_from_external(external_status: Optional[str]) -> SubscriptionStatus:
    return SubscriptionStatus.ACTIVE if external_status == "active" else SubscriptionStatus.ON_HOLD


@dataclass(frozen=True, slots=True)
class Subscription:
    subscription_id: UUID
    client_id: UUID
    plan: Plan
    status: SubscriptionStatus
    created_at: datetime
    updated_at: datetime

    stripe_subscription_id: Optional[str] = None
    last_invoice_status: Optional[str] = None
    current_period_end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.plan is Plan.NONE:
            raise ValueError("A subscription must carry a care plan")
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        require_optional_utc_timestamp("current_period_end", self.current_period_end)
