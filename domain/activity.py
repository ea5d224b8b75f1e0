"""
Domain: audit and activity records.

Both are append-only: one AuditLog and one Activity per state-changing action.
The audit log stores a hash of the payload, not the payload itself.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp


class ActivityType(str, Enum):
    PROJECT = "project"
    PAYMENT = "payment"
    LEAD = "lead"
    SUPPORT = "support"


def activity_type_for_action(action: str) -> ActivityType:
    if "project" in action or "launch" in action:
        return ActivityType.PROJECT
    if "payment" in action or "invoice" in action:
        return ActivityType.PAYMENT
    if "lead" in action or "proposal" in action:
        return ActivityType.LEAD
    if "ticket" in action or "support" in action:
        return ActivityType.SUPPORT
    return ActivityType.PROJECT


def payload_hash(payload: Mapping[str, Any]) -> str:
    """Base64 of the canonical JSON payload (stable key order)."""

    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return base64.b64encode(encoded).decode("ascii")


@dataclass(frozen=True, slots=True)
class AuditLog:
    log_id: UUID
    at: datetime
    by_uid: str
    action: str
    payload_hash: str
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("at", self.at)


@dataclass(frozen=True, slots=True)
class Activity:
    activity_id: UUID
    message: str
    type: ActivityType
    user_id: str
    timestamp: datetime
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)
