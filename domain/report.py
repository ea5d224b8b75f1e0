"""
Domain: monthly care-plan reports.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp

MIN_REPORT_YEAR = 2020


class ReportStatus(str, Enum):
    GENERATED = "generated"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    """A calendar month in UTC, [start, end)."""

    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValidationError("month must be within 1-12")
        if self.year < MIN_REPORT_YEAR:
            raise ValidationError(f"year must be >= {MIN_REPORT_YEAR}")

    @classmethod
    def previous_to(cls, as_of: datetime) -> "ReportPeriod":
        require_utc_timestamp("as_of", as_of)
        first_of_month = as_of.replace(day=1)
        last_month = first_of_month - timedelta(days=1)
        return cls(month=last_month.month, year=last_month.year)

    @property
    def start(self) -> datetime:
        return datetime(self.year, self.month, 1, tzinfo=timezone.utc)

    @property
    def end(self) -> datetime:
        days = calendar.monthrange(self.year, self.month)[1]
        return self.start + timedelta(days=days)

    @property
    def label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def slug(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True, slots=True)
class Report:
    report_id: UUID
    client_id: UUID
    period: ReportPeriod
    status: ReportStatus
    generated_at: datetime
    data: Mapping[str, Any] = field(default_factory=dict)
    insights: Mapping[str, Any] = field(default_factory=dict)
    document_path: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("generated_at", self.generated_at)
