"""
Domain: Project entity and stage order.

Contract excerpts implemented here:
- A Project belongs to exactly one Client.
- status moves through a fixed total order:
  intake -> copy -> design -> build -> qa -> review -> live -> closed
- Only the immediate successor is an allowed transition: no skipping and no
  backward moves. Anything else raises InvalidTransitionError.
- Entering a stage stamps that stage's milestone timestamp exactly once.
- progress_percent = round((index + 1) / len(STAGE_ORDER) * 100)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional
from uuid import UUID

from .errors import InvalidTransitionError
from .rounding import round_half_up
from .time import require_utc_timestamp


class ProjectStatus(str, Enum):
    INTAKE = "intake"
    COPY = "copy"
    DESIGN = "design"
    BUILD = "build"
    QA = "qa"
    REVIEW = "review"
    LIVE = "live"
    CLOSED = "closed"


class Package(str, Enum):
    STARTER = "starter"
    STANDARD = "standard"
    PREMIUM = "premium"


STAGE_ORDER: tuple[ProjectStatus, ...] = tuple(ProjectStatus)

ALLOWED_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    stage: frozenset({STAGE_ORDER[index + 1]}) if index + 1 < len(STAGE_ORDER) else frozenset()
    for index, stage in enumerate(STAGE_ORDER)
}

_PREMIUM_KEYWORDS = ("e-commerce", "ecommerce", "integration", "complex")
_STANDARD_KEYWORDS = ("cms", "blog", "multi-page")


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def next_stage(current: ProjectStatus) -> Optional[ProjectStatus]:
    """Immediate successor, or None once the project is closed."""

    successors = ALLOWED_TRANSITIONS[current]
    return next(iter(successors)) if successors else None


def progress_percent(status: ProjectStatus) -> int:
    return round_half_up((STAGE_ORDER.index(status) + 1) / len(STAGE_ORDER) * 100)


def package_from_key_points(key_points: Iterable[str]) -> Package:
    """
    Pick a package tier from discovery-call key points.

    e-commerce / integration / complex -> premium
    CMS / blog / multi-page            -> standard
    otherwise                          -> starter
    """

    text = " ".join(key_points).lower()
    if any(keyword in text for keyword in _PREMIUM_KEYWORDS):
        return Package.PREMIUM
    if any(keyword in text for keyword in _STANDARD_KEYWORDS):
        return Package.STANDARD
    return Package.STARTER


@dataclass(frozen=True, slots=True)
class Project:
    project_id: UUID
    client_id: UUID
    package: Package
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime

    tech: str = "nextjs_vercel"
    milestones: Mapping[str, datetime] = field(default_factory=dict)
    launch_checklist_status: Mapping[str, bool] = field(default_factory=dict)
    repo_url: Optional[str] = None
    staging_url: Optional[str] = None
    production_url: Optional[str] = None
    client_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        for stage, stamped_at in self.milestones.items():
            require_utc_timestamp(f"milestones.{stage}", stamped_at)

    @property
    def progress_percent(self) -> int:
        return progress_percent(self.status)

    def milestone(self, stage: ProjectStatus) -> Optional[datetime]:
        return self.milestones.get(stage.value)

    def transition_milestones(self, target: ProjectStatus, at: datetime) -> dict[str, datetime]:
        """
        Milestones after moving to `target`.

        Raises InvalidTransitionError unless `target` is the immediate successor.
        An existing stamp for `target` is kept as-is.
        """

        if not can_transition(self.status, target):
            raise InvalidTransitionError("project", self.status.value, target.value)
        require_utc_timestamp("at", at)
        milestones = dict(self.milestones)
        milestones.setdefault(target.value, at)
        return milestones
