"""
Tests for `domain/project.py`.

Covers contract rules:
- Stages only move to their immediate successor.
- Entering a stage stamps its milestone once; an existing stamp is kept.
- progress_percent follows the stage index.
- Package selection from discovery key points.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.errors import InvalidTransitionError
from domain.project import (
    STAGE_ORDER,
    Package,
    Project,
    ProjectStatus,
    can_transition,
    next_stage,
    package_from_key_points,
    progress_percent,
)

NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _project(status=ProjectStatus.INTAKE, milestones=None) -> Project:
    return Project(
        project_id=UUID("00000000-0000-0000-0000-000000000100"),
        client_id=UUID("00000000-0000-0000-0000-000000000002"),
        package=Package.STANDARD,
        status=status,
        created_at=NOW,
        updated_at=NOW,
        milestones=milestones or {},
    )


def test_stage_order() -> None:
    assert [stage.value for stage in STAGE_ORDER] == [
        "intake", "copy", "design", "build", "qa", "review", "live", "closed",
    ]


def test_only_immediate_successor_is_allowed() -> None:
    for index, stage in enumerate(STAGE_ORDER):
        for target_index, target in enumerate(STAGE_ORDER):
            assert can_transition(stage, target) == (target_index == index + 1)


def test_next_stage_is_none_when_closed() -> None:
    assert next_stage(ProjectStatus.INTAKE) is ProjectStatus.COPY
    assert next_stage(ProjectStatus.CLOSED) is None


@pytest.mark.parametrize(
    "status, expected",
    [(ProjectStatus.INTAKE, 13), (ProjectStatus.BUILD, 50), (ProjectStatus.QA, 63), (ProjectStatus.CLOSED, 100)],
)
def test_progress_percent(status, expected) -> None:
    assert progress_percent(status) == expected


def test_transition_stamps_target_milestone() -> None:
    project = _project(milestones={"intake": NOW})
    later = NOW + timedelta(days=2)

    milestones = project.transition_milestones(ProjectStatus.COPY, later)

    assert milestones == {"intake": NOW, "copy": later}


def test_transition_keeps_existing_stamp() -> None:
    project = _project(milestones={"intake": NOW, "copy": NOW})

    milestones = project.transition_milestones(ProjectStatus.COPY, NOW + timedelta(days=5))

    assert milestones["copy"] == NOW


@pytest.mark.parametrize(
    "current, target",
    [
        (ProjectStatus.INTAKE, ProjectStatus.DESIGN),
        (ProjectStatus.BUILD, ProjectStatus.COPY),
        (ProjectStatus.QA, ProjectStatus.QA),
        (ProjectStatus.CLOSED, ProjectStatus.INTAKE),
    ],
)
def test_skips_and_backward_moves_are_rejected(current, target) -> None:
    with pytest.raises(InvalidTransitionError):
        _project(status=current).transition_milestones(target, NOW)


def test_milestones_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _project(milestones={"intake": datetime(2025, 1, 1)})


@pytest.mark.parametrize(
    "key_points, expected",
    [
        (["Needs an ecommerce checkout"], Package.PREMIUM),
        (["CRM integration"], Package.PREMIUM),
        (["Wants a blog"], Package.STANDARD),
        (["Simple CMS for the team"], Package.STANDARD),
        (["One landing page"], Package.STARTER),
        ([], Package.STARTER),
    ],
)
def test_package_from_key_points(key_points, expected) -> None:
    assert package_from_key_points(key_points) is expected
