"""
Project stage advancement.

Stages only move to their immediate successor (see domain.project). Every move
is a conditional write on the previous status, so a replayed or concurrent
trigger cannot apply the same transition twice. Entering `copy` provisions the
project's repository and staging URLs.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from domain.errors import ConflictError, InvalidTransitionError, NotFoundError
from domain.project import Project, ProjectStatus, next_stage
from repositories.project_repository import get_project_by_id, set_infrastructure_urls, update_project_stage
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext

logger = logging.getLogger(__name__)

REPO_ORGANIZATION = "notrom-agency"


def require_project(ctx: ServiceContext, project_id: UUID) -> Project:
    project = get_project_by_id(ctx.db, project_id)
    if project is None:
        raise NotFoundError("project", project_id)
    return project


def _apply_transition(ctx: ServiceContext, project: Project, target: ProjectStatus, by_uid: str) -> Project:
    now = ctx.now()
    milestones = project.transition_milestones(target, now)

    if not update_project_stage(ctx.db, project.project_id, project.status, target, milestones, now):
        raise ConflictError(f"Project {project.project_id} changed stage concurrently; reload and retry")

    moved = replace(project, status=target, milestones=milestones, updated_at=now)
    log_activity(
        ctx,
        by_uid,
        "project_status_updated",
        {"projectId": str(project.project_id), "from": project.status.value, "to": target.value},
        client_id=project.client_id,
        project_id=project.project_id,
    )
    logger.info(
        "Project stage advanced",
        extra={"project_id": str(project.project_id), "from": project.status.value, "to": target.value},
    )

    if target is ProjectStatus.COPY:
        moved = provision_infrastructure(ctx, moved)
    return moved


def set_project_status(
    ctx: ServiceContext,
    project_id: UUID,
    target: ProjectStatus,
    by_uid: str = SYSTEM_USER,
) -> Project:
    """
    Move a project to `target`.

    Raises:
        NotFoundError: unknown project
        InvalidTransitionError: `target` is not the immediate successor
        ConflictError: the stored stage changed between read and write
    """

    project = require_project(ctx, project_id)
    return _apply_transition(ctx, project, target, by_uid)


def advance_project(ctx: ServiceContext, project_id: UUID, by_uid: str = SYSTEM_USER) -> Project:
    project = require_project(ctx, project_id)
    target = next_stage(project.status)
    if target is None:
        raise InvalidTransitionError("project", project.status.value, "<none>")
    return _apply_transition(ctx, project, target, by_uid)


def advance_on_deposit(ctx: ServiceContext, project_id: UUID) -> bool:
    """
    Deposit paid: move an `intake` project to `copy`.

    A missing project or one already past intake is a logged no-op, so a
    redelivered payment event leaves the stage and milestone untouched.
    """

    project = get_project_by_id(ctx.db, project_id)
    if project is None:
        logger.info("Deposit for unknown project ignored", extra={"project_id": str(project_id)})
        return False
    if project.status is not ProjectStatus.INTAKE:
        logger.info(
            "Deposit for project past intake ignored",
            extra={"project_id": str(project_id), "status": project.status.value},
        )
        return False

    try:
        _apply_transition(ctx, project, ProjectStatus.COPY, "stripe")
    except ConflictError:
        logger.info("Deposit advance lost to a concurrent update", extra={"project_id": str(project_id)})
        return False
    return True


def provision_infrastructure(ctx: ServiceContext, project: Project) -> Project:
    repo_url = f"https://github.com/{REPO_ORGANIZATION}/client-{project.client_id}"
    staging_url = f"https://client-{project.client_id}-staging.vercel.app"
    now = ctx.now()

    set_infrastructure_urls(ctx.db, project.project_id, repo_url, staging_url, now)
    log_activity(
        ctx,
        SYSTEM_USER,
        "project_infrastructure_provisioned",
        {"projectId": str(project.project_id), "repoUrl": repo_url, "stagingUrl": staging_url},
        client_id=project.client_id,
        project_id=project.project_id,
    )
    return replace(project, repo_url=repo_url, staging_url=staging_url, updated_at=now)


__all__ = [
    "require_project",
    "set_project_status",
    "advance_project",
    "advance_on_deposit",
    "provision_infrastructure",
]
