"""
Project repository (persistence).

Stage-order rules live in domain/project.py and services/project_stage_service.py;
this module only reads and writes rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.project import Package, Project, ProjectStatus
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.rows import checked_rows, first_row, optional_str

_PROJECTS_TABLE: str = "projects"


def _project_to_row(project: Project) -> dict[str, Any]:
    return {
        "project_id": str(project.project_id),
        "client_id": str(project.client_id),
        "package": project.package.value,
        "tech": project.tech,
        "status": project.status.value,
        "milestones": {stage: to_iso_utc(at, name=stage) for stage, at in project.milestones.items()},
        "launch_checklist_status": dict(project.launch_checklist_status),
        "repo_url": project.repo_url,
        "staging_url": project.staging_url,
        "production_url": project.production_url,
        "client_notes": project.client_notes,
        "internal_notes": project.internal_notes,
        "created_at_utc": to_iso_utc(project.created_at, name="created_at"),
        "updated_at_utc": to_iso_utc(project.updated_at, name="updated_at"),
    }


def _row_to_project(row: Mapping[str, Any]) -> Project:
    milestones = row.get("milestones") or {}
    checklist = row.get("launch_checklist_status") or {}
    return Project(
        project_id=UUID(str(row["project_id"])),
        client_id=UUID(str(row["client_id"])),
        package=Package(str(row["package"])),
        status=ProjectStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=parse_utc_datetime(row["updated_at_utc"]),
        tech=str(row.get("tech") or "nextjs_vercel"),
        milestones={str(stage): parse_utc_datetime(at) for stage, at in milestones.items() if at},
        launch_checklist_status={str(name): bool(done) for name, done in checklist.items()},
        repo_url=optional_str(row.get("repo_url")),
        staging_url=optional_str(row.get("staging_url")),
        production_url=optional_str(row.get("production_url")),
        client_notes=optional_str(row.get("client_notes")),
        internal_notes=optional_str(row.get("internal_notes")),
    )


def insert_project(db: SupabaseClient, project: Project) -> None:
    response = db.table(_PROJECTS_TABLE).insert(_project_to_row(project)).execute()
    checked_rows(response, "insert project")


def get_project_by_id(db: SupabaseClient, project_id: UUID) -> Optional[Project]:
    response = (
        db.table(_PROJECTS_TABLE)
        .select("*")
        .eq("project_id", str(project_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch project")
    return _row_to_project(row) if row else None


def list_open_projects_for_client(db: SupabaseClient, client_id: UUID) -> List[Project]:
    response = (
        db.table(_PROJECTS_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .neq("status", ProjectStatus.CLOSED.value)
        .execute()
    )
    return [_row_to_project(row) for row in checked_rows(response, "list projects")]


def update_project_stage(
    db: SupabaseClient,
    project_id: UUID,
    expected_status: ProjectStatus,
    status: ProjectStatus,
    milestones: Mapping[str, datetime],
    updated_at: datetime,
) -> bool:
    """
    Move a project from `expected_status` to `status`.

    The update is conditional on the stored status still being
    `expected_status`; returns False if another writer moved it first.
    """

    response = (
        db.table(_PROJECTS_TABLE)
        .update(
            {
                "status": status.value,
                "milestones": {stage: to_iso_utc(at, name=stage) for stage, at in milestones.items()},
                "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("project_id", str(project_id))
        .eq("status", expected_status.value)
        .execute()
    )
    return bool(checked_rows(response, "update project stage"))


def set_infrastructure_urls(
    db: SupabaseClient,
    project_id: UUID,
    repo_url: str,
    staging_url: str,
    updated_at: datetime,
) -> None:
    response = (
        db.table(_PROJECTS_TABLE)
        .update(
            {
                "repo_url": repo_url,
                "staging_url": staging_url,
                "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("project_id", str(project_id))
        .execute()
    )
    checked_rows(response, "record project infrastructure")


__all__ = [
    "insert_project",
    "get_project_by_id",
    "list_open_projects_for_client",
    "update_project_stage",
    "set_infrastructure_urls",
]
