"""
Project API Endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_context, to_http_exception
from api.models import ProjectResponse
from domain.errors import DomainError
from domain.project import Project
from services.context import ServiceContext
from services.project_stage_service import advance_project, require_project

router = APIRouter()


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        project_id=project.project_id,
        client_id=project.client_id,
        package=project.package,
        status=project.status.value,
        progress_percent=project.progress_percent,
        milestones=dict(project.milestones),
        repo_url=project.repo_url,
        staging_url=project.staging_url,
        production_url=project.production_url,
    )


@router.get("/projects/{project_id}", response_model=ProjectResponse, summary="Get Project")
def get_project_endpoint(project_id: UUID, ctx: ServiceContext = Depends(get_context)):
    try:
        return _to_response(require_project(ctx, project_id))

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch project: {str(e)}")


@router.post(
    "/projects/{project_id}/advance",
    response_model=ProjectResponse,
    summary="Advance Project",
    description="Move the project to the next stage: intake, copy, design, build, qa, review, live, closed.",
)
def advance_project_endpoint(project_id: UUID, ctx: ServiceContext = Depends(get_context)):
    try:
        return _to_response(advance_project(ctx, project_id))

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to advance project: {str(e)}")
