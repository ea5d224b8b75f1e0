"""
Lead -> Client -> Project conversion.

Runs at most once per Lead. The Client and Project ids are derived from the
Lead id, so a conversion interrupted partway is finished by the next call
instead of creating a second pair. The Lead's converted_at marker is written
once (only where it is still null); the conversion counts as finished only
once the Lead carries both back-references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import UUID, uuid5

from domain.client import Client, Contact, Plan
from domain.errors import NotFoundError
from domain.project import Package, Project, ProjectStatus, package_from_key_points
from repositories.client_repository import get_client_by_id, insert_client
from repositories.lead_repository import claim_lead_conversion, get_lead_by_id, link_conversion_references
from repositories.project_repository import get_project_by_id, insert_project
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """
    created: True only for the call that linked the Client/Project to the Lead.
    """
    lead_id: UUID
    client_id: UUID
    project_id: UUID
    created: bool


def converted_client_id(lead_id: UUID) -> UUID:
    return uuid5(lead_id, "client")


def converted_project_id(lead_id: UUID) -> UUID:
    return uuid5(lead_id, "project")


def convert_lead(
    ctx: ServiceContext,
    lead_id: UUID,
    key_points: Iterable[str] = (),
    package: Optional[Package] = None,
    client_notes: Optional[str] = None,
    internal_notes: Optional[str] = None,
    by_uid: str = SYSTEM_USER,
) -> ConversionResult:
    """
    Convert a Lead into one Client and one intake Project.

    Args:
        key_points: Discovery notes used to pick the package when `package` is None
        package: Explicit package (e.g. from a signed proposal)
        client_notes / internal_notes: Stored on the new Project

    Raises:
        NotFoundError: the Lead does not exist
    """

    lead = get_lead_by_id(ctx.db, lead_id)
    if lead is None:
        raise NotFoundError("lead", lead_id)

    if lead.client_id is not None and lead.project_id is not None:
        logger.info("Lead already converted", extra={"lead_id": str(lead_id)})
        return ConversionResult(
            lead_id=lead_id,
            client_id=lead.client_id,
            project_id=lead.project_id,
            created=False,
        )

    now = ctx.now()
    if lead.is_converted:
        logger.warning("Resuming unfinished lead conversion", extra={"lead_id": str(lead_id)})
    else:
        claim_lead_conversion(ctx.db, lead_id, now)

    client_id = converted_client_id(lead_id)
    if get_client_by_id(ctx.db, client_id) is None:
        insert_client(
            ctx.db,
            Client(
                client_id=client_id,
                company=lead.company,
                billing_email=lead.email,
                plan=Plan.NONE,
                created_at=now,
                updated_at=now,
                legal_name=lead.company,
                contacts=(Contact(name=lead.name, email=lead.email, phone=lead.phone or ""),),
            ),
        )

    project_id = converted_project_id(lead_id)
    project = get_project_by_id(ctx.db, project_id)
    if project is None:
        project = Project(
            project_id=project_id,
            client_id=client_id,
            package=package or package_from_key_points(key_points),
            status=ProjectStatus.INTAKE,
            created_at=now,
            updated_at=now,
            milestones={ProjectStatus.INTAKE.value: now},
            client_notes=client_notes,
            internal_notes=internal_notes or f"Converted from lead {lead_id}.",
        )
        insert_project(ctx.db, project)

    linked = link_conversion_references(ctx.db, lead_id, client_id, project_id, now)
    if linked:
        log_activity(
            ctx,
            by_uid,
            "lead_converted_to_project",
            {"leadId": str(lead_id), "package": project.package.value},
            client_id=client_id,
            project_id=project_id,
        )
        logger.info(
            "Lead converted",
            extra={"lead_id": str(lead_id), "client_id": str(client_id), "project_id": str(project_id)},
        )
    return ConversionResult(lead_id=lead_id, client_id=client_id, project_id=project_id, created=linked)


__all__ = ["ConversionResult", "converted_client_id", "converted_project_id", "convert_lead"]
