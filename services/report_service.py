"""
Monthly care-plan reports.

generate_reports_for_previous_month() is the scheduler entry point
(scripts/run_monthly_reports.py); a failure for one client is logged and the
run continues with the next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, List
from uuid import UUID, uuid4

from domain.errors import NotFoundError
from domain.report import Report, ReportPeriod, ReportStatus
from repositories.activity_repository import list_client_activities
from repositories.client_repository import get_client_by_id, list_clients_with_care_plan
from repositories.invoice_repository import list_invoices_for_client
from repositories.project_repository import list_open_projects_for_client
from repositories.report_repository import complete_report, count_support_tickets, insert_report
from repositories.storage_repository import upload_file
from services.activity_service import SYSTEM_USER, log_activity
from services.context import ServiceContext
from services.document_service import render_report_pdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReportRunSummary:
    period: ReportPeriod
    generated: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)


def report_document_path(client_id: UUID, period: ReportPeriod) -> str:
    return f"reports/{client_id}/{period.slug}.pdf"


def collect_report_data(ctx: ServiceContext, client_id: UUID, period: ReportPeriod) -> dict[str, Any]:
    projects = list_open_projects_for_client(ctx.db, client_id)
    paid_invoices = [
        invoice
        for invoice in list_invoices_for_client(ctx.db, client_id)
        if invoice.paid_at is not None and period.start <= invoice.paid_at < period.end
    ]
    activities = list_client_activities(ctx.db, client_id, period.start, period.end)

    return {
        "period": {"month": period.month, "year": period.year},
        "projects": [
            {
                "id": str(project.project_id),
                "status": project.status.value,
                "progress": project.progress_percent,
                "productionUrl": project.production_url,
                "stagingUrl": project.staging_url,
            }
            for project in projects
        ],
        "invoices": [
            {"id": str(invoice.invoice_id), "type": invoice.type.value, "amount": invoice.amount, "currency": invoice.currency}
            for invoice in paid_invoices
        ],
        "support_tickets": count_support_tickets(ctx.db, client_id, period.start, period.end),
        "activity_count": len(activities),
    }


def generate_monthly_report(
    ctx: ServiceContext,
    client_id: UUID,
    month: int,
    year: int,
    by_uid: str = SYSTEM_USER,
) -> Report:
    """
    Build, render and store one client's report for a calendar month.

    Raises:
        ValidationError: month outside 1-12 or year before 2020
        NotFoundError: unknown client
        ExternalServiceError: insight generation failed
    """

    period = ReportPeriod(month=month, year=year)
    client = get_client_by_id(ctx.db, client_id)
    if client is None:
        raise NotFoundError("client", client_id)

    data = collect_report_data(ctx, client_id, period)
    insights = ctx.llm.generate_report_insights({**data, "client": client.company, "plan": client.plan.value})

    report = Report(
        report_id=uuid4(),
        client_id=client_id,
        period=period,
        status=ReportStatus.GENERATED,
        generated_at=ctx.now(),
        data=data,
        insights=insights,
    )
    insert_report(ctx.db, report)

    pdf = render_report_pdf(client.company, period.label, data, insights)
    path = upload_file(
        ctx.db,
        ctx.settings.storage_bucket,
        report_document_path(client_id, period),
        pdf,
        "application/pdf",
    )
    complete_report(ctx.db, report.report_id, path)

    log_activity(
        ctx,
        by_uid,
        "monthly_report_generated",
        {"reportId": str(report.report_id), "month": month, "year": year},
        client_id=client_id,
    )
    logger.info("Monthly report generated", extra={"client_id": str(client_id), "period": period.slug})
    return replace(report, status=ReportStatus.COMPLETED, document_path=path)


def generate_reports_for_previous_month(ctx: ServiceContext) -> ReportRunSummary:
    period = ReportPeriod.previous_to(ctx.now())
    summary = ReportRunSummary(period=period)

    for client in list_clients_with_care_plan(ctx.db):
        try:
            generate_monthly_report(ctx, client.client_id, period.month, period.year)
        except Exception:
            logger.exception("Monthly report failed", extra={"client_id": str(client.client_id), "period": period.slug})
            summary.failed.append(client.client_id)
        else:
            summary.generated.append(client.client_id)

    logger.info(
        "Monthly report run complete",
        extra={"period": period.slug, "generated": len(summary.generated), "failed": len(summary.failed)},
    )
    return summary


__all__ = [
    "ReportRunSummary",
    "report_document_path",
    "collect_report_data",
    "generate_monthly_report",
    "generate_reports_for_previous_month",
]
