"""
Monthly report repository (persistence), plus the support-ticket reads the
report collects.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from domain.report import Report, ReportPeriod, ReportStatus
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.rows import checked_rows, first_row, optional_str

_REPORTS_TABLE: str = "reports"
_SUPPORT_TICKETS_TABLE: str = "support_tickets"


def _report_to_row(report: Report) -> dict[str, Any]:
    return {
        "report_id": str(report.report_id),
        "client_id": str(report.client_id),
        "month": report.period.month,
        "year": report.period.year,
        "status": report.status.value,
        "generated_at_utc": to_iso_utc(report.generated_at, name="generated_at"),
        "data": dict(report.data),
        "insights": dict(report.insights),
        "document_path": report.document_path,
    }


def _row_to_report(row: Mapping[str, Any]) -> Report:
    return Report(
        report_id=UUID(str(row["report_id"])),
        client_id=UUID(str(row["client_id"])),
        period=ReportPeriod(month=int(row["month"]), year=int(row["year"])),
        status=ReportStatus(str(row["status"])),
        generated_at=parse_utc_datetime(row["generated_at_utc"]),
        data=row.get("data") or {},
        insights=row.get("insights") or {},
        document_path=optional_str(row.get("document_path")),
    )


def insert_report(db: SupabaseClient, report: Report) -> None:
    checked_rows(db.table(_REPORTS_TABLE).insert(_report_to_row(report)).execute(), "insert report")


def get_report_by_id(db: SupabaseClient, report_id: UUID) -> Optional[Report]:
    response = (
        db.table(_REPORTS_TABLE)
        .select("*")
        .eq("report_id", str(report_id))
        .limit(1)
        .execute()
    )
    row = first_row(response, "fetch report")
    return _row_to_report(row) if row else None


def complete_report(db: SupabaseClient, report_id: UUID, document_path: str) -> None:
    response = (
        db.table(_REPORTS_TABLE)
        .update({"document_path": document_path, "status": ReportStatus.COMPLETED.value})
        .eq("report_id", str(report_id))
        .execute()
    )
    checked_rows(response, "complete report")


def count_support_tickets(db: SupabaseClient, client_id: UUID, start: datetime, end: datetime) -> dict[str, int]:
    """Ticket totals for a client opened in [start, end): {'total', 'resolved', 'open'}."""

    response = (
        db.table(_SUPPORT_TICKETS_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .gte("created_at_utc", to_iso_utc(start, name="start"))
        .lt("created_at_utc", to_iso_utc(end, name="end"))
        .execute()
    )
    rows = checked_rows(response, "count support tickets")
    resolved = sum(1 for row in rows if row.get("status") in ("resolved", "closed"))
    return {"total": len(rows), "resolved": resolved, "open": len(rows) - resolved}


__all__ = [
    "insert_report",
    "get_report_by_id",
    "complete_report",
    "count_support_tickets",
]
