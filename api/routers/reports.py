"""
Report API Endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_context, to_http_exception
from api.models import MonthlyReportRequest, MonthlyReportResponse
from domain.errors import DomainError
from services.context import ServiceContext
from services.report_service import generate_monthly_report

router = APIRouter()


@router.post(
    "/reports/monthly",
    response_model=MonthlyReportResponse,
    status_code=201,
    summary="Generate Monthly Report",
)
def generate_monthly_report_endpoint(request: MonthlyReportRequest, ctx: ServiceContext = Depends(get_context)):
    try:
        report = generate_monthly_report(ctx, request.client_id, request.month, request.year)
        return MonthlyReportResponse(
            report_id=report.report_id,
            client_id=report.client_id,
            month=report.period.month,
            year=report.period.year,
            status=report.status.value,
            document_path=report.document_path,
        )

    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to generate report: {str(e)}")
