"""Routes exposing analytics reports and exports."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from clinic_api.application.use_cases.analytics import (
    AnalyticsQuery,
    AnalyticsService,
    ExportFormat,
    Granularity,
    ReportType,
)
from clinic_api.domain.entities import Principal, Role
from clinic_api.interfaces.api.dependencies import get_analytics_service, require_roles
from clinic_api.interfaces.api.schemas import (
    AppointmentsRead,
    DashboardRead,
    LeadsRead,
    PatientsRead,
    RevenueRead,
    ServicesRead,
    StaffRead,
)
from clinic_api.utils import parse_app_datetime

router = APIRouter(prefix="/analytics", tags=["analytics"])

_EXPORT_FILES = {
    ExportFormat.CSV: ("text/csv", "csv"),
    ExportFormat.EXCEL: (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "xlsx",
    ),
    ExportFormat.PDF: ("application/pdf", "pdf"),
}


def _iso_date(value: str | None, name: str) -> str | None:
    try:
        parse_app_datetime(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{name} must be an ISO 8601 date or datetime",
        ) from exc
    return value


def analytics_query(
    date_from: str | None = Query(default=None, alias="dateFrom", examples=["2024-01-01"]),
    date_to: str | None = Query(default=None, alias="dateTo", examples=["2024-12-31"]),
    granularity: Granularity | None = Query(default=None),
    branch_id: str | None = Query(default=None, alias="branchId"),
) -> AnalyticsQuery:
    """Collect the filters shared by every analytics endpoint."""

    return AnalyticsQuery(
        date_from=_iso_date(date_from, "dateFrom"),
        date_to=_iso_date(date_to, "dateTo"),
        granularity=granularity,
        branch_id=branch_id,
    )


@router.get("/dashboard", response_model=DashboardRead)
def read_dashboard(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    """Headline KPIs compared with the previous period of equal length."""

    return service.get_dashboard(principal, query)


@router.get("/revenue", response_model=RevenueRead)
def read_revenue(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.ACCOUNTANT)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_revenue(principal, query)


@router.get("/patients", response_model=PatientsRead)
def read_patients(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_patients(principal, query)


@router.get("/appointments", response_model=AppointmentsRead)
def read_appointments(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.RECEPTION)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_appointments(principal, query)


@router.get("/services", response_model=ServicesRead)
def read_services(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_services(principal, query)


@router.get("/staff", response_model=StaffRead)
def read_staff(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_staff(principal, query)


@router.get("/leads", response_model=LeadsRead)
def read_leads(
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.SUPPORT)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    return service.get_leads(principal, query)


@router.get("/export/{report_type}")
def export_report(
    report_type: ReportType,
    export_format: ExportFormat = Query(default=ExportFormat.CSV, alias="format"),
    query: AnalyticsQuery = Depends(analytics_query),
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.ACCOUNTANT)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    """Return the report as JSON, named for download in the requested format.

    Conversion to the actual file format happens in the client.
    """

    data, filename = service.export_report(principal, report_type, query)
    media_type, extension = _EXPORT_FILES[export_format]
    return JSONResponse(
        content=data,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}.{extension}"',
            "X-Export-Content-Type": media_type,
        },
    )


__all__ = ["router"]
