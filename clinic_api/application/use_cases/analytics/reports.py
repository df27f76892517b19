"""Report structures returned by the analytics service."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from pydantic.alias_generators import to_camel

from .periods import TrendPoint


class ReportType(str, Enum):
    DASHBOARD = "dashboard"
    REVENUE = "revenue"
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    SERVICES = "services"
    STAFF = "staff"
    LEADS = "leads"


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"


def camelize(value: Any) -> Any:
    """Recursively convert snake_case dictionary keys to camelCase."""

    if isinstance(value, dict):
        return {to_camel(key): camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [camelize(item) for item in value]
    return value


class _Report:
    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload (camelCase keys) for this report."""

        return camelize(asdict(self))


@dataclass
class RevenueSummary:
    total: float
    percent_change: float


@dataclass
class PatientSummary:
    total: int
    new: int
    percent_change: float


@dataclass
class AppointmentSummary:
    total: int
    completion_rate: int
    percent_change: float


@dataclass
class LeadSummary:
    total: int
    converted: int
    conversion_rate: int


@dataclass
class DashboardReport(_Report):
    """Headline KPIs for the requested period."""

    revenue: RevenueSummary
    patients: PatientSummary
    appointments: AppointmentSummary
    leads: LeadSummary


@dataclass
class PeriodComparison:
    previous_period: float
    percent_change: float


@dataclass
class RevenueReport(_Report):
    total: float
    trend: list[TrendPoint]
    by_payment_method: list[dict[str, Any]]
    by_service: list[dict[str, Any]]
    comparison: PeriodComparison


@dataclass
class PatientReport(_Report):
    total: int
    new: int
    returning: int
    trend: list[TrendPoint]
    by_source: list[dict[str, Any]]
    by_gender: list[dict[str, Any]]
    by_branch: list[dict[str, Any]]


@dataclass
class AppointmentReport(_Report):
    total: int
    completed: int
    cancelled: int
    no_show: int
    completion_rate: int
    trend: list[TrendPoint]
    by_status: list[dict[str, Any]]
    by_doctor: list[dict[str, Any]]
    average_wait_time: int


@dataclass
class ServicePerformance:
    id: str
    name: str
    appointment_count: int
    revenue: float


@dataclass
class ServiceReport(_Report):
    services: list[ServicePerformance] = field(default_factory=list)


@dataclass
class StaffProductivity:
    id: str
    name: str
    role: str
    appointments_completed: int
    revenue: float
    average_appointments_per_day: float


@dataclass
class StaffReport(_Report):
    staff: list[StaffProductivity] = field(default_factory=list)


@dataclass
class FunnelStage:
    stage: str
    count: int
    conversion_rate: int


@dataclass
class LeadReport(_Report):
    stages: list[FunnelStage]
    by_source: list[dict[str, Any]]
    trend: list[TrendPoint]


__all__ = [
    "AppointmentReport",
    "AppointmentSummary",
    "DashboardReport",
    "ExportFormat",
    "FunnelStage",
    "LeadReport",
    "LeadSummary",
    "PatientReport",
    "PatientSummary",
    "PeriodComparison",
    "ReportType",
    "RevenueReport",
    "RevenueSummary",
    "ServicePerformance",
    "ServiceReport",
    "StaffProductivity",
    "StaffReport",
    "camelize",
]
