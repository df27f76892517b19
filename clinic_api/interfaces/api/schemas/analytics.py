"""Schemas for analytics endpoints."""

from __future__ import annotations

from pydantic import Field

from .notification import CamelModel


class TrendPointRead(CamelModel):
    date: str = Field(..., description="Bucket label (YYYY-MM-DD, YYYY-Www or YYYY-MM)")
    value: float


class RevenueSummaryRead(CamelModel):
    total: float
    percent_change: float


class PatientSummaryRead(CamelModel):
    total: int
    new: int
    percent_change: float


class AppointmentSummaryRead(CamelModel):
    total: int
    completion_rate: int
    percent_change: float


class LeadSummaryRead(CamelModel):
    total: int
    converted: int
    conversion_rate: int


class DashboardRead(CamelModel):
    revenue: RevenueSummaryRead
    patients: PatientSummaryRead
    appointments: AppointmentSummaryRead
    leads: LeadSummaryRead


class MethodAmountRead(CamelModel):
    method: str
    amount: float


class ServiceAmountRead(CamelModel):
    service: str
    amount: float


class ComparisonRead(CamelModel):
    previous_period: float
    percent_change: float


class RevenueRead(CamelModel):
    total: float
    trend: list[TrendPointRead]
    by_payment_method: list[MethodAmountRead]
    by_service: list[ServiceAmountRead]
    comparison: ComparisonRead


class SourceCountRead(CamelModel):
    source: str
    count: int


class GenderCountRead(CamelModel):
    gender: str
    count: int


class BranchCountRead(CamelModel):
    branch: str
    count: int


class PatientsRead(CamelModel):
    total: int
    new: int
    returning: int
    trend: list[TrendPointRead]
    by_source: list[SourceCountRead]
    by_gender: list[GenderCountRead]
    by_branch: list[BranchCountRead]


class StatusCountRead(CamelModel):
    status: str
    count: int


class DoctorCountRead(CamelModel):
    doctor: str
    count: int


class AppointmentsRead(CamelModel):
    total: int
    completed: int
    cancelled: int
    no_show: int
    completion_rate: int
    trend: list[TrendPointRead]
    by_status: list[StatusCountRead]
    by_doctor: list[DoctorCountRead]
    average_wait_time: int = Field(..., description="Minutes between arrival and check-in")


class ServicePerformanceRead(CamelModel):
    id: str
    name: str
    appointment_count: int
    revenue: float


class ServicesRead(CamelModel):
    services: list[ServicePerformanceRead]


class StaffProductivityRead(CamelModel):
    id: str
    name: str
    role: str
    appointments_completed: int
    revenue: float
    average_appointments_per_day: float


class StaffRead(CamelModel):
    staff: list[StaffProductivityRead]


class FunnelStageRead(CamelModel):
    stage: str
    count: int
    conversion_rate: int


class LeadsRead(CamelModel):
    stages: list[FunnelStageRead]
    by_source: list[SourceCountRead]
    trend: list[TrendPointRead]


__all__ = [
    "AppointmentsRead",
    "DashboardRead",
    "LeadsRead",
    "PatientsRead",
    "RevenueRead",
    "ServicesRead",
    "StaffRead",
    "TrendPointRead",
]
