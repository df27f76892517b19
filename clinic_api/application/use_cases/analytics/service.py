"""Read-only KPI and trend reports over a tenant's clinic records."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy import exists, func
from sqlalchemy.orm import Session

from clinic_api.domain.entities import (
    REVENUE_INVOICE_STATUSES,
    AppointmentStatus,
    PipelineStage,
    Principal,
)
from clinic_api.infrastructure.analytics_cache import AnalyticsCache, build_cache_key
from clinic_api.infrastructure.models import (
    AppointmentModel,
    BranchModel,
    ClinicServiceModel,
    InvoiceModel,
    LeadModel,
    PatientModel,
    PaymentModel,
    UserModel,
)
from clinic_api.utils import now_in_app_timezone

from .periods import (
    AnalyticsQuery,
    DateRange,
    build_trend,
    count_trend,
    days_in_range,
    percent_change,
    previous_period,
    rate,
    resolve_branch_scope,
    resolve_date_range,
    round_half_up,
)
from .reports import (
    AppointmentReport,
    AppointmentSummary,
    DashboardReport,
    FunnelStage,
    LeadReport,
    LeadSummary,
    PatientReport,
    PatientSummary,
    PeriodComparison,
    ReportType,
    RevenueReport,
    RevenueSummary,
    ServicePerformance,
    ServiceReport,
    StaffProductivity,
    StaffReport,
)

logger = logging.getLogger(__name__)

TOP_ENTRIES = 10
_REVENUE_STATUSES = [status.value for status in REVENUE_INVOICE_STATUSES]


def _in_scope(column, scope: list[str] | None) -> list[Any]:
    return [] if scope is None else [column.in_(scope)]


def _between(column, date_range: DateRange) -> Any:
    return column.between(date_range.start, date_range.end)


def _number(value: Any) -> float:
    if value is None:
        return 0
    number = float(value)
    return int(number) if number.is_integer() else number


class AnalyticsService:
    """Compute analytics reports, consulting ``cache`` before querying.

    Every public method returns the report payload with camelCase keys, the
    same shape that is cached, so a cache hit is returned verbatim.
    """

    def __init__(self, session: Session, cache: AnalyticsCache | None = None) -> None:
        self.session = session
        self.cache = cache

    # ------------------------------------------------------------------
    # Caching
    # ------------------------------------------------------------------
    def _cached(
        self,
        principal: Principal,
        report: ReportType,
        params: dict[str, Any],
        compute: Callable[[], Any],
        *,
        granularity: str | None = None,
        dashboard: bool = False,
    ) -> dict[str, Any]:
        if self.cache is None:
            return compute().to_payload()

        key = build_cache_key(principal.tenant_id, report.value, params)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Analytics cache hit for %s", key)
            return cached

        payload = compute().to_payload()
        if dashboard:
            self.cache.set_dashboard(key, payload)
        else:
            self.cache.set(key, payload, granularity)
        return payload

    @staticmethod
    def _cache_params(
        query: AnalyticsQuery, scope: list[str] | None, *, branch_scoped: bool = True
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "dateFrom": query.date_from,
            "dateTo": query.date_to,
            "granularity": query.bucket_granularity.value,
        }
        if branch_scoped:
            params["branchId"] = query.branch_id
            params["branches"] = ",".join(sorted(scope)) if scope is not None else None
        return params

    def _report(
        self,
        principal: Principal,
        report: ReportType,
        query: AnalyticsQuery,
        builder: Callable[[Principal, AnalyticsQuery, DateRange, list[str] | None], Any],
        *,
        branch_scoped: bool = True,
    ) -> dict[str, Any]:
        scope = resolve_branch_scope(principal, query.branch_id) if branch_scoped else None
        date_range = resolve_date_range(query)
        return self._cached(
            principal,
            report,
            self._cache_params(query, scope, branch_scoped=branch_scoped),
            lambda: builder(principal, query, date_range, scope),
            granularity=query.granularity.value if query.granularity else None,
        )

    # ------------------------------------------------------------------
    # Shared aggregates
    # ------------------------------------------------------------------
    def _revenue_total(
        self, tenant_id: str, date_range: DateRange, scope: list[str] | None
    ) -> float:
        total = (
            self.session.query(func.sum(InvoiceModel.paid_amount))
            .filter(
                InvoiceModel.tenant_id == tenant_id,
                InvoiceModel.status.in_(_REVENUE_STATUSES),
                _between(InvoiceModel.created_at, date_range),
                *_in_scope(InvoiceModel.branch_id, scope),
            )
            .scalar()
        )
        return _number(total)

    def _patient_count(
        self,
        tenant_id: str,
        scope: list[str] | None,
        date_range: DateRange | None = None,
    ) -> int:
        query = self.session.query(func.count(PatientModel.id)).filter(
            PatientModel.tenant_id == tenant_id,
            PatientModel.deleted_at.is_(None),
            *_in_scope(PatientModel.branch_id, scope),
        )
        if date_range is not None:
            query = query.filter(_between(PatientModel.created_at, date_range))
        return query.scalar() or 0

    def _appointment_count(
        self,
        tenant_id: str,
        date_range: DateRange,
        scope: list[str] | None,
        status: AppointmentStatus | None = None,
    ) -> int:
        query = self.session.query(func.count(AppointmentModel.id)).filter(
            AppointmentModel.tenant_id == tenant_id,
            _between(AppointmentModel.scheduled_at, date_range),
            *_in_scope(AppointmentModel.branch_id, scope),
        )
        if status is not None:
            query = query.filter(AppointmentModel.status == status.value)
        return query.scalar() or 0

    def _lead_count(
        self, tenant_id: str, date_range: DateRange, stage: PipelineStage | None = None
    ) -> int:
        query = self.session.query(func.count(LeadModel.id)).filter(
            LeadModel.tenant_id == tenant_id,
            _between(LeadModel.created_at, date_range),
        )
        if stage is not None:
            query = query.filter(LeadModel.stage == stage.value)
        return query.scalar() or 0

    def _completed_revenue_by(
        self, column, tenant_id: str, date_range: DateRange, scope: list[str] | None
    ) -> dict[str, float]:
        """Paid revenue of completed appointments grouped by ``column``."""

        rows = (
            self.session.query(column, func.sum(InvoiceModel.paid_amount))
            .join(InvoiceModel, InvoiceModel.appointment_id == AppointmentModel.id)
            .filter(
                AppointmentModel.tenant_id == tenant_id,
                AppointmentModel.status == AppointmentStatus.COMPLETED.value,
                _between(AppointmentModel.scheduled_at, date_range),
                InvoiceModel.status.in_(_REVENUE_STATUSES),
                *_in_scope(AppointmentModel.branch_id, scope),
            )
            .group_by(column)
            .all()
        )
        return {key: _number(total) for key, total in rows}

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def get_dashboard(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        scope = resolve_branch_scope(principal, query.branch_id)
        date_range = resolve_date_range(query)
        params = {
            "dateFrom": query.date_from,
            "dateTo": query.date_to,
            "branchId": query.branch_id,
            "branches": ",".join(sorted(scope)) if scope is not None else None,
        }
        return self._cached(
            principal,
            ReportType.DASHBOARD,
            params,
            lambda: self._build_dashboard(principal, date_range, scope),
            dashboard=True,
        )

    def _build_dashboard(
        self, principal: Principal, date_range: DateRange, scope: list[str] | None
    ) -> DashboardReport:
        tenant_id = principal.tenant_id
        previous = previous_period(date_range)

        revenue = self._revenue_total(tenant_id, date_range, scope)
        previous_revenue = self._revenue_total(tenant_id, previous, scope)

        total_patients = self._patient_count(tenant_id, scope)
        new_patients = self._patient_count(tenant_id, scope, date_range)
        previous_new_patients = self._patient_count(tenant_id, scope, previous)

        appointments = self._appointment_count(tenant_id, date_range, scope)
        completed = self._appointment_count(
            tenant_id, date_range, scope, AppointmentStatus.COMPLETED
        )
        previous_appointments = self._appointment_count(tenant_id, previous, scope)

        leads = self._lead_count(tenant_id, date_range)
        converted = self._lead_count(tenant_id, date_range, PipelineStage.CONVERTED)

        return DashboardReport(
            revenue=RevenueSummary(
                total=revenue,
                percent_change=percent_change(revenue, previous_revenue),
            ),
            patients=PatientSummary(
                total=total_patients,
                new=new_patients,
                percent_change=percent_change(new_patients, previous_new_patients),
            ),
            appointments=AppointmentSummary(
                total=appointments,
                completion_rate=rate(completed, appointments),
                percent_change=percent_change(appointments, previous_appointments),
            ),
            leads=LeadSummary(
                total=leads,
                converted=converted,
                conversion_rate=rate(converted, leads),
            ),
        )

    def get_revenue(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        return self._report(principal, ReportType.REVENUE, query, self._build_revenue)

    def _build_revenue(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> RevenueReport:
        tenant_id = principal.tenant_id
        total = self._revenue_total(tenant_id, date_range, scope)
        previous_total = self._revenue_total(tenant_id, previous_period(date_range), scope)

        by_method = (
            self.session.query(PaymentModel.method, func.sum(PaymentModel.amount))
            .join(InvoiceModel, PaymentModel.invoice_id == InvoiceModel.id)
            .filter(
                InvoiceModel.tenant_id == tenant_id,
                _between(InvoiceModel.created_at, date_range),
                *_in_scope(InvoiceModel.branch_id, scope),
            )
            .group_by(PaymentModel.method)
            .order_by(PaymentModel.method)
            .all()
        )

        invoices = (
            self.session.query(InvoiceModel.created_at, InvoiceModel.paid_amount, InvoiceModel.items)
            .filter(
                InvoiceModel.tenant_id == tenant_id,
                InvoiceModel.status.in_(_REVENUE_STATUSES),
                _between(InvoiceModel.created_at, date_range),
                *_in_scope(InvoiceModel.branch_id, scope),
            )
            .all()
        )

        by_service: dict[str, float] = {}
        for _, _, items in invoices:
            if not isinstance(items, list):
                continue
            for item in items:
                if not isinstance(item, dict):
                    continue
                name = item.get("serviceName") or item.get("name") or "Unknown"
                amount = float(item.get("total") or item.get("amount") or 0)
                by_service[name] = by_service.get(name, 0) + amount
        top_services = sorted(by_service.items(), key=lambda entry: entry[1], reverse=True)

        return RevenueReport(
            total=total,
            trend=build_trend(
                ((created_at, float(paid or 0)) for created_at, paid, _ in invoices),
                query.bucket_granularity,
            ),
            by_payment_method=[
                {"method": method, "amount": _number(amount)} for method, amount in by_method
            ],
            by_service=[
                {"service": name, "amount": _number(amount)}
                for name, amount in top_services[:TOP_ENTRIES]
            ],
            comparison=PeriodComparison(
                previous_period=previous_total,
                percent_change=percent_change(total, previous_total),
            ),
        )

    def get_patients(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        return self._report(principal, ReportType.PATIENTS, query, self._build_patients)

    def _build_patients(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> PatientReport:
        tenant_id = principal.tenant_id
        in_period = (
            PatientModel.tenant_id == tenant_id,
            PatientModel.deleted_at.is_(None),
            _between(PatientModel.created_at, date_range),
            *_in_scope(PatientModel.branch_id, scope),
        )

        visited_in_period = exists().where(
            AppointmentModel.patient_id == PatientModel.id,
            _between(AppointmentModel.scheduled_at, date_range),
        )
        returning = (
            self.session.query(func.count(PatientModel.id))
            .filter(
                PatientModel.tenant_id == tenant_id,
                PatientModel.deleted_at.is_(None),
                PatientModel.created_at < date_range.start,
                visited_in_period,
                *_in_scope(PatientModel.branch_id, scope),
            )
            .scalar()
        ) or 0

        created = [
            created_at
            for (created_at,) in self.session.query(PatientModel.created_at).filter(*in_period)
        ]

        by_source = (
            self.session.query(PatientModel.source, func.count(PatientModel.id))
            .filter(*in_period)
            .group_by(PatientModel.source)
            .order_by(PatientModel.source)
            .all()
        )
        by_gender = (
            self.session.query(PatientModel.gender, func.count(PatientModel.id))
            .filter(*in_period, PatientModel.gender.is_not(None))
            .group_by(PatientModel.gender)
            .order_by(PatientModel.gender)
            .all()
        )
        by_branch = (
            self.session.query(PatientModel.branch_id, func.count(PatientModel.id))
            .filter(*in_period)
            .group_by(PatientModel.branch_id)
            .order_by(PatientModel.branch_id)
            .all()
        )
        branch_names = dict(
            self.session.query(BranchModel.id, BranchModel.name)
            .filter(BranchModel.id.in_([branch_id for branch_id, _ in by_branch]))
            .all()
        )

        return PatientReport(
            total=self._patient_count(tenant_id, scope),
            new=len(created),
            returning=returning,
            trend=count_trend(created, query.bucket_granularity),
            by_source=[{"source": source, "count": count} for source, count in by_source],
            by_gender=[{"gender": gender, "count": count} for gender, count in by_gender],
            by_branch=[
                {"branch": branch_names.get(branch_id, branch_id), "count": count}
                for branch_id, count in by_branch
            ],
        )

    def get_appointments(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        return self._report(principal, ReportType.APPOINTMENTS, query, self._build_appointments)

    def _build_appointments(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> AppointmentReport:
        in_period = (
            AppointmentModel.tenant_id == principal.tenant_id,
            _between(AppointmentModel.scheduled_at, date_range),
            *_in_scope(AppointmentModel.branch_id, scope),
        )

        rows = (
            self.session.query(
                AppointmentModel.scheduled_at,
                AppointmentModel.status,
                AppointmentModel.doctor_id,
                AppointmentModel.arrival_time,
                AppointmentModel.check_in_time,
            )
            .filter(*in_period)
            .all()
        )

        status_counts: dict[str, int] = {}
        doctor_counts: dict[str, int] = {}
        waits: list[float] = []
        for _, appointment_status, doctor_id, arrival, check_in in rows:
            status_counts[appointment_status] = status_counts.get(appointment_status, 0) + 1
            doctor_counts[doctor_id] = doctor_counts.get(doctor_id, 0) + 1
            if arrival is not None and check_in is not None:
                waits.append((check_in - arrival).total_seconds())

        doctor_names = dict(
            self.session.query(UserModel.id, UserModel.name)
            .filter(UserModel.id.in_(list(doctor_counts)))
            .all()
        )
        by_doctor = sorted(
            (
                {"doctor": doctor_names.get(doctor_id, doctor_id), "count": count}
                for doctor_id, count in doctor_counts.items()
            ),
            key=lambda entry: entry["count"],
            reverse=True,
        )

        total = len(rows)
        completed = status_counts.get(AppointmentStatus.COMPLETED.value, 0)
        average_wait = (
            int(round_half_up(sum(waits) / len(waits) / 60)) if waits else 0
        )

        return AppointmentReport(
            total=total,
            completed=completed,
            cancelled=status_counts.get(AppointmentStatus.CANCELLED.value, 0),
            no_show=status_counts.get(AppointmentStatus.NO_SHOW.value, 0),
            completion_rate=rate(completed, total),
            trend=count_trend((row[0] for row in rows), query.bucket_granularity),
            by_status=[
                {"status": status, "count": count}
                for status, count in sorted(status_counts.items())
            ],
            by_doctor=by_doctor[:TOP_ENTRIES],
            average_wait_time=average_wait,
        )

    def get_services(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        return self._report(principal, ReportType.SERVICES, query, self._build_services)

    def _build_services(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> ServiceReport:
        counts = (
            self.session.query(AppointmentModel.service_id, func.count(AppointmentModel.id))
            .filter(
                AppointmentModel.tenant_id == principal.tenant_id,
                _between(AppointmentModel.scheduled_at, date_range),
                *_in_scope(AppointmentModel.branch_id, scope),
            )
            .group_by(AppointmentModel.service_id)
            .order_by(AppointmentModel.service_id)
            .all()
        )
        names = dict(
            self.session.query(ClinicServiceModel.id, ClinicServiceModel.name)
            .filter(ClinicServiceModel.id.in_([service_id for service_id, _ in counts]))
            .all()
        )
        revenue = self._completed_revenue_by(
            AppointmentModel.service_id, principal.tenant_id, date_range, scope
        )

        services = [
            ServicePerformance(
                id=service_id,
                name=names.get(service_id, "Unknown"),
                appointment_count=count,
                revenue=revenue.get(service_id, 0),
            )
            for service_id, count in counts
        ]
        services.sort(key=lambda service: service.revenue, reverse=True)
        return ServiceReport(services=services)

    def get_staff(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        return self._report(principal, ReportType.STAFF, query, self._build_staff)

    def _build_staff(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> StaffReport:
        completed = (
            self.session.query(AppointmentModel.doctor_id, func.count(AppointmentModel.id))
            .filter(
                AppointmentModel.tenant_id == principal.tenant_id,
                AppointmentModel.status == AppointmentStatus.COMPLETED.value,
                _between(AppointmentModel.scheduled_at, date_range),
                *_in_scope(AppointmentModel.branch_id, scope),
            )
            .group_by(AppointmentModel.doctor_id)
            .order_by(AppointmentModel.doctor_id)
            .all()
        )
        doctors = {
            doctor_id: (name, role)
            for doctor_id, name, role in self.session.query(
                UserModel.id, UserModel.name, UserModel.role
            ).filter(UserModel.id.in_([doctor_id for doctor_id, _ in completed]))
        }
        revenue = self._completed_revenue_by(
            AppointmentModel.doctor_id, principal.tenant_id, date_range, scope
        )
        days = max(days_in_range(date_range), 1)

        staff = []
        for doctor_id, count in completed:
            name, role = doctors.get(doctor_id, ("Unknown", "DOCTOR"))
            staff.append(
                StaffProductivity(
                    id=doctor_id,
                    name=name,
                    role=role,
                    appointments_completed=count,
                    revenue=revenue.get(doctor_id, 0),
                    average_appointments_per_day=round_half_up(count / days, 2),
                )
            )
        staff.sort(key=lambda member: member.revenue, reverse=True)
        return StaffReport(staff=staff)

    def get_leads(self, principal: Principal, query: AnalyticsQuery) -> dict[str, Any]:
        # Leads belong to the tenant pipeline, not to a branch.
        return self._report(
            principal, ReportType.LEADS, query, self._build_leads, branch_scoped=False
        )

    def _build_leads(
        self,
        principal: Principal,
        query: AnalyticsQuery,
        date_range: DateRange,
        scope: list[str] | None,
    ) -> LeadReport:
        in_period = (
            LeadModel.tenant_id == principal.tenant_id,
            _between(LeadModel.created_at, date_range),
        )
        by_stage = dict(
            self.session.query(LeadModel.stage, func.count(LeadModel.id))
            .filter(*in_period)
            .group_by(LeadModel.stage)
            .all()
        )
        total = sum(by_stage.values())
        by_source = (
            self.session.query(LeadModel.source, func.count(LeadModel.id))
            .filter(*in_period)
            .group_by(LeadModel.source)
            .order_by(LeadModel.source)
            .all()
        )
        created = [
            created_at for (created_at,) in self.session.query(LeadModel.created_at).filter(*in_period)
        ]

        return LeadReport(
            stages=[
                FunnelStage(
                    stage=stage.value,
                    count=by_stage.get(stage.value, 0),
                    conversion_rate=rate(by_stage.get(stage.value, 0), total),
                )
                for stage in PipelineStage
            ],
            by_source=[{"source": source, "count": count} for source, count in by_source],
            trend=count_trend(created, query.bucket_granularity),
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_report(
        self, principal: Principal, report_type: ReportType, query: AnalyticsQuery
    ) -> tuple[dict[str, Any], str]:
        """Return the report payload and the file name it should be saved under."""

        readers = {
            ReportType.DASHBOARD: self.get_dashboard,
            ReportType.REVENUE: self.get_revenue,
            ReportType.PATIENTS: self.get_patients,
            ReportType.APPOINTMENTS: self.get_appointments,
            ReportType.SERVICES: self.get_services,
            ReportType.STAFF: self.get_staff,
            ReportType.LEADS: self.get_leads,
        }
        data = readers[report_type](principal, query)
        filename = f"{report_type.value}-report-{now_in_app_timezone().date().isoformat()}"
        return data, filename


__all__ = ["AnalyticsService", "TOP_ENTRIES"]
