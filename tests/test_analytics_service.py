from datetime import datetime
from decimal import Decimal

import pytest

from clinic_api.application.use_cases.analytics import (
    AnalyticsQuery,
    AnalyticsService,
    Granularity,
    ReportType,
)
from clinic_api.domain.entities import Principal, Role
from clinic_api.infrastructure.analytics_cache import AnalyticsCache
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

MARCH = AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10")
ADMIN = Principal(user_id="admin", tenant_id="t1", role=Role.ADMIN)
RECEPTION_B1 = Principal(user_id="desk", tenant_id="t1", role=Role.RECEPTION, branch_ids=("B1",))


@pytest.fixture
def clinic(session):
    """Two branches of tenant ``t1`` with activity in early March 2024."""

    session.add_all(
        [
            BranchModel(id="B1", tenant_id="t1", name="Centro"),
            BranchModel(id="B2", tenant_id="t1", name="Norte"),
            UserModel(id="D1", tenant_id="t1", name="Dr. Ruiz", email="ruiz@clinic.test", role="DOCTOR"),
            UserModel(id="D2", tenant_id="t1", name="Dr. Lima", email="lima@clinic.test", role="DOCTOR"),
            ClinicServiceModel(id="S1", tenant_id="t1", name="Cleaning", price=Decimal("100")),
            ClinicServiceModel(id="S2", tenant_id="t1", name="Whitening", price=Decimal("250")),
            PatientModel(
                id="P1", tenant_id="t1", branch_id="B1", name="Ana", source="REFERRAL",
                gender="FEMALE", created_at=datetime(2024, 2, 1),
            ),
            PatientModel(
                id="P2", tenant_id="t1", branch_id="B1", name="Luis", source="WALK_IN",
                gender="MALE", created_at=datetime(2024, 3, 2, 9),
            ),
            PatientModel(
                id="P3", tenant_id="t1", branch_id="B2", name="Eva", source="WALK_IN",
                created_at=datetime(2024, 3, 3, 15),
            ),
            PatientModel(
                id="P4", tenant_id="t1", branch_id="B1", name="Olga", source="WEBSITE",
                created_at=datetime(2024, 2, 22),
            ),
            PatientModel(
                id="P5", tenant_id="t1", branch_id="B1", name="Gone", source="WEBSITE",
                created_at=datetime(2024, 3, 4), deleted_at=datetime(2024, 3, 5),
            ),
            PatientModel(
                id="PX", tenant_id="t2", branch_id="B1", name="Other tenant",
                created_at=datetime(2024, 3, 4),
            ),
        ]
    )
    session.flush()
    session.add_all(
        [
            AppointmentModel(
                id="A1", tenant_id="t1", branch_id="B1", patient_id="P1", doctor_id="D1",
                service_id="S1", status="COMPLETED", scheduled_at=datetime(2024, 3, 5, 10),
                arrival_time=datetime(2024, 3, 5, 9, 50), check_in_time=datetime(2024, 3, 5, 10),
            ),
            AppointmentModel(
                id="A2", tenant_id="t1", branch_id="B1", patient_id="P2", doctor_id="D1",
                service_id="S2", status="COMPLETED", scheduled_at=datetime(2024, 3, 5, 11),
                arrival_time=datetime(2024, 3, 5, 10, 40), check_in_time=datetime(2024, 3, 5, 11),
            ),
            AppointmentModel(
                id="A3", tenant_id="t1", branch_id="B1", patient_id="P2", doctor_id="D2",
                service_id="S1", status="CANCELLED", scheduled_at=datetime(2024, 3, 6, 9),
            ),
            AppointmentModel(
                id="A4", tenant_id="t1", branch_id="B2", patient_id="P3", doctor_id="D2",
                service_id="S1", status="COMPLETED", scheduled_at=datetime(2024, 3, 7, 16),
            ),
        ]
    )
    session.flush()
    session.add_all(
        [
            InvoiceModel(
                id="I1", tenant_id="t1", branch_id="B1", appointment_id="A1",
                invoice_number="INV-1", status="PAID", paid_amount=Decimal("100"),
                items=[{"serviceName": "Cleaning", "total": 100}], created_at=datetime(2024, 3, 5, 10, 30),
            ),
            InvoiceModel(
                id="I2", tenant_id="t1", branch_id="B1", appointment_id="A2",
                invoice_number="INV-2", status="PARTIAL", paid_amount=Decimal("50"),
                items=[{"serviceName": "Whitening", "total": 50}], created_at=datetime(2024, 3, 6, 8),
            ),
            InvoiceModel(
                id="I3", tenant_id="t1", branch_id="B1", invoice_number="INV-3",
                status="PENDING", paid_amount=Decimal("999"), items=[],
                created_at=datetime(2024, 3, 6, 9),
            ),
            InvoiceModel(
                id="I4", tenant_id="t1", branch_id="B2", appointment_id="A4",
                invoice_number="INV-4", status="PAID", paid_amount=Decimal("80"),
                items=[{"serviceName": "Cleaning", "total": 80}], created_at=datetime(2024, 3, 7, 17),
            ),
            InvoiceModel(
                id="I5", tenant_id="t1", branch_id="B1", invoice_number="INV-5",
                status="PAID", paid_amount=Decimal("100"), items=[],
                created_at=datetime(2024, 2, 25, 12),
            ),
        ]
    )
    session.flush()
    session.add_all(
        [
            PaymentModel(invoice_id="I1", method="CASH", amount=Decimal("100")),
            PaymentModel(invoice_id="I2", method="CARD", amount=Decimal("50")),
            PaymentModel(invoice_id="I4", method="CASH", amount=Decimal("80")),
            LeadModel(tenant_id="t1", name="L1", stage="INQUIRY", source="WEBSITE", created_at=datetime(2024, 3, 2)),
            LeadModel(tenant_id="t1", name="L2", stage="CONVERTED", source="WEBSITE", created_at=datetime(2024, 3, 3)),
            LeadModel(tenant_id="t1", name="L3", stage="BOOKED", source="INSTAGRAM", created_at=datetime(2024, 3, 4)),
            LeadModel(tenant_id="t1", name="L4", stage="LOST", source="WEBSITE", created_at=datetime(2024, 3, 5)),
        ]
    )
    session.commit()
    return session


def test_dashboard_compares_with_previous_period(clinic):
    report = AnalyticsService(clinic).get_dashboard(ADMIN, MARCH)

    assert report == {
        "revenue": {"total": 230, "percentChange": 130.0},
        "patients": {"total": 4, "new": 2, "percentChange": 100.0},
        "appointments": {"total": 4, "completionRate": 75, "percentChange": 0},
        "leads": {"total": 4, "converted": 1, "conversionRate": 25},
    }


def test_revenue_report(clinic):
    report = AnalyticsService(clinic).get_revenue(
        ADMIN, AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10", granularity=Granularity.WEEKLY)
    )

    assert report["total"] == 230
    assert report["trend"] == [{"date": "2024-W09", "value": 230}]
    assert report["byPaymentMethod"] == [
        {"method": "CARD", "amount": 50},
        {"method": "CASH", "amount": 180},
    ]
    assert report["byService"] == [
        {"service": "Cleaning", "amount": 180},
        {"service": "Whitening", "amount": 50},
    ]
    assert report["comparison"] == {"previousPeriod": 100, "percentChange": 130.0}


def test_revenue_trend_is_daily_by_default(clinic):
    report = AnalyticsService(clinic).get_revenue(ADMIN, MARCH)

    assert report["trend"] == [
        {"date": "2024-03-05", "value": 100},
        {"date": "2024-03-06", "value": 50},
        {"date": "2024-03-07", "value": 80},
    ]


def test_patient_report(clinic):
    report = AnalyticsService(clinic).get_patients(ADMIN, MARCH)

    assert report["total"] == 4
    assert report["new"] == 2
    assert report["returning"] == 1
    assert report["trend"] == [
        {"date": "2024-03-02", "value": 1},
        {"date": "2024-03-03", "value": 1},
    ]
    assert report["bySource"] == [{"source": "WALK_IN", "count": 2}]
    assert report["byGender"] == [{"gender": "MALE", "count": 1}]
    assert report["byBranch"] == [
        {"branch": "Centro", "count": 1},
        {"branch": "Norte", "count": 1},
    ]


def test_appointment_report_is_limited_to_assigned_branch(clinic):
    report = AnalyticsService(clinic).get_appointments(RECEPTION_B1, MARCH)

    assert report["total"] == 3
    assert report["completed"] == 2
    assert report["cancelled"] == 1
    assert report["noShow"] == 0
    assert report["completionRate"] == 67
    assert report["averageWaitTime"] == 15
    assert report["byDoctor"] == [
        {"doctor": "Dr. Ruiz", "count": 2},
        {"doctor": "Dr. Lima", "count": 1},
    ]
    assert report["byStatus"] == [
        {"status": "CANCELLED", "count": 1},
        {"status": "COMPLETED", "count": 2},
    ]


def test_branch_outside_assignment_yields_empty_report(clinic):
    query = AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10", branch_id="B2")

    report = AnalyticsService(clinic).get_appointments(RECEPTION_B1, query)

    assert report["total"] == 0
    assert report["trend"] == []


def test_admin_can_filter_single_branch(clinic):
    query = AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10", branch_id="B2")

    report = AnalyticsService(clinic).get_appointments(ADMIN, query)

    assert report["total"] == 1


def test_service_report_orders_by_revenue(clinic):
    report = AnalyticsService(clinic).get_services(ADMIN, MARCH)

    assert report["services"] == [
        {"id": "S1", "name": "Cleaning", "appointmentCount": 3, "revenue": 180},
        {"id": "S2", "name": "Whitening", "appointmentCount": 1, "revenue": 50},
    ]


def test_staff_report(clinic):
    report = AnalyticsService(clinic).get_staff(ADMIN, MARCH)

    assert report["staff"] == [
        {
            "id": "D1",
            "name": "Dr. Ruiz",
            "role": "DOCTOR",
            "appointmentsCompleted": 2,
            "revenue": 150,
            "averageAppointmentsPerDay": 0.2,
        },
        {
            "id": "D2",
            "name": "Dr. Lima",
            "role": "DOCTOR",
            "appointmentsCompleted": 1,
            "revenue": 80,
            "averageAppointmentsPerDay": 0.1,
        },
    ]


def test_lead_funnel_lists_every_stage(clinic):
    report = AnalyticsService(clinic).get_leads(RECEPTION_B1, MARCH)

    stages = {entry["stage"]: entry for entry in report["stages"]}
    assert [entry["stage"] for entry in report["stages"]][0] == "INQUIRY"
    assert len(stages) == 8
    assert stages["CONVERTED"] == {"stage": "CONVERTED", "count": 1, "conversionRate": 25}
    assert stages["RE_ENGAGE"]["count"] == 0
    assert report["bySource"] == [
        {"source": "INSTAGRAM", "count": 1},
        {"source": "WEBSITE", "count": 3},
    ]


def test_cached_report_is_returned_until_it_expires(clinic, cache_client):
    service = AnalyticsService(clinic, AnalyticsCache(cache_client))
    query = AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10", granularity=Granularity.WEEKLY)

    first = service.get_revenue(ADMIN, query)
    clinic.add(
        InvoiceModel(
            tenant_id="t1", branch_id="B1", invoice_number="INV-9", status="PAID",
            paid_amount=Decimal("1000"), items=[], created_at=datetime(2024, 3, 8),
        )
    )
    clinic.commit()
    second = service.get_revenue(ADMIN, query)

    assert second == first
    [key] = list(cache_client.store)
    assert key == (
        "analytics:t1:revenue:dateFrom:2024-03-01:dateTo:2024-03-10:granularity:weekly"
    )
    assert cache_client.ttls[key] == 900


def test_cache_keys_include_branch_scope(clinic, cache_client):
    service = AnalyticsService(clinic, AnalyticsCache(cache_client))

    admin_view = service.get_appointments(ADMIN, MARCH)
    desk_view = service.get_appointments(RECEPTION_B1, MARCH)

    assert admin_view["total"] == 4
    assert desk_view["total"] == 3
    assert len(cache_client.store) == 2
    assert any(key.endswith(":branches:B1:dateFrom:2024-03-01:dateTo:2024-03-10:granularity:daily")
               for key in cache_client.store)


def test_default_ttl_when_granularity_is_omitted(clinic, cache_client):
    service = AnalyticsService(clinic, AnalyticsCache(cache_client))

    service.get_patients(ADMIN, MARCH)
    service.get_dashboard(ADMIN, MARCH)

    assert sorted(cache_client.ttls.values()) == [60, 60]


def test_unavailable_cache_falls_back_to_database(clinic, cache_client):
    cache_client.fail = True

    report = AnalyticsService(clinic, AnalyticsCache(cache_client)).get_dashboard(ADMIN, MARCH)

    assert report["revenue"]["total"] == 230


def test_export_names_file_after_report(clinic):
    data, filename = AnalyticsService(clinic).export_report(ADMIN, ReportType.STAFF, MARCH)

    assert len(data["staff"]) == 2
    assert filename.startswith("staff-report-")
