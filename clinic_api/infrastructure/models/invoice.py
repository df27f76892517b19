"""SQLAlchemy models for invoices and their payments."""

from sqlalchemy import Column, DateTime, ForeignKey, JSON, Numeric, String
from sqlalchemy.orm import relationship

from clinic_api.infrastructure.database import Base, generate_id
from clinic_api.utils import now_in_app_naive_datetime


class InvoiceModel(Base):
    """Invoice issued by a branch, optionally linked to an appointment."""

    __tablename__ = "invoice"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branch.id"), nullable=False, index=True)
    appointment_id = Column(
        String(36), ForeignKey("appointment.id"), nullable=True, index=True
    )
    invoice_number = Column(String(40), nullable=False)
    status = Column(String(20), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    items = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)

    appointment = relationship("AppointmentModel", back_populates="invoices")
    payments = relationship("PaymentModel", back_populates="invoice")


class PaymentModel(Base):
    """Payment applied to an invoice."""

    __tablename__ = "payment"

    id = Column(String(36), primary_key=True, default=generate_id)
    invoice_id = Column(String(36), ForeignKey("invoice.id"), nullable=False, index=True)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)

    invoice = relationship("InvoiceModel", back_populates="payments")


__all__ = ["InvoiceModel", "PaymentModel"]
