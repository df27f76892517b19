"""SQLAlchemy model for appointments."""

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from clinic_api.infrastructure.database import Base, generate_id


class AppointmentModel(Base):
    """Scheduled visit of a patient with a doctor for a service."""

    __tablename__ = "appointment"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branch.id"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patient.id"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("user.id"), nullable=False, index=True)
    service_id = Column(
        String(36), ForeignKey("clinic_service.id"), nullable=False, index=True
    )
    status = Column(String(20), nullable=False)
    scheduled_at = Column(DateTime(), nullable=False, index=True)
    arrival_time = Column(DateTime(), nullable=True)
    check_in_time = Column(DateTime(), nullable=True)

    invoices = relationship("InvoiceModel", back_populates="appointment", lazy="selectin")


__all__ = ["AppointmentModel"]
