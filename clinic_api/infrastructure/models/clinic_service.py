"""SQLAlchemy model for the services a clinic offers."""

from sqlalchemy import Column, Numeric, String

from clinic_api.infrastructure.database import Base, generate_id


class ClinicServiceModel(Base):
    """Bookable service (consultation, procedure, ...)."""

    __tablename__ = "clinic_service"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)


__all__ = ["ClinicServiceModel"]
