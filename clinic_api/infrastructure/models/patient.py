"""SQLAlchemy model for patients."""

from sqlalchemy import Column, DateTime, ForeignKey, String

from clinic_api.infrastructure.database import Base, generate_id
from clinic_api.utils import now_in_app_naive_datetime


class PatientModel(Base):
    """Patient registered at a branch."""

    __tablename__ = "patient"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branch.id"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    source = Column(String(40), nullable=False, default="WALK_IN")
    gender = Column(String(10), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    deleted_at = Column(DateTime(), nullable=True)


__all__ = ["PatientModel"]
