"""SQLAlchemy model for CRM leads."""

from sqlalchemy import Column, DateTime, String

from clinic_api.infrastructure.database import Base, generate_id
from clinic_api.utils import now_in_app_naive_datetime


class LeadModel(Base):
    """Prospective patient tracked through the pipeline."""

    __tablename__ = "lead"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    stage = Column(String(20), nullable=False)
    source = Column(String(40), nullable=False, default="OTHER")
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["LeadModel"]
