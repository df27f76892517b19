"""SQLAlchemy model for tenant branches."""

from sqlalchemy import Column, String

from clinic_api.infrastructure.database import Base, generate_id


class BranchModel(Base):
    """A physical location of a tenant."""

    __tablename__ = "branch"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(120), nullable=False)


__all__ = ["BranchModel"]
