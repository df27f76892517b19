"""SQLAlchemy model for the staff user table."""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.sql import expression

from clinic_api.infrastructure.database import Base, generate_id


class UserModel(Base):
    """Staff member of a tenant; only the fields reports display are mapped."""

    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    is_active = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )


__all__ = ["UserModel"]
