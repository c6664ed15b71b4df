"""
Database entity for tenants.
"""

from sqlalchemy import Column, String, Index

from common.db.base import Base, TimestampMixin


class TenantEntity(TimestampMixin, Base):
    """User account row. id is the identity provider uid."""

    __tablename__ = "tenants"

    id = Column(String(128), primary_key=True)
    email = Column(String(320), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(50), nullable=False)
    organization_id = Column(String(128), nullable=True, index=True)
    creator_id = Column(String(128), nullable=True, index=True)
    billing_owner_id = Column(String(128), nullable=False)
    phone_number = Column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_tenant_billing_owner_role", "billing_owner_id", "role"),
    )
