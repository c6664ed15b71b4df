"""
Database entity for organizations.
"""

from sqlalchemy import Column, String

from common.db.base import Base, TimestampMixin


class OrganizationEntity(TimestampMixin, Base):
    """Organization row. parent_organization_id forms the district tree."""

    __tablename__ = "organizations"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=True)
    parent_organization_id = Column(String(128), nullable=True, index=True)
    owner_id = Column(String(128), nullable=True, index=True)
    billing_owner_id = Column(String(128), nullable=False, index=True)
