"""
Database entity for parent -> student links.
"""

from sqlalchemy import Column, String, UniqueConstraint

from common.db.base import Base, TimestampMixin


class ParentStudentLinkEntity(TimestampMixin, Base):
    __tablename__ = "parent_student_links"

    id = Column(String(128), primary_key=True)
    parent_id = Column(String(128), nullable=False, index=True)
    student_id = Column(String(128), nullable=False, index=True)
    billing_owner_id = Column(String(128), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("parent_id", "student_id", name="uq_parent_student"),
    )
