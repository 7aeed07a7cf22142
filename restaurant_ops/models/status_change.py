"""
Status change log for quotes and inquiries.

Written in the same transaction as the change it records.
"""
from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.sql import func
from restaurant_ops.database import Base, IdType


class StatusChange(Base):
    """One recorded status change of a quote or an inquiry."""

    __tablename__ = 'status_change'

    id = Column(IdType, primary_key=True, autoincrement=True)
    entity_type = Column(String(20), nullable=False, index=True)  # 'quote' or 'inquiry'
    entity_id = Column(IdType, nullable=False, index=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    actor = Column(String(100), nullable=True)
    reason = Column(Text, nullable=True)
    is_override = Column(Boolean, nullable=False, default=False)  # admin reactivation
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    def __repr__(self):
        return f"<StatusChange {self.entity_type} {self.entity_id}: {self.from_status} -> {self.to_status}>"
