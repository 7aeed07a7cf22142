"""Inquiry model for customer service requests."""
import enum
from sqlalchemy import Column, String, Integer, Date, DateTime, Text, ForeignKey, Enum, event
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restaurant_ops.database import Base, IdType
from restaurant_ops.exceptions import ValidationError


class InquiryStatus(enum.Enum):
    """Inquiry status enum."""
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUOTED = "QUOTED"
    NEGOTIATING = "NEGOTIATING"
    WON = "WON"
    LOST = "LOST"
    ARCHIVED = "ARCHIVED"


class Priority(enum.Enum):
    """Inquiry priority enum."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ServiceType(enum.Enum):
    """Requested service category."""
    CATERING = "CATERING"
    FOOD_TRUCK = "FOOD_TRUCK"
    MOBILE_BAR = "MOBILE_BAR"
    PRIVATE_EVENT = "PRIVATE_EVENT"
    OTHER = "OTHER"


class Inquiry(Base):
    """
    Inquiry (customer service request).

    Owns zero or more quotes, which reference it by id. Inquiries are never
    hard-deleted; ARCHIVED and LOST are the soft end states.
    """

    __tablename__ = 'inquiry'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(200), nullable=True)
    service_type = Column(Enum(ServiceType, name='service_type'), nullable=False, default=ServiceType.CATERING)
    message = Column(Text, nullable=True)
    event_date = Column(Date, nullable=True)
    event_location = Column(String(255), nullable=True)
    guest_count = Column(Integer, nullable=True)
    status = Column(Enum(InquiryStatus, name='inquiry_status'), nullable=False, default=InquiryStatus.NEW)
    priority = Column(Enum(Priority, name='inquiry_priority'), nullable=False, default=Priority.NORMAL)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    notes = relationship(
        'InquiryNote',
        back_populates='inquiry',
        order_by='InquiryNote.id',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f"<Inquiry(id={self.id}, name='{self.name}', status={self.status.value if self.status else None})>"


class InquiryNote(Base):
    """Free-text note on an inquiry. Append-only."""

    __tablename__ = 'inquiry_note'

    id = Column(IdType, primary_key=True, autoincrement=True)
    inquiry_id = Column(IdType, ForeignKey('inquiry.id'), nullable=False, index=True)
    body = Column(Text, nullable=False)
    author = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    inquiry = relationship('Inquiry', back_populates='notes')

    def __repr__(self):
        return f"<InquiryNote(id={self.id}, inquiry_id={self.inquiry_id}, author='{self.author}')>"


@event.listens_for(InquiryNote, 'before_update')
def _reject_note_update(mapper, connection, target):
    raise ValidationError('Inquiry notes are append-only', field='notes')
