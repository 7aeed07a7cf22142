"""Quote model for priced proposals tied to an inquiry."""
import enum
from datetime import date
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restaurant_ops.database import Base, IdType
from restaurant_ops.services.financial_service import (
    DEPOSIT_VALUE_PLACES,
    TAX_RATE_PLACES,
    DepositType,
    FinancialConfig,
    calculate_summary,
)


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    DEPOSIT_PAID = "DEPOSIT_PAID"
    PAID = "PAID"


class Quote(Base):
    """
    Quote (priced proposal).

    Belongs to exactly one inquiry, referenced by id. Subtotal, tax, deposit
    and balance are derived from line items, financial configuration and
    payments on every read; total_amount is a cache for list queries only
    and is rewritten on every save.

    version is an optimistic lock managed by the repository.
    """

    __tablename__ = 'quote'

    id = Column(IdType, primary_key=True, autoincrement=True)
    inquiry_id = Column(IdType, ForeignKey('inquiry.id'), nullable=False, index=True)
    quote_number = Column(String(64), nullable=False, unique=True)
    status = Column(Enum(QuoteStatus, name='quote_status'), nullable=False, default=QuoteStatus.DRAFT)
    valid_until = Column(Date, nullable=True)
    deposit_due_date = Column(Date, nullable=True)  # set when the quote asks for a deposit
    terms = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Financial configuration
    tax_rate = Column(Numeric(6, TAX_RATE_PLACES), nullable=False, default=0)  # percent, 8.5 = 8.5%
    deposit_type = Column(Enum(DepositType, name='deposit_type'), nullable=False, default=DepositType.PERCENTAGE)
    deposit_value = Column(Numeric(14, DEPOSIT_VALUE_PLACES), nullable=False, default=0)

    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    deposit_paid_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    line_items = relationship(
        'QuoteLineItem',
        back_populates='quote',
        order_by='QuoteLineItem.position',
        cascade='all, delete-orphan',
    )
    payments = relationship(
        'QuotePayment',
        back_populates='quote',
        order_by='QuotePayment.id',
        cascade='all, delete-orphan',
    )

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }

    def __repr__(self):
        return f"<Quote(id={self.id}, number='{self.quote_number}', status={self.status.value if self.status else None}, version={self.version})>"

    @property
    def financial_config(self) -> FinancialConfig:
        return FinancialConfig(
            tax_rate=self.tax_rate if self.tax_rate is not None else 0,
            deposit_type=self.deposit_type or DepositType.PERCENTAGE,
            deposit_value=self.deposit_value if self.deposit_value is not None else 0,
        )

    @property
    def summary(self):
        """Financial summary, derived on every access."""
        return calculate_summary(self.line_items, self.financial_config, self.payments)

    @property
    def is_expired(self):
        """Check if quote is expired (calculated, not stored)."""
        if self.status in (QuoteStatus.DRAFT, QuoteStatus.SENT) and self.valid_until:
            return date.today() > self.valid_until
        return False
