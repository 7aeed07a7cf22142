"""Quote payment model."""
import enum
from datetime import date
from sqlalchemy import Column, String, Numeric, Date, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restaurant_ops.database import Base, IdType
from restaurant_ops.exceptions import ValidationError
from restaurant_ops.utils.number_format import parse_positive_decimal
from restaurant_ops.utils.validators import parse_date, optional_text

# Scale of the amount column
AMOUNT_PLACES = 2


class PaymentMethod(enum.Enum):
    """Payment method enum."""
    CASH = "CASH"
    CARD = "CARD"
    CHECK = "CHECK"
    TRANSFER = "TRANSFER"
    STRIPE = "STRIPE"


def normalize_payment_method(value) -> PaymentMethod:
    """
    Normalize a payment method value.

    Args:
        value: None, PaymentMethod enum, or string (case-insensitive)

    Returns:
        PaymentMethod (CASH when value is None)

    Raises:
        ValidationError: If value is not a known method
    """
    if value is None:
        return PaymentMethod.CASH

    if isinstance(value, PaymentMethod):
        return value

    if isinstance(value, str):
        normalized = value.upper().strip()
        try:
            return PaymentMethod(normalized)
        except ValueError:
            pass

    allowed = ', '.join(m.value for m in PaymentMethod)
    raise ValidationError(f"Invalid payment method: {value}. Must be one of {allowed}", field='method')


class QuotePayment(Base):
    """
    Quote Payment - an amount applied against a quote's grand total.

    Several payments (deposit, balance, mixed methods) can be recorded
    against one quote. Payments never change the quote status on their own.
    """

    __tablename__ = 'quote_payment'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_id = Column(IdType, ForeignKey('quote.id', ondelete='CASCADE'), nullable=False, index=True)
    paid_on = Column(Date, nullable=False)
    amount = Column(Numeric(14, AMOUNT_PLACES), nullable=False)
    method = Column(Enum(PaymentMethod, name='quote_payment_method'), nullable=False, default=PaymentMethod.CASH)
    reference = Column(String(120), nullable=True)  # check number, Stripe session id...
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    quote = relationship('Quote', back_populates='payments')

    def __repr__(self):
        return f"<QuotePayment(id={self.id}, quote_id={self.quote_id}, method={self.method}, amount={self.amount})>"


def build_payment(data: dict) -> QuotePayment:
    """
    Build a validated QuotePayment from a mapping.

    Args:
        data: dict with amount and optionally paid_on, method, reference, notes

    Raises:
        ValidationError: on a missing, zero or negative amount, an unknown
                         method or a malformed date
    """
    if isinstance(data, QuotePayment):
        data.amount = parse_positive_decimal(data.amount, 'amount', max_places=AMOUNT_PLACES)
        data.method = normalize_payment_method(data.method)
        if data.paid_on is None:
            data.paid_on = date.today()
        return data
    if not isinstance(data, dict):
        raise ValidationError('Payment must be an object', field='payment')

    return QuotePayment(
        amount=parse_positive_decimal(data.get('amount'), 'amount', max_places=AMOUNT_PLACES),
        paid_on=parse_date(data.get('paid_on'), 'paid_on') or date.today(),
        method=normalize_payment_method(data.get('method')),
        reference=optional_text(data.get('reference'), 'reference', max_length=120),
        notes=optional_text(data.get('notes'), 'notes'),
    )
