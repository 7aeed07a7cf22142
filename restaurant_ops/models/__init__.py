"""Models package - exports all SQLAlchemy models."""
from restaurant_ops.models.inquiry import Inquiry, InquiryNote, InquiryStatus, Priority, ServiceType
from restaurant_ops.models.quote import Quote, QuoteStatus
from restaurant_ops.models.quote_line import (
    QuoteLineItem, LineItemCategory, compute_total, build_line_item, build_line_items
)
from restaurant_ops.models.quote_payment import QuotePayment, PaymentMethod, normalize_payment_method, build_payment
from restaurant_ops.models.status_change import StatusChange

__all__ = [
    'Inquiry', 'InquiryNote', 'InquiryStatus', 'Priority', 'ServiceType',
    'Quote', 'QuoteStatus',
    'QuoteLineItem', 'LineItemCategory', 'compute_total', 'build_line_item', 'build_line_items',
    'QuotePayment', 'PaymentMethod', 'normalize_payment_method', 'build_payment',
    'StatusChange',
]
