"""
Notification collaborators for sent quotes.

The quote service only builds the data (customer, line items, totals,
validity date). Markup comes from a renderer and delivery from a
notifier, both injected:

    renderer.render(context) -> (subject, body)
    notifier.send(to, subject, body) -> bool

Delivery is fire-and-log: a failure becomes a NotificationError warning
returned to the caller and never undoes the committed transition.
"""
import logging
from typing import Optional

from restaurant_ops.blueprints.metrics import notification_failures_total
from restaurant_ops.exceptions import NotificationError
from restaurant_ops.services import email_service
from restaurant_ops.utils.formatters import money

logger = logging.getLogger(__name__)


class MailNotifier:
    """Notification port backed by Flask-Mail."""

    def send(self, to: str, subject: str, body: str) -> bool:
        return email_service.send_email(to, subject, body)


class QuoteEmailRenderer:
    """Renderer producing the HTML quote email."""

    def render(self, context: dict) -> tuple:
        return email_service.render_quote_email(context)


def _plain(value) -> str:
    return f"{value.normalize():f}" if value is not None else ""


def _quantity_label(item) -> str:
    if item.hours is not None:
        return f"{_plain(item.quantity)} x {_plain(item.hours)}h"
    return _plain(item.quantity)


def build_quote_email_context(quote, inquiry, summary, business_info: dict = None) -> dict:
    """
    Collect the data a renderer needs for one quote.

    Amounts are rounded here, at presentation time.
    """
    rounded = summary.rounded()
    return {
        'business': dict(business_info or {}),
        'quote_number': quote.quote_number,
        'customer_name': inquiry.name,
        'customer_email': inquiry.email,
        'company': inquiry.company,
        'event_date': inquiry.event_date,
        'event_location': inquiry.event_location,
        'guest_count': inquiry.guest_count,
        'line_items': [
            {
                'category': item.category.value,
                'description': item.description,
                'labor_role': item.labor_role,
                'quantity_label': _quantity_label(item),
                'unit_price': item.unit_price,
                'total': money(item.total),
                'taxable': item.taxable,
            }
            for item in quote.line_items
        ],
        'totals': {
            'subtotal': rounded.subtotal,
            'tax': rounded.tax,
            'grand_total': rounded.grand_total,
            'deposit': rounded.deposit,
            'balance': rounded.balance,
        },
        'tax_rate': quote.tax_rate,
        'valid_until': quote.valid_until,
        'deposit_due_date': quote.deposit_due_date,
        'terms': quote.terms,
    }


def notify_quote_sent(notifier, renderer, recipient: str, context: dict) -> Optional[NotificationError]:
    """
    Render and deliver the quote email.

    Returns:
        None on success, a NotificationError describing the failure otherwise
    """
    quote_number = context.get('quote_number')
    try:
        subject, body = renderer.render(context)
        delivered = notifier.send(recipient, subject, body)
    except Exception as e:
        logger.exception(f"[QUOTE] Notification for quote {quote_number} raised: {e}")
        delivered = False

    if delivered:
        logger.info(f"[QUOTE] Quote {quote_number} delivered to {recipient}")
        return None

    notification_failures_total.inc()
    logger.warning(f"[QUOTE] Quote {quote_number} was sent but the email to {recipient} failed")
    return NotificationError(
        f'Quote {quote_number} was sent but the notification to {recipient} could not be delivered',
        recipient=recipient,
    )
