"""JSON serialization for quotes, inquiries and service results."""
from decimal import Decimal

from restaurant_ops.exceptions import warning_to_dict
from restaurant_ops.models import Quote, QuoteStatus, build_line_items, build_payment
from restaurant_ops.models.lifecycle import parse_status
from restaurant_ops.services.financial_service import parse_deposit_type
from restaurant_ops.utils.number_format import parse_decimal
from restaurant_ops.utils.validators import parse_date


def _iso(value):
    return value.isoformat() if value is not None else None


def _num(value):
    """Exact decimal as a string (no float round trip)."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return str(value)


def line_item_to_dict(item) -> dict:
    return {
        'id': item.id,
        'position': item.position,
        'category': item.category.value,
        'description': item.description,
        'quantity': _num(item.quantity),
        'unit_price': _num(item.unit_price),
        'hours': _num(item.hours),
        'labor_role': item.labor_role,
        'taxable': item.taxable,
        'total': _num(item.total),
    }


def payment_to_dict(payment) -> dict:
    return {
        'id': payment.id,
        'paid_on': _iso(payment.paid_on),
        'amount': _num(payment.amount),
        'method': payment.method.value,
        'reference': payment.reference,
        'notes': payment.notes,
    }


def quote_to_dict(quote: Quote, include_summary: bool = True) -> dict:
    data = {
        'id': quote.id,
        'inquiry_id': quote.inquiry_id,
        'quote_number': quote.quote_number,
        'status': quote.status.value,
        'version': quote.version,
        'valid_until': _iso(quote.valid_until),
        'deposit_due_date': _iso(quote.deposit_due_date),
        'is_expired': quote.is_expired,
        'terms': quote.terms,
        'notes': quote.notes,
        'tax_rate': _num(quote.tax_rate),
        'deposit_type': quote.deposit_type.value,
        'deposit_value': _num(quote.deposit_value),
        'line_items': [line_item_to_dict(item) for item in quote.line_items],
        'payments': [payment_to_dict(payment) for payment in quote.payments],
        'sent_at': _iso(quote.sent_at),
        'accepted_at': _iso(quote.accepted_at),
        'declined_at': _iso(quote.declined_at),
        'deposit_paid_at': _iso(quote.deposit_paid_at),
        'paid_at': _iso(quote.paid_at),
    }
    if include_summary:
        data['summary'] = quote.summary.as_dict()
    return data


def quote_from_dict(data: dict) -> Quote:
    """
    Rebuild a transient Quote (not attached to any session) from
    quote_to_dict output. Derived values are recomputed, never read back.
    """
    quote = Quote(
        id=data.get('id'),
        inquiry_id=data.get('inquiry_id'),
        quote_number=data.get('quote_number'),
        status=parse_status(QuoteStatus, data.get('status') or QuoteStatus.DRAFT),
        version=data.get('version', 1),
        valid_until=parse_date(data.get('valid_until'), 'valid_until'),
        deposit_due_date=parse_date(data.get('deposit_due_date'), 'deposit_due_date'),
        terms=data.get('terms'),
        notes=data.get('notes'),
        tax_rate=parse_decimal(data.get('tax_rate') or '0', 'tax_rate'),
        deposit_type=parse_deposit_type(data.get('deposit_type', 'PERCENTAGE')),
        deposit_value=parse_decimal(data.get('deposit_value') or '0', 'deposit_value'),
    )
    quote.line_items = build_line_items([
        {key: value for key, value in item.items() if key not in ('id', 'position', 'total')}
        for item in data.get('line_items', [])
    ])
    quote.payments = [
        build_payment({key: value for key, value in payment.items() if key != 'id'})
        for payment in data.get('payments', [])
    ]
    return quote


def inquiry_to_dict(inquiry, include_notes: bool = False) -> dict:
    data = {
        'id': inquiry.id,
        'name': inquiry.name,
        'email': inquiry.email,
        'phone': inquiry.phone,
        'company': inquiry.company,
        'service_type': inquiry.service_type.value,
        'message': inquiry.message,
        'event_date': _iso(inquiry.event_date),
        'event_location': inquiry.event_location,
        'guest_count': inquiry.guest_count,
        'status': inquiry.status.value,
        'priority': inquiry.priority.value,
        'created_at': _iso(inquiry.created_at),
    }
    if include_notes:
        data['notes'] = [note_to_dict(note) for note in inquiry.notes]
    return data


def note_to_dict(note) -> dict:
    return {
        'id': note.id,
        'body': note.body,
        'author': note.author,
        'created_at': _iso(note.created_at),
    }


def status_change_to_dict(change) -> dict:
    return {
        'from_status': change.from_status,
        'to_status': change.to_status,
        'actor': change.actor,
        'reason': change.reason,
        'is_override': change.is_override,
        'created_at': _iso(change.created_at),
    }


def result_to_dict(result) -> dict:
    """Serialize a QuoteResult: the quote plus warnings and proposed status."""
    data = quote_to_dict(result.quote, include_summary=False)
    data['summary'] = result.summary.as_dict()
    data['warnings'] = [warning_to_dict(warning) for warning in result.warnings]
    data['proposed_status'] = result.proposed_status.value if result.proposed_status else None
    return data
