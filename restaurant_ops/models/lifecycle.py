"""
Status state machines for quotes and inquiries.

Both aggregates share one validated transition() function driven by a
per-aggregate transition table. Status fields are only ever assigned the
value returned by transition().
"""
from restaurant_ops.exceptions import InvalidTransitionError, ValidationError
from restaurant_ops.models.inquiry import InquiryStatus
from restaurant_ops.models.quote import QuoteStatus


QUOTE_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT},
    # SENT -> DRAFT is the revert forced by editing a sent quote
    QuoteStatus.SENT: {QuoteStatus.ACCEPTED, QuoteStatus.DECLINED, QuoteStatus.DRAFT},
    QuoteStatus.ACCEPTED: {QuoteStatus.DEPOSIT_PAID, QuoteStatus.PAID},
    QuoteStatus.DEPOSIT_PAID: {QuoteStatus.PAID},
    QuoteStatus.DECLINED: set(),
    QuoteStatus.PAID: set(),
}

INQUIRY_TRANSITIONS = {
    InquiryStatus.NEW: {InquiryStatus.CONTACTED, InquiryStatus.QUOTED, InquiryStatus.LOST},
    InquiryStatus.CONTACTED: {InquiryStatus.QUOTED, InquiryStatus.LOST},
    InquiryStatus.QUOTED: {InquiryStatus.NEGOTIATING, InquiryStatus.WON, InquiryStatus.LOST},
    InquiryStatus.NEGOTIATING: {InquiryStatus.WON, InquiryStatus.LOST},
    InquiryStatus.WON: {InquiryStatus.ARCHIVED},
    InquiryStatus.LOST: {InquiryStatus.ARCHIVED},
    InquiryStatus.ARCHIVED: set(),
}

_TABLES = {
    QuoteStatus: ('Quote', QUOTE_TRANSITIONS),
    InquiryStatus: ('Inquiry', INQUIRY_TRANSITIONS),
}

for _status_enum, (_entity, _table) in _TABLES.items():
    if set(_table) != set(_status_enum):
        raise RuntimeError(f"{_entity} transition table does not cover every status")

EDITABLE_QUOTE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.SENT})
PAYABLE_QUOTE_STATUSES = frozenset({
    QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.DEPOSIT_PAID, QuoteStatus.PAID,
})

# Inquiry states that refuse status-advancing operations (send included)
CLOSED_INQUIRY_STATUSES = frozenset({InquiryStatus.WON, InquiryStatus.LOST, InquiryStatus.ARCHIVED})
# Inquiry states a sent quote leaves untouched (already quoted or past it)
QUOTED_OR_LATER = frozenset({InquiryStatus.QUOTED, InquiryStatus.NEGOTIATING})
REACTIVATION_TARGETS = frozenset({InquiryStatus.CONTACTED, InquiryStatus.NEGOTIATING})


def parse_status(status_enum, value):
    """Coerce an enum member or its (case-insensitive) string value."""
    if isinstance(value, status_enum):
        return value
    if isinstance(value, str):
        try:
            return status_enum(value.strip().upper())
        except ValueError:
            pass
    allowed = ', '.join(s.value for s in status_enum)
    raise ValidationError(f'Invalid status: {value}. Must be one of {allowed}', field='status')


def allowed_transitions(current) -> frozenset:
    _entity, table = _TABLES[type(current)]
    return frozenset(table[current])


def can_transition(current, requested) -> bool:
    requested = parse_status(type(current), requested)
    return requested in allowed_transitions(current)


def transition(current, requested):
    """
    Validate a status change and return the next status.

    Args:
        current: QuoteStatus or InquiryStatus member
        requested: member of the same enum, or its string value

    Raises:
        ValidationError: requested is not a status of that aggregate
        InvalidTransitionError: the table has no current -> requested edge
    """
    entity, table = _TABLES[type(current)]
    requested = parse_status(type(current), requested)
    if requested not in table[current]:
        raise InvalidTransitionError(entity, current, requested)
    return requested


def is_terminal(status) -> bool:
    return not allowed_transitions(status)


def reactivation_transition(current: InquiryStatus, requested) -> InquiryStatus:
    """
    Administrative override reopening a closed inquiry.

    Only valid from WON, LOST or ARCHIVED, and only back to CONTACTED or
    NEGOTIATING.
    """
    requested = parse_status(InquiryStatus, requested)
    if current not in CLOSED_INQUIRY_STATUSES or requested not in REACTIVATION_TARGETS:
        raise InvalidTransitionError('Inquiry', current, requested)
    return requested


def inquiry_status_after_send(current: InquiryStatus):
    """
    Status the owning inquiry moves to when one of its quotes is sent.

    Returns None when the inquiry is already QUOTED or NEGOTIATING (a
    further quote never moves it backwards).

    Raises:
        InvalidTransitionError: the inquiry is WON, LOST or ARCHIVED
    """
    if current in QUOTED_OR_LATER:
        return None
    if current in CLOSED_INQUIRY_STATUSES:
        raise InvalidTransitionError('Inquiry', current, InquiryStatus.QUOTED)
    return transition(current, InquiryStatus.QUOTED)
