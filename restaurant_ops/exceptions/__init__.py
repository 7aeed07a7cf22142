"""Custom exceptions for the restaurant operations backend."""
from decimal import Decimal


class OpsError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(OpsError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(BusinessLogicError):
    """Malformed input: negative amounts, missing fields, unknown enum values."""
    def __init__(self, message, field=None, payload=None):
        payload = dict(payload or ())
        if field:
            payload['field'] = field
        super().__init__(message, 400, payload)
        self.field = field


class NotFoundError(OpsError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidTransitionError(BusinessLogicError):
    """Raised when a status change is not allowed by the state machine."""
    def __init__(self, entity, current, requested):
        current_value = getattr(current, 'value', current)
        requested_value = getattr(requested, 'value', requested)
        message = f"{entity} cannot move from {current_value} to {requested_value}"
        super().__init__(message, 409, {
            'entity': entity,
            'current': current_value,
            'requested': requested_value,
        })
        self.entity = entity
        self.current = current
        self.requested = requested


class ConflictError(OpsError):
    """Raised when a save carries a stale version (concurrent edit)."""
    def __init__(self, message="The record was modified by someone else", expected=None, actual=None):
        payload = {}
        if expected is not None:
            payload['expected_version'] = expected
        if actual is not None:
            payload['actual_version'] = actual
        super().__init__(message, 409, payload)
        self.expected = expected
        self.actual = actual


class NotificationError(OpsError):
    """Delivery failure. Logged and reported as a warning, never blocks a transition."""
    def __init__(self, message="Notification could not be delivered", recipient=None):
        super().__init__(message, 502, {'recipient': recipient} if recipient else None)
        self.recipient = recipient


class OverpaymentWarning(UserWarning):
    """Payments exceed the grand total. Flagged for review, not rejected."""
    def __init__(self, quote_number, grand_total: Decimal, total_payments: Decimal):
        self.quote_number = quote_number
        self.grand_total = grand_total
        self.total_payments = total_payments
        self.overpaid_by = total_payments - grand_total
        super().__init__(
            f"Quote {quote_number} is overpaid by {self.overpaid_by} "
            f"(payments {total_payments}, total {grand_total})"
        )

    def to_dict(self):
        return {
            'type': 'overpayment',
            'message': str(self),
            'overpaid_by': str(self.overpaid_by),
        }


def warning_to_dict(warning):
    """Serialize a soft warning (OverpaymentWarning or NotificationError)."""
    if isinstance(warning, OverpaymentWarning):
        return warning.to_dict()
    if isinstance(warning, NotificationError):
        rv = warning.to_dict()
        rv['type'] = 'notification'
        rv['status'] = 'warning'
        return rv
    return {'type': 'warning', 'message': str(warning)}
