"""
Inquiry service: intake, staff status changes, notes and reactivation.

QUOTED is never set here; it is reached only by sending a quote
(QuoteService.send). Reopening a WON, LOST or ARCHIVED inquiry is an
administrative override with its own operation, reactivate().
"""
import logging

from restaurant_ops.blueprints.metrics import inquiry_transitions_total
from restaurant_ops.database import get_session
from restaurant_ops.exceptions import OpsError, ValidationError
from restaurant_ops.models import Inquiry, InquiryNote, InquiryStatus, Priority, ServiceType
from restaurant_ops.models.lifecycle import parse_status, reactivation_transition, transition
from restaurant_ops.services.repository import QuoteRepository
from restaurant_ops.utils.validators import (
    optional_text,
    parse_date,
    parse_non_negative_int,
    require_text,
    validate_email,
)

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset((
    'name', 'email', 'phone', 'company', 'service_type', 'message',
    'event_date', 'event_location', 'guest_count', 'priority',
))


def _parse_enum(enum_cls, value, field: str, default=None):
    if value is None or value == '':
        return default
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ', '.join(member.value for member in enum_cls)
    raise ValidationError(f'Invalid {field}: {value}. Must be one of {allowed}', field=field)


def _clean_fields(data: dict, partial: bool = False) -> dict:
    """Validate inquiry fields; with partial=True only the keys present are returned."""
    cleaned = {}
    if not partial or 'name' in data:
        cleaned['name'] = require_text(data.get('name'), 'name', max_length=200)
    if 'email' in data or not partial:
        cleaned['email'] = validate_email(data.get('email'))
    if 'phone' in data or not partial:
        cleaned['phone'] = optional_text(data.get('phone'), 'phone', max_length=50)
    if 'company' in data or not partial:
        cleaned['company'] = optional_text(data.get('company'), 'company', max_length=200)
    if 'service_type' in data or not partial:
        cleaned['service_type'] = _parse_enum(ServiceType, data.get('service_type'), 'service_type',
                                              default=ServiceType.CATERING)
    if 'message' in data or not partial:
        cleaned['message'] = optional_text(data.get('message'), 'message')
    if 'event_date' in data or not partial:
        cleaned['event_date'] = parse_date(data.get('event_date'), 'event_date')
    if 'event_location' in data or not partial:
        cleaned['event_location'] = optional_text(data.get('event_location'), 'event_location', max_length=255)
    if 'guest_count' in data or not partial:
        cleaned['guest_count'] = parse_non_negative_int(data.get('guest_count'), 'guest_count')
    if 'priority' in data or not partial:
        cleaned['priority'] = _parse_enum(Priority, data.get('priority'), 'priority', default=Priority.NORMAL)
    return cleaned


class InquiryService:
    """Staff-facing inquiry operations."""

    def __init__(self, repository: QuoteRepository):
        self.repository = repository

    @classmethod
    def from_app(cls) -> "InquiryService":
        return cls(QuoteRepository(get_session()))

    def create_inquiry(self, data: dict, actor: str = None) -> Inquiry:
        """
        Register a new inquiry in status NEW.

        Raises:
            ValidationError: missing name, malformed email, date or guest count
        """
        if not isinstance(data, dict):
            raise ValidationError('Inquiry must be an object', field='inquiry')
        fields = _clean_fields(data)

        try:
            inquiry = Inquiry(status=InquiryStatus.NEW, **fields)
            self.repository.save_inquiry(inquiry)
            self.repository.record_status_change('inquiry', inquiry.id, None, InquiryStatus.NEW, actor=actor,
                                                 reason='Inquiry received')
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception("[INQUIRY] Unexpected error creating inquiry")
            self.repository.rollback()
            raise

        logger.info(f"[INQUIRY] Created inquiry {inquiry.id} from {inquiry.name}")
        return inquiry

    def get_inquiry(self, inquiry_id: int) -> Inquiry:
        return self.repository.load_inquiry(inquiry_id)

    def update_inquiry(self, inquiry_id: int, data: dict) -> Inquiry:
        """Edit contact and event details. ARCHIVED inquiries are read-only."""
        if not isinstance(data, dict) or not data:
            raise ValidationError('Nothing to update', field='inquiry')
        unknown = set(data) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown inquiry fields: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
        fields = _clean_fields(data, partial=True)

        try:
            inquiry = self.repository.load_inquiry(inquiry_id, for_update=True)
            if inquiry.status == InquiryStatus.ARCHIVED:
                raise ValidationError(f'Inquiry {inquiry_id} is archived', field='status')
            for key, value in fields.items():
                setattr(inquiry, key, value)
            self.repository.save_inquiry(inquiry)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[INQUIRY] Unexpected error updating inquiry {inquiry_id}")
            self.repository.rollback()
            raise

        return inquiry

    def change_status(self, inquiry_id: int, status, actor: str = None, reason: str = None) -> Inquiry:
        """
        Staff-driven status change along the inquiry state machine.

        Raises:
            ValidationError: unknown status, or QUOTED (reached only by sending a quote)
            InvalidTransitionError: the state machine has no such edge
        """
        requested = parse_status(InquiryStatus, status)
        if requested == InquiryStatus.QUOTED:
            raise ValidationError('An inquiry becomes QUOTED by sending one of its quotes', field='status')
        reason = optional_text(reason, 'reason')

        try:
            inquiry = self.repository.load_inquiry(inquiry_id, for_update=True)
            previous = inquiry.status
            inquiry.status = transition(previous, requested)
            self.repository.save_inquiry(inquiry)
            self.repository.record_status_change('inquiry', inquiry.id, previous, inquiry.status,
                                                 actor=actor, reason=reason)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[INQUIRY] Unexpected error changing status of inquiry {inquiry_id}")
            self.repository.rollback()
            raise

        inquiry_transitions_total.labels(from_status=previous.value, to_status=inquiry.status.value).inc()
        logger.info(f"[INQUIRY] Inquiry {inquiry.id}: {previous.value} -> {inquiry.status.value}")
        return inquiry

    def add_note(self, inquiry_id: int, body: str, author: str = None) -> InquiryNote:
        """Append a note. Notes are never edited or removed."""
        body = require_text(body, 'body')
        author = optional_text(author, 'author', max_length=100)

        try:
            inquiry = self.repository.load_inquiry(inquiry_id)
            note = InquiryNote(body=body, author=author)
            inquiry.notes.append(note)
            self.repository.save_inquiry(inquiry)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[INQUIRY] Unexpected error adding a note to inquiry {inquiry_id}")
            self.repository.rollback()
            raise

        return note

    def reactivate(self, inquiry_id: int, target, actor: str, reason: str) -> Inquiry:
        """
        Administrative override: reopen a WON, LOST or ARCHIVED inquiry as
        CONTACTED or NEGOTIATING.

        Requires an actor and a reason. The override is logged at WARNING,
        recorded in the status history and added to the inquiry as a
        system note.
        """
        actor = require_text(actor, 'actor', max_length=100)
        reason = require_text(reason, 'reason')

        try:
            inquiry = self.repository.load_inquiry(inquiry_id, for_update=True)
            previous = inquiry.status
            inquiry.status = reactivation_transition(previous, target)
            inquiry.notes.append(InquiryNote(
                body=f"Reactivated from {previous.value} to {inquiry.status.value} by {actor}: {reason}",
                author='system',
            ))
            self.repository.save_inquiry(inquiry)
            self.repository.record_status_change('inquiry', inquiry.id, previous, inquiry.status,
                                                 actor=actor, reason=reason, is_override=True)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[INQUIRY] Unexpected error reactivating inquiry {inquiry_id}")
            self.repository.rollback()
            raise

        inquiry_transitions_total.labels(from_status=previous.value, to_status=inquiry.status.value).inc()
        logger.warning(
            f"[INQUIRY] Override: inquiry {inquiry.id} reactivated {previous.value} -> "
            f"{inquiry.status.value} by {actor} ({reason})"
        )
        return inquiry

    def list_inquiries(self, status=None, priority=None, search: str = None) -> list:
        status = parse_status(InquiryStatus, status) if status else None
        priority = _parse_enum(Priority, priority, 'priority')
        return self.repository.list_inquiries(status=status, priority=priority,
                                              search=(search or '').strip() or None)

    def status_history(self, inquiry_id: int) -> list:
        self.repository.load_inquiry(inquiry_id)
        return self.repository.status_history('inquiry', inquiry_id)

    def statistics(self) -> dict:
        """Inquiry counts per status and per priority."""
        by_status = self.repository.inquiry_counts(Inquiry.status)
        by_priority = self.repository.inquiry_counts(Inquiry.priority)
        return {
            'total_inquiries': sum(by_status.values()),
            'by_status': {status.value: by_status.get(status.value, 0) for status in InquiryStatus},
            'by_priority': {priority.value: by_priority.get(priority.value, 0) for priority in Priority},
        }
