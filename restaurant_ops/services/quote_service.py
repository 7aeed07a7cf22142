"""
Quote service: create, edit, send and settle quotes.

Combines the line item model, the financial calculator and the status
state machines with two injected collaborators: a QuoteRepository
(persistence and transaction boundary) and a notifier/renderer pair.

Every operation validates its input before touching state and runs in a
single transaction: on any error the session is rolled back and nothing
is partially saved. Sending a quote also advances the owning inquiry in
that same transaction; the email goes out only after the commit, and a
delivery failure is returned as a warning instead of undoing the send.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from flask import current_app

from restaurant_ops.blueprints.metrics import (
    inquiry_transitions_total,
    overpayments_total,
    quote_transitions_total,
)
from restaurant_ops.database import get_session
from restaurant_ops.exceptions import (
    InvalidTransitionError,
    OpsError,
    OverpaymentWarning,
    ValidationError,
)
from restaurant_ops.models import Quote, QuoteLineItem, QuoteStatus, build_line_items, build_payment
from restaurant_ops.models.lifecycle import (
    EDITABLE_QUOTE_STATUSES,
    PAYABLE_QUOTE_STATUSES,
    inquiry_status_after_send,
    parse_status,
    transition,
)
from restaurant_ops.services.financial_service import (
    FinancialConfig,
    FinancialSummary,
    build_financial_config,
)
from restaurant_ops.services.notification_service import (
    MailNotifier,
    QuoteEmailRenderer,
    build_quote_email_context,
    notify_quote_sent,
)
from restaurant_ops.services.repository import QuoteRepository
from restaurant_ops.utils.formatters import money
from restaurant_ops.utils.validators import optional_text, parse_date

logger = logging.getLogger(__name__)

# Timestamp column stamped when a quote enters each status
_STATUS_TIMESTAMPS = {
    QuoteStatus.SENT: 'sent_at',
    QuoteStatus.ACCEPTED: 'accepted_at',
    QuoteStatus.DECLINED: 'declined_at',
    QuoteStatus.DEPOSIT_PAID: 'deposit_paid_at',
    QuoteStatus.PAID: 'paid_at',
}

_FINANCIAL_KEYS = ('tax_rate', 'deposit_type', 'deposit_value')
_UPDATABLE_KEYS = frozenset(('line_items', 'valid_until', 'deposit_due_date', 'terms', 'notes') + _FINANCIAL_KEYS)

# Statuses that count as "accepted" for the acceptance rate
_ACCEPTED_STATUSES = (QuoteStatus.ACCEPTED, QuoteStatus.DEPOSIT_PAID, QuoteStatus.PAID)


@dataclass
class QuoteResult:
    """Outcome of a quote operation: the quote plus soft signals for the caller."""

    quote: Quote
    summary: FinancialSummary
    warnings: List = field(default_factory=list)
    proposed_status: Optional[QuoteStatus] = None

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class QuoteSettings:
    valid_days: int = 30
    deposit_due_days: int = 7
    number_prefix: str = 'Q'
    default_config: FinancialConfig = field(default_factory=FinancialConfig)
    business_info: dict = field(default_factory=dict)

    @classmethod
    def from_config(cls, config) -> "QuoteSettings":
        """Read quote defaults from a Flask config mapping."""
        return cls(
            valid_days=int(config.get('QUOTE_VALID_DAYS', 30)),
            deposit_due_days=int(config.get('DEPOSIT_DUE_DAYS', 7)),
            number_prefix=config.get('QUOTE_NUMBER_PREFIX', 'Q'),
            default_config=build_financial_config({
                'tax_rate': config.get('DEFAULT_TAX_RATE', 0),
                'deposit_type': config.get('DEFAULT_DEPOSIT_TYPE', 'PERCENTAGE'),
                'deposit_value': config.get('DEFAULT_DEPOSIT_VALUE', 0),
            }),
            business_info={
                'name': config.get('BUSINESS_NAME'),
                'email': config.get('BUSINESS_EMAIL'),
                'phone': config.get('BUSINESS_PHONE'),
            },
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _config_mapping(config) -> dict:
    if config is None:
        return {}
    if isinstance(config, FinancialConfig):
        return {
            'tax_rate': config.tax_rate,
            'deposit_type': config.deposit_type,
            'deposit_value': config.deposit_value,
        }
    if not isinstance(config, dict):
        raise ValidationError('Financial configuration must be an object', field='config')
    return config


class QuoteService:
    """Orchestrates quote operations over a repository and a notifier."""

    def __init__(self, repository: QuoteRepository, notifier=None, renderer=None,
                 settings: QuoteSettings = None):
        self.repository = repository
        self.notifier = notifier
        self.renderer = renderer or QuoteEmailRenderer()
        self.settings = settings or QuoteSettings()

    @classmethod
    def from_app(cls, app=None) -> "QuoteService":
        """Build a service wired to the app's session, config and mail."""
        app = app or current_app
        return cls(
            QuoteRepository(get_session()),
            notifier=MailNotifier(),
            renderer=QuoteEmailRenderer(),
            settings=QuoteSettings.from_config(app.config),
        )

    # -- helpers -------------------------------------------------------------

    def _result(self, quote: Quote, warnings: list = None) -> QuoteResult:
        summary = quote.summary
        warnings = list(warnings or [])
        if summary.is_overpaid:
            warnings.append(OverpaymentWarning(quote.quote_number, summary.grand_total, summary.total_payments))
        return QuoteResult(
            quote=quote,
            summary=summary,
            warnings=warnings,
            proposed_status=self.propose_payment_status(quote, summary),
        )

    def _move(self, quote: Quote, requested, actor=None, reason=None) -> QuoteStatus:
        """Apply a validated status change, stamping its timestamp and history row."""
        previous = quote.status
        quote.status = transition(previous, requested)
        column = _STATUS_TIMESTAMPS.get(quote.status)
        if column:
            setattr(quote, column, _now())
        self.repository.record_status_change('quote', quote.id, previous, quote.status, actor=actor, reason=reason)
        return previous

    @staticmethod
    def _count_transition(previous: QuoteStatus, current: QuoteStatus) -> None:
        quote_transitions_total.labels(from_status=previous.value, to_status=current.value).inc()

    def _default_valid_until(self) -> date:
        return date.today() + timedelta(days=self.settings.valid_days)

    def _default_deposit_due_date(self, deposit_value) -> Optional[date]:
        """Deposit due date for a quote asking for a deposit, None otherwise."""
        if not deposit_value:
            return None
        return date.today() + timedelta(days=self.settings.deposit_due_days)

    # -- create / read -------------------------------------------------------

    def create(self, inquiry_id: int, line_items=None, config=None, valid_until=None,
               terms: str = None, notes: str = None, actor: str = None,
               deposit_due_date=None) -> QuoteResult:
        """
        Create a DRAFT quote for an inquiry.

        Args:
            inquiry_id: owning inquiry
            line_items: list of line item mappings (may be empty)
            config: FinancialConfig or mapping with tax_rate, deposit_type,
                    deposit_value; missing keys use the configured defaults
            deposit_due_date: when the deposit is due; defaults to
                    DEPOSIT_DUE_DAYS from today when a deposit is asked for

        Raises:
            ValidationError: malformed line items or configuration
            NotFoundError: unknown inquiry
        """
        if inquiry_id is None:
            raise ValidationError('inquiry_id is required', field='inquiry_id')
        items = build_line_items(line_items)
        financial = build_financial_config(_config_mapping(config), defaults=self.settings.default_config)
        valid_until = parse_date(valid_until, 'valid_until') or self._default_valid_until()
        deposit_due_date = (parse_date(deposit_due_date, 'deposit_due_date')
                            or self._default_deposit_due_date(financial.deposit_value))
        terms = optional_text(terms, 'terms')
        notes = optional_text(notes, 'notes')

        try:
            inquiry = self.repository.load_inquiry(inquiry_id)

            quote = Quote(
                inquiry_id=inquiry.id,
                quote_number=self.repository.next_quote_number(self.settings.number_prefix),
                status=QuoteStatus.DRAFT,
                valid_until=valid_until,
                deposit_due_date=deposit_due_date,
                terms=terms,
                notes=notes,
                tax_rate=financial.tax_rate,
                deposit_type=financial.deposit_type,
                deposit_value=financial.deposit_value,
            )
            quote.line_items = items
            self.repository.add_quote(quote)
            self.repository.record_status_change('quote', quote.id, None, QuoteStatus.DRAFT, actor=actor,
                                                 reason='Quote created')
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error creating quote for inquiry {inquiry_id}")
            self.repository.rollback()
            raise

        logger.info(f"[QUOTE] Created {quote.quote_number} for inquiry {inquiry_id} ({len(items)} line items)")
        return self._result(quote)

    def get(self, quote_id: int) -> QuoteResult:
        return self._result(self.repository.load_quote(quote_id))

    def list_quotes(self, status=None, inquiry_id: int = None, search: str = None) -> list:
        status = parse_status(QuoteStatus, status) if status else None
        return self.repository.list_quotes(status=status, inquiry_id=inquiry_id, search=(search or '').strip() or None)

    def status_history(self, quote_id: int) -> list:
        self.repository.load_quote(quote_id)
        return self.repository.status_history('quote', quote_id)

    # -- editing -------------------------------------------------------------

    def update(self, quote_id: int, patch: dict, expected_version: int = None, actor: str = None) -> QuoteResult:
        """
        Edit line items, financial configuration, validity, terms or notes.

        DRAFT quotes are edited in place. Editing a SENT quote reverts it to
        DRAFT so the customer never holds an outdated copy; it has to be
        sent again. Any other status refuses edits.

        Raises:
            ValidationError: malformed patch
            InvalidTransitionError: the quote is past SENT
            ConflictError: expected_version is stale
        """
        if not isinstance(patch, dict) or not patch:
            raise ValidationError('Nothing to update', field='patch')
        unknown = set(patch) - _UPDATABLE_KEYS
        if unknown:
            raise ValidationError(f"Unknown quote fields: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

        new_items = build_line_items(patch['line_items']) if 'line_items' in patch else None
        valid_until = parse_date(patch.get('valid_until'), 'valid_until')
        deposit_due_date = parse_date(patch.get('deposit_due_date'), 'deposit_due_date')
        terms = optional_text(patch.get('terms'), 'terms')
        notes = optional_text(patch.get('notes'), 'notes')

        reverted_from = None
        try:
            quote = self.repository.load_quote(quote_id, for_update=True)
            if quote.status not in EDITABLE_QUOTE_STATUSES:
                raise InvalidTransitionError('Quote', quote.status, QuoteStatus.DRAFT)

            if any(key in patch for key in _FINANCIAL_KEYS):
                financial = build_financial_config(
                    {key: patch.get(key) for key in _FINANCIAL_KEYS},
                    defaults=quote.financial_config,
                )
                quote.tax_rate = financial.tax_rate
                quote.deposit_type = financial.deposit_type
                quote.deposit_value = financial.deposit_value

            if new_items is not None:
                quote.line_items = new_items
            if 'valid_until' in patch:
                quote.valid_until = valid_until
            if 'deposit_due_date' in patch:
                quote.deposit_due_date = deposit_due_date
            elif quote.deposit_due_date is None and any(key in patch for key in _FINANCIAL_KEYS):
                quote.deposit_due_date = self._default_deposit_due_date(quote.deposit_value)
            if 'terms' in patch:
                quote.terms = terms
            if 'notes' in patch:
                quote.notes = notes

            if quote.status == QuoteStatus.SENT:
                reverted_from = self._move(quote, QuoteStatus.DRAFT, actor=actor, reason='Edited after sending')
                quote.sent_at = None

            self.repository.save_quote(quote, expected_version)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error updating quote {quote_id}")
            self.repository.rollback()
            raise

        if reverted_from:
            self._count_transition(reverted_from, quote.status)
            logger.info(f"[QUOTE] {quote.quote_number} edited after sending, reverted to DRAFT")
        else:
            logger.info(f"[QUOTE] {quote.quote_number} updated (version {quote.version})")
        return self._result(quote)

    # -- lifecycle -----------------------------------------------------------

    def send(self, quote_id: int, expected_version: int = None, actor: str = None) -> QuoteResult:
        """
        Send a DRAFT quote to the customer.

        The quote becomes SENT and its inquiry QUOTED (unless it is already
        QUOTED or NEGOTIATING) in one transaction. The email is delivered
        after the commit; a failure is returned as a NotificationError
        warning and the quote stays SENT.

        Raises:
            InvalidTransitionError: the quote is not DRAFT, or the inquiry is
                                    WON, LOST or ARCHIVED
            ValidationError: no line items, or no customer email
        """
        inquiry_moved_from = None
        try:
            quote = self.repository.load_quote(quote_id, for_update=True)
            transition(quote.status, QuoteStatus.SENT)
            if not quote.line_items:
                raise ValidationError('A quote needs at least one line item before it is sent', field='line_items')

            inquiry = self.repository.load_inquiry(quote.inquiry_id, for_update=True)
            if not inquiry.email:
                raise ValidationError(f'Inquiry {inquiry.id} has no email address to send the quote to',
                                      field='email')
            inquiry_next = inquiry_status_after_send(inquiry.status)

            previous = self._move(quote, QuoteStatus.SENT, actor=actor)
            self.repository.save_quote(quote, expected_version)

            if inquiry_next is not None:
                inquiry_moved_from = inquiry.status
                inquiry.status = inquiry_next
                self.repository.save_inquiry(inquiry)
                self.repository.record_status_change('inquiry', inquiry.id, inquiry_moved_from, inquiry_next,
                                                     actor=actor, reason=f'Quote {quote.quote_number} sent')

            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error sending quote {quote_id}")
            self.repository.rollback()
            raise

        self._count_transition(previous, quote.status)
        if inquiry_moved_from is not None:
            inquiry_transitions_total.labels(from_status=inquiry_moved_from.value,
                                             to_status=inquiry.status.value).inc()
        logger.info(f"[QUOTE] {quote.quote_number} sent, inquiry {inquiry.id} is {inquiry.status.value}")

        warnings = []
        summary = quote.summary
        if self.notifier is not None:
            context = build_quote_email_context(quote, inquiry, summary, self.settings.business_info)
            failure = notify_quote_sent(self.notifier, self.renderer, inquiry.email, context)
            if failure is not None:
                warnings.append(failure)
        else:
            logger.warning(f"[QUOTE] No notifier configured, {quote.quote_number} was not emailed")

        return self._result(quote, warnings)

    def accept(self, quote_id: int, expected_version: int = None, actor: str = None) -> QuoteResult:
        """Customer accepted a SENT quote."""
        return self._simple_transition(quote_id, QuoteStatus.ACCEPTED, expected_version, actor)

    def decline(self, quote_id: int, reason: str = None, expected_version: int = None,
                actor: str = None) -> QuoteResult:
        """Customer declined a SENT quote. The reason is appended to the notes."""
        reason = optional_text(reason, 'reason')
        return self._simple_transition(quote_id, QuoteStatus.DECLINED, expected_version, actor, reason=reason)

    def _simple_transition(self, quote_id, target, expected_version, actor, reason=None) -> QuoteResult:
        try:
            quote = self.repository.load_quote(quote_id, for_update=True)
            previous = self._move(quote, target, actor=actor, reason=reason)
            if target == QuoteStatus.DECLINED and reason:
                line = f"Decline reason: {reason}"
                quote.notes = f"{quote.notes}\n\n{line}" if quote.notes else line
            self.repository.save_quote(quote, expected_version)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error moving quote {quote_id} to {target.value}")
            self.repository.rollback()
            raise

        self._count_transition(previous, quote.status)
        logger.info(f"[QUOTE] {quote.quote_number}: {previous.value} -> {quote.status.value}")
        return self._result(quote)

    # -- payments ------------------------------------------------------------

    @staticmethod
    def propose_payment_status(quote: Quote, summary: FinancialSummary = None) -> Optional[QuoteStatus]:
        """
        Status the recorded payments would justify, for staff to confirm.

        PAID once an accepted quote is paid in full, DEPOSIT_PAID once an
        accepted quote's deposit is covered. Nothing is proposed for quotes
        that were not accepted yet.
        """
        summary = summary or quote.summary
        if quote.status in (QuoteStatus.ACCEPTED, QuoteStatus.DEPOSIT_PAID):
            if summary.grand_total > 0 and summary.is_paid_in_full:
                return QuoteStatus.PAID
        if quote.status == QuoteStatus.ACCEPTED:
            if summary.deposit > 0 and summary.is_deposit_covered:
                return QuoteStatus.DEPOSIT_PAID
        return None

    def record_payment(self, quote_id: int, payment, expected_version: int = None,
                       actor: str = None) -> QuoteResult:
        """
        Append a payment. Never changes the quote status.

        Overpayment is accepted and returned as an OverpaymentWarning;
        result.proposed_status carries the status staff may apply next.

        Raises:
            ValidationError: malformed payment, or a DRAFT/DECLINED quote
        """
        payment = build_payment(payment)
        try:
            quote = self.repository.load_quote(quote_id, for_update=True)
            if quote.status not in PAYABLE_QUOTE_STATUSES:
                raise ValidationError(
                    f'Payments cannot be recorded on a {quote.status.value} quote',
                    field='status',
                )
            quote.payments.append(payment)
            self.repository.save_quote(quote, expected_version)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error recording payment on quote {quote_id}")
            self.repository.rollback()
            raise

        result = self._result(quote)
        logger.info(
            f"[QUOTE] Payment of {money(payment.amount)} ({payment.method.value}) on {quote.quote_number}, "
            f"balance {money(result.summary.balance)}"
        )
        for warning in result.warnings:
            if isinstance(warning, OverpaymentWarning):
                overpayments_total.inc()
                logger.warning(f"[QUOTE] {warning}")
        return result

    def apply_payment_status(self, quote_id: int, target, expected_version: int = None,
                             actor: str = None) -> QuoteResult:
        """
        Move a quote to DEPOSIT_PAID or PAID once its payments justify it.

        Raises:
            ValidationError: target is not a payment status, or payments do
                             not cover it
            InvalidTransitionError: the state machine has no such edge
        """
        target = parse_status(QuoteStatus, target)
        if target not in (QuoteStatus.DEPOSIT_PAID, QuoteStatus.PAID):
            raise ValidationError('Payment status must be DEPOSIT_PAID or PAID', field='status')

        try:
            quote = self.repository.load_quote(quote_id, for_update=True)
            transition(quote.status, target)

            summary = quote.summary
            if target == QuoteStatus.PAID and not summary.is_paid_in_full:
                raise ValidationError(
                    f'Payments ({money(summary.total_payments)}) do not cover the total ({money(summary.grand_total)})',
                    field='payments',
                )
            if target == QuoteStatus.DEPOSIT_PAID and not summary.is_deposit_covered:
                raise ValidationError(
                    f'Payments ({money(summary.total_payments)}) do not cover the deposit ({money(summary.deposit)})',
                    field='payments',
                )

            previous = self._move(quote, target, actor=actor)
            self.repository.save_quote(quote, expected_version)
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error applying {target.value} to quote {quote_id}")
            self.repository.rollback()
            raise

        self._count_transition(previous, quote.status)
        logger.info(f"[QUOTE] {quote.quote_number}: {previous.value} -> {quote.status.value}")
        return self._result(quote)

    # -- revisions and reporting ---------------------------------------------

    def revise(self, quote_id: int, actor: str = None) -> QuoteResult:
        """
        Copy a quote's line items and financial configuration into a new
        DRAFT quote. The source quote is left untouched.
        """
        try:
            source = self.repository.load_quote(quote_id)
            revision = Quote(
                inquiry_id=source.inquiry_id,
                quote_number=self.repository.next_quote_number(self.settings.number_prefix),
                status=QuoteStatus.DRAFT,
                valid_until=self._default_valid_until(),
                deposit_due_date=self._default_deposit_due_date(source.deposit_value),
                terms=source.terms,
                notes=f"Revision of quote #{source.quote_number}",
                tax_rate=source.tax_rate,
                deposit_type=source.deposit_type,
                deposit_value=source.deposit_value,
            )
            revision.line_items = [
                QuoteLineItem(
                    position=item.position,
                    category=item.category,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    hours=item.hours,
                    labor_role=item.labor_role,
                    taxable=item.taxable,
                )
                for item in source.line_items
            ]
            self.repository.add_quote(revision)
            self.repository.record_status_change('quote', revision.id, None, QuoteStatus.DRAFT, actor=actor,
                                                 reason=f'Revision of quote #{source.quote_number}')
            self.repository.commit()
        except OpsError:
            self.repository.rollback()
            raise
        except Exception:
            logger.exception(f"[QUOTE] Unexpected error revising quote {quote_id}")
            self.repository.rollback()
            raise

        logger.info(f"[QUOTE] {revision.quote_number} created as a revision of {source.quote_number}")
        return self._result(revision)

    def statistics(self) -> dict:
        """
        Quote counts per status, total and average value, acceptance rate.

        acceptance_rate = accepted / (accepted + declined) * 100, where
        accepted includes quotes that went on to DEPOSIT_PAID or PAID.
        """
        counts = self.repository.quote_status_counts()
        by_status = {status.value: counts.get(status.value, 0) for status in QuoteStatus}
        total_value, average_value = self.repository.quote_totals()

        accepted = sum(by_status[status.value] for status in _ACCEPTED_STATUSES)
        decided = accepted + by_status[QuoteStatus.DECLINED.value]
        acceptance_rate = money(Decimal(accepted) * 100 / Decimal(decided)) if decided else Decimal('0.00')

        return {
            'total_quotes': sum(by_status.values()),
            'by_status': by_status,
            'total_value': money(total_value or 0),
            'average_value': money(average_value or 0),
            'acceptance_rate': acceptance_rate,
        }
