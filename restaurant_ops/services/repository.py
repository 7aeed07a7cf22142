"""
Persistence port: load and save quotes and inquiries.

The services never touch the SQLAlchemy session directly; they go through
this repository, which owns optimistic locking, the cached-total
consistency check and the transaction boundary (commit / rollback).
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from restaurant_ops.exceptions import ConflictError, NotFoundError
from restaurant_ops.models import Inquiry, Quote, QuoteStatus, StatusChange
from restaurant_ops.utils.formatters import money

logger = logging.getLogger(__name__)


class QuoteRepository:
    """SQLAlchemy-backed repository for quotes, inquiries and status history."""

    def __init__(self, session: Session):
        self.session = session

    # -- transaction boundary ------------------------------------------------

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # -- quotes --------------------------------------------------------------

    def load_quote(self, quote_id: int, for_update: bool = False) -> Quote:
        """Load a quote by id, checking its cached total against the derived one."""
        query = self.session.query(Quote).filter(Quote.id == quote_id)
        if for_update:
            query = query.with_for_update()
        quote = query.first()
        if not quote:
            raise NotFoundError(f'Quote {quote_id} not found')
        self.check_consistency(quote)
        return quote

    def find_quote_by_number(self, quote_number: str) -> Quote:
        quote = self.session.query(Quote).filter(Quote.quote_number == quote_number).first()
        if not quote:
            raise NotFoundError(f'Quote {quote_number} not found')
        self.check_consistency(quote)
        return quote

    def check_consistency(self, quote: Quote) -> bool:
        """
        Compare the stored total_amount with the grand total derived from
        line items and configuration. The derived value is authoritative;
        drift is logged and repaired on the next save.
        """
        derived = money(quote.summary.grand_total)
        stored = money(quote.total_amount) if quote.total_amount is not None else None
        if stored != derived:
            logger.warning(
                f"[QUOTE] Stored total drift on quote {quote.quote_number}: "
                f"stored={stored} derived={derived}"
            )
            return False
        return True

    def add_quote(self, quote: Quote) -> Quote:
        """Insert a new quote at version 1."""
        quote.version = 1
        quote.total_amount = money(quote.summary.grand_total)
        self.session.add(quote)
        self.session.flush()
        return quote

    def save_quote(self, quote: Quote, expected_version: Optional[int]) -> Quote:
        """
        Persist changes to a quote if nobody saved it since `expected_version`.

        The version bump makes SQLAlchemy emit
        UPDATE ... WHERE id = :id AND version = :loaded_version, so a
        concurrent writer that committed first is detected even when the
        caller did not pass an expected version.

        Raises:
            ConflictError: on a version mismatch
        """
        current_version = quote.version
        quote_number = quote.quote_number
        if expected_version is not None and current_version != expected_version:
            raise ConflictError(
                f'Quote {quote_number} was modified (version {current_version}, expected {expected_version})',
                expected=expected_version,
                actual=current_version,
            )

        quote.total_amount = money(quote.summary.grand_total)
        quote.version = current_version + 1
        # A failed flush invalidates the session; only locals are safe below
        try:
            self.session.flush()
        except StaleDataError:
            raise ConflictError(
                f'Quote {quote_number} was modified concurrently',
                expected=current_version,
            )
        return quote

    def quote_number_exists(self, quote_number: str) -> bool:
        return self.session.query(Quote.id).filter(Quote.quote_number == quote_number).first() is not None

    def next_quote_number(self, prefix: str = 'Q', today: date = None) -> str:
        """Generate the next free quote number: PREFIX-YYYYMM-NNNN."""
        today = today or date.today()
        stem = f"{prefix}-{today.strftime('%Y%m')}-"
        count = self.session.query(Quote.id).filter(Quote.quote_number.like(f'{stem}%')).count()
        sequence = count + 1
        candidate = f"{stem}{str(sequence).zfill(4)}"
        while self.quote_number_exists(candidate):
            sequence += 1
            candidate = f"{stem}{str(sequence).zfill(4)}"
        return candidate

    def list_quotes(self, status: QuoteStatus = None, inquiry_id: int = None, search: str = None) -> list:
        query = self.session.query(Quote)
        if status:
            query = query.filter(Quote.status == status)
        if inquiry_id:
            query = query.filter(Quote.inquiry_id == inquiry_id)
        if search:
            query = query.filter(
                or_(
                    Quote.quote_number.ilike(f'%{search}%'),
                    Quote.notes.ilike(f'%{search}%'),
                    Quote.terms.ilike(f'%{search}%'),
                )
            )
        return query.order_by(Quote.id.desc()).all()

    def quote_status_counts(self) -> dict:
        rows = self.session.query(Quote.status, func.count(Quote.id)).group_by(Quote.status).all()
        return {status.value: count for status, count in rows}

    def quote_totals(self):
        """(sum, average) of the cached grand totals."""
        total, average = self.session.query(func.sum(Quote.total_amount), func.avg(Quote.total_amount)).one()
        return total, average

    # -- inquiries -----------------------------------------------------------

    def load_inquiry(self, inquiry_id: int, for_update: bool = False) -> Inquiry:
        query = self.session.query(Inquiry).filter(Inquiry.id == inquiry_id)
        if for_update:
            query = query.with_for_update()
        inquiry = query.first()
        if not inquiry:
            raise NotFoundError(f'Inquiry {inquiry_id} not found')
        return inquiry

    def save_inquiry(self, inquiry: Inquiry) -> Inquiry:
        self.session.add(inquiry)
        self.session.flush()
        return inquiry

    def list_inquiries(self, status=None, priority=None, search: str = None) -> list:
        query = self.session.query(Inquiry)
        if status:
            query = query.filter(Inquiry.status == status)
        if priority:
            query = query.filter(Inquiry.priority == priority)
        if search:
            query = query.filter(
                or_(
                    Inquiry.name.ilike(f'%{search}%'),
                    Inquiry.email.ilike(f'%{search}%'),
                    Inquiry.company.ilike(f'%{search}%'),
                    Inquiry.message.ilike(f'%{search}%'),
                )
            )
        return query.order_by(Inquiry.id.desc()).all()

    def inquiry_counts(self, column) -> dict:
        rows = self.session.query(column, func.count(Inquiry.id)).group_by(column).all()
        return {value.value: count for value, count in rows}

    # -- status history ------------------------------------------------------

    def record_status_change(self, entity_type: str, entity_id: int, from_status, to_status,
                             actor: str = None, reason: str = None, is_override: bool = False) -> StatusChange:
        change = StatusChange(
            entity_type=entity_type,
            entity_id=entity_id,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            actor=actor,
            reason=reason,
            is_override=is_override,
        )
        self.session.add(change)
        return change

    def status_history(self, entity_type: str, entity_id: int) -> list:
        return (
            self.session.query(StatusChange)
            .filter(StatusChange.entity_type == entity_type, StatusChange.entity_id == entity_id)
            .order_by(StatusChange.id)
            .all()
        )
