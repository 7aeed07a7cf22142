"""
Unit tests for the quote and inquiry state machines.
"""

import pytest

from restaurant_ops.exceptions import InvalidTransitionError, ValidationError
from restaurant_ops.models import InquiryStatus, QuoteStatus
from restaurant_ops.models.lifecycle import (
    INQUIRY_TRANSITIONS,
    QUOTE_TRANSITIONS,
    can_transition,
    inquiry_status_after_send,
    is_terminal,
    reactivation_transition,
    transition,
)


ALL_QUOTE_PAIRS = [(a, b) for a in QuoteStatus for b in QuoteStatus]
ALL_INQUIRY_PAIRS = [(a, b) for a in InquiryStatus for b in InquiryStatus]


class TestQuoteTransitions:
    """Tests for the quote transition table."""

    @pytest.mark.parametrize('current,requested', ALL_QUOTE_PAIRS)
    def test_transition_matches_table(self, current, requested):
        if requested in QUOTE_TRANSITIONS[current]:
            assert transition(current, requested) == requested
        else:
            with pytest.raises(InvalidTransitionError) as exc:
                transition(current, requested)
            assert exc.value.payload == {
                'entity': 'Quote',
                'current': current.value,
                'requested': requested.value,
            }

    def test_send_only_from_draft(self):
        sources = [status for status in QuoteStatus if can_transition(status, QuoteStatus.SENT)]
        assert sources == [QuoteStatus.DRAFT]

    @pytest.mark.parametrize('target', [QuoteStatus.ACCEPTED, QuoteStatus.DECLINED])
    def test_accept_and_decline_only_from_sent(self, target):
        sources = [status for status in QuoteStatus if can_transition(status, target)]
        assert sources == [QuoteStatus.SENT]

    def test_terminal_states(self):
        assert {status for status in QuoteStatus if is_terminal(status)} == {QuoteStatus.DECLINED, QuoteStatus.PAID}

    def test_string_status_is_accepted(self):
        assert transition(QuoteStatus.DRAFT, 'sent') == QuoteStatus.SENT

    def test_unknown_status_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            transition(QuoteStatus.DRAFT, 'SHIPPED')


class TestInquiryTransitions:
    """Tests for the inquiry transition table."""

    @pytest.mark.parametrize('current,requested', ALL_INQUIRY_PAIRS)
    def test_transition_matches_table(self, current, requested):
        if requested in INQUIRY_TRANSITIONS[current]:
            assert transition(current, requested) == requested
        else:
            with pytest.raises(InvalidTransitionError):
                transition(current, requested)

    def test_archived_is_terminal(self):
        assert is_terminal(InquiryStatus.ARCHIVED)
        assert not is_terminal(InquiryStatus.WON)


class TestInquiryStatusAfterSend:
    """Tests for the inquiry status a sent quote produces."""

    @pytest.mark.parametrize('current', [InquiryStatus.NEW, InquiryStatus.CONTACTED])
    def test_advances_to_quoted(self, current):
        assert inquiry_status_after_send(current) == InquiryStatus.QUOTED

    @pytest.mark.parametrize('current', [InquiryStatus.QUOTED, InquiryStatus.NEGOTIATING])
    def test_already_quoted_stays(self, current):
        assert inquiry_status_after_send(current) is None

    @pytest.mark.parametrize('current', [InquiryStatus.WON, InquiryStatus.LOST, InquiryStatus.ARCHIVED])
    def test_closed_inquiry_refuses(self, current):
        with pytest.raises(InvalidTransitionError):
            inquiry_status_after_send(current)


class TestReactivation:
    """Tests for the administrative reactivation override."""

    @pytest.mark.parametrize('current', [InquiryStatus.WON, InquiryStatus.LOST, InquiryStatus.ARCHIVED])
    @pytest.mark.parametrize('target', [InquiryStatus.CONTACTED, InquiryStatus.NEGOTIATING])
    def test_closed_can_reopen(self, current, target):
        assert reactivation_transition(current, target) == target

    def test_open_inquiry_cannot_be_reactivated(self):
        with pytest.raises(InvalidTransitionError):
            reactivation_transition(InquiryStatus.NEW, InquiryStatus.CONTACTED)

    def test_cannot_reactivate_to_won(self):
        with pytest.raises(InvalidTransitionError):
            reactivation_transition(InquiryStatus.LOST, InquiryStatus.WON)
