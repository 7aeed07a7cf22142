"""
Integration tests for InquiryService.
"""

import logging
import pytest

from restaurant_ops.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from restaurant_ops.models import InquiryStatus, Priority, ServiceType


class TestCreateInquiry:
    """Tests for inquiry intake."""

    def test_create(self, inquiry_service):
        inquiry = inquiry_service.create_inquiry({
            'name': ' Ana Torres ',
            'email': 'Ana@Example.com',
            'service_type': 'food_truck',
            'event_date': '2026-03-14',
            'guest_count': '120',
            'priority': 'HIGH',
        })

        assert inquiry.id is not None
        assert inquiry.name == 'Ana Torres'
        assert inquiry.email == 'ana@example.com'
        assert inquiry.service_type == ServiceType.FOOD_TRUCK
        assert inquiry.guest_count == 120
        assert inquiry.status == InquiryStatus.NEW
        assert inquiry.priority == Priority.HIGH

    @pytest.mark.parametrize('data,field', [
        ({}, 'name'),
        ({'name': 'Ana', 'email': 'not-an-email'}, 'email'),
        ({'name': 'Ana', 'guest_count': -3}, 'guest_count'),
        ({'name': 'Ana', 'event_date': '14/03/2026'}, 'event_date'),
        ({'name': 'Ana', 'service_type': 'SPACESHIP'}, 'service_type'),
    ])
    def test_invalid(self, inquiry_service, data, field):
        with pytest.raises(ValidationError) as exc:
            inquiry_service.create_inquiry(data)
        assert exc.value.field == field

    def test_get_unknown(self, inquiry_service):
        with pytest.raises(NotFoundError):
            inquiry_service.get_inquiry(404)


class TestInquiryStatus:
    """Tests for staff-driven status changes."""

    def test_change_status(self, inquiry_service, inquiry):
        updated = inquiry_service.change_status(inquiry.id, 'CONTACTED', actor='maria', reason='Called back')

        assert updated.status == InquiryStatus.CONTACTED
        history = inquiry_service.status_history(inquiry.id)
        assert history[-1].actor == 'maria'
        assert history[-1].reason == 'Called back'
        assert history[-1].is_override is False

    def test_quoted_is_reserved_for_sending(self, inquiry_service, inquiry):
        with pytest.raises(ValidationError):
            inquiry_service.change_status(inquiry.id, InquiryStatus.QUOTED)

    def test_invalid_transition_leaves_status(self, inquiry_service, inquiry):
        with pytest.raises(InvalidTransitionError):
            inquiry_service.change_status(inquiry.id, 'WON')
        assert inquiry_service.get_inquiry(inquiry.id).status == InquiryStatus.NEW

    def test_archive_after_lost(self, inquiry_service, inquiry):
        inquiry_service.change_status(inquiry.id, 'LOST')
        archived = inquiry_service.change_status(inquiry.id, 'ARCHIVED')

        assert archived.status == InquiryStatus.ARCHIVED
        with pytest.raises(InvalidTransitionError):
            inquiry_service.change_status(inquiry.id, 'CONTACTED')


class TestReactivate:
    """Tests for the administrative override."""

    def test_reactivate_lost_inquiry(self, inquiry_service, make_inquiry, caplog):
        inquiry = make_inquiry(status=InquiryStatus.LOST)

        with caplog.at_level(logging.WARNING):
            reopened = inquiry_service.reactivate(inquiry.id, 'NEGOTIATING', actor='owner',
                                                  reason='Customer called back')

        assert reopened.status == InquiryStatus.NEGOTIATING
        assert 'Override' in caplog.text
        assert reopened.notes[-1].author == 'system'
        assert 'LOST to NEGOTIATING' in reopened.notes[-1].body
        change = inquiry_service.status_history(inquiry.id)[-1]
        assert change.is_override is True
        assert (change.from_status, change.to_status) == ('LOST', 'NEGOTIATING')

    def test_reason_is_required(self, inquiry_service, make_inquiry):
        inquiry = make_inquiry(status=InquiryStatus.WON)

        with pytest.raises(ValidationError):
            inquiry_service.reactivate(inquiry.id, 'CONTACTED', actor='owner', reason=' ')
        assert inquiry_service.get_inquiry(inquiry.id).status == InquiryStatus.WON

    def test_open_inquiry_cannot_be_reactivated(self, inquiry_service, inquiry):
        with pytest.raises(InvalidTransitionError):
            inquiry_service.reactivate(inquiry.id, 'CONTACTED', actor='owner', reason='oops')


class TestNotesAndEdits:
    """Tests for notes and field edits."""

    def test_add_note(self, inquiry_service, inquiry):
        inquiry_service.add_note(inquiry.id, 'Wants vegan options', author='maria')
        inquiry_service.add_note(inquiry.id, 'Budget around $2k')

        notes = inquiry_service.get_inquiry(inquiry.id).notes
        assert [note.body for note in notes] == ['Wants vegan options', 'Budget around $2k']

    def test_notes_are_append_only(self, inquiry_service, inquiry, session):
        note = inquiry_service.add_note(inquiry.id, 'Original text')
        note.body = 'Rewritten'

        with pytest.raises(ValidationError):
            session.commit()
        session.rollback()

    def test_empty_note_rejected(self, inquiry_service, inquiry):
        with pytest.raises(ValidationError):
            inquiry_service.add_note(inquiry.id, '')

    def test_update_fields(self, inquiry_service, inquiry):
        updated = inquiry_service.update_inquiry(inquiry.id, {'guest_count': 150, 'priority': 'urgent'})

        assert updated.guest_count == 150
        assert updated.priority == Priority.URGENT
        assert updated.name == 'Ana Torres'

    def test_archived_inquiry_is_read_only(self, inquiry_service, make_inquiry):
        inquiry = make_inquiry(status=InquiryStatus.ARCHIVED)

        with pytest.raises(ValidationError):
            inquiry_service.update_inquiry(inquiry.id, {'guest_count': 10})

    def test_status_cannot_be_patched(self, inquiry_service, inquiry):
        with pytest.raises(ValidationError):
            inquiry_service.update_inquiry(inquiry.id, {'status': 'WON'})


class TestInquiryReporting:
    def test_filters_and_statistics(self, inquiry_service, make_inquiry):
        make_inquiry(name='Ana', priority='HIGH')
        make_inquiry(name='Luis', company='Acme Corp')
        make_inquiry(name='Zoe', status=InquiryStatus.LOST)

        assert [i.name for i in inquiry_service.list_inquiries(priority='high')] == ['Ana']
        assert [i.name for i in inquiry_service.list_inquiries(search='acme')] == ['Luis']
        assert [i.name for i in inquiry_service.list_inquiries(status='LOST')] == ['Zoe']

        stats = inquiry_service.statistics()
        assert stats['total_inquiries'] == 3
        assert stats['by_status']['NEW'] == 2
        assert stats['by_status']['LOST'] == 1
        assert stats['by_priority']['HIGH'] == 1
        assert stats['by_priority']['NORMAL'] == 2
