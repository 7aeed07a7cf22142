"""
Unit tests for quote serialization.
"""

import pytest
from decimal import Decimal

from restaurant_ops.exceptions import ValidationError
from restaurant_ops.models import Quote, QuoteStatus, build_line_items, build_payment
from restaurant_ops.services.financial_service import DepositType
from restaurant_ops.utils.serializers import quote_from_dict, quote_to_dict

from conftest import BARTENDER, FOOD_ITEM


def _quote(line_items, payments=()):
    quote = Quote(
        quote_number='Q-202601-0007',
        inquiry_id=3,
        status=QuoteStatus.SENT,
        version=4,
        tax_rate=Decimal('8.5'),
        deposit_type=DepositType.PERCENTAGE,
        deposit_value=Decimal('50'),
    )
    quote.line_items = build_line_items(line_items)
    quote.payments = [build_payment(p) for p in payments]
    return quote


class TestQuoteRoundTrip:
    def test_totals_survive_round_trip(self):
        items = [
            FOOD_ITEM,
            BARTENDER,
            {'category': 'EQUIPMENT', 'description': 'Tent 10x10', 'quantity': '1', 'unit_price': '99.99'},
            {'category': 'FOOD', 'description': 'Horchata', 'quantity': '3.5', 'unit_price': '12.75',
             'taxable': False},
        ]
        original = _quote(items, payments=[{'amount': '50.00', 'method': 'CASH', 'paid_on': '2026-01-10'}])

        data = quote_to_dict(original)
        restored = quote_from_dict(data)

        assert restored.summary == original.summary
        assert quote_to_dict(restored)['summary'] == data['summary']
        assert [item.total for item in restored.line_items] == [item.total for item in original.line_items]
        assert restored.status == QuoteStatus.SENT
        assert restored.version == 4

    def test_numbers_are_strings(self):
        data = quote_to_dict(_quote([FOOD_ITEM]))

        assert data['tax_rate'] == '8.5'
        assert data['line_items'][0]['total'] == '50'
        assert data['summary']['grand_total'] == '54.25'


class TestQuoteFromDict:
    def test_unknown_status_is_a_validation_error(self):
        data = quote_to_dict(_quote([FOOD_ITEM]))
        data['status'] = 'SHIPPED'

        with pytest.raises(ValidationError) as exc:
            quote_from_dict(data)
        assert exc.value.field == 'status'

    def test_status_is_case_insensitive(self):
        data = quote_to_dict(_quote([FOOD_ITEM]))
        data['status'] = 'accepted'

        assert quote_from_dict(data).status == QuoteStatus.ACCEPTED
