"""
Unit tests for the financial calculator.
"""

import itertools
import pytest
from decimal import Decimal
from types import SimpleNamespace

from restaurant_ops.exceptions import ValidationError
from restaurant_ops.models import build_line_items
from restaurant_ops.services.financial_service import (
    DepositType,
    FinancialConfig,
    build_financial_config,
    calculate_summary,
)

from conftest import BARTENDER, FOOD_ITEM


def _payment(amount):
    return SimpleNamespace(amount=Decimal(amount))


@pytest.fixture
def scenario_items():
    return build_line_items([FOOD_ITEM, BARTENDER])


class TestCalculateSummary:
    """Tests for derived quote amounts."""

    def test_scenario_totals(self, scenario_items):
        summary = calculate_summary(scenario_items, FinancialConfig(tax_rate=Decimal('8.5')))

        assert summary.subtotal == Decimal('170')
        assert summary.taxable_amount == Decimal('50')
        assert summary.tax == Decimal('4.25')
        assert summary.grand_total == Decimal('174.25')

    def test_percentage_deposit_is_exact(self, scenario_items):
        config = FinancialConfig(tax_rate=Decimal('8.5'), deposit_type=DepositType.PERCENTAGE,
                                 deposit_value=Decimal('50'))
        summary = calculate_summary(scenario_items, config)

        assert summary.deposit == Decimal('87.125')
        assert summary.rounded().deposit == Decimal('87.13')

    def test_fixed_deposit_ignores_grand_total(self, scenario_items):
        config = FinancialConfig(deposit_type=DepositType.FIXED, deposit_value=Decimal('300'))

        assert calculate_summary(scenario_items, config).deposit == Decimal('300')
        assert calculate_summary(scenario_items[:1], config).deposit == Decimal('300')

    def test_overpayment_gives_negative_balance(self, scenario_items):
        summary = calculate_summary(scenario_items, FinancialConfig(tax_rate=Decimal('8.5')), [_payment('200')])

        assert summary.balance == Decimal('-25.75')
        assert summary.is_overpaid is True
        assert summary.is_paid_in_full is True

    def test_payments_never_increase_balance(self, scenario_items):
        config = FinancialConfig(tax_rate=Decimal('8.5'))
        payments = []
        previous = calculate_summary(scenario_items, config, payments).balance
        for amount in ('10', '0.01', '50', '200'):
            payments.append(_payment(amount))
            balance = calculate_summary(scenario_items, config, payments).balance
            assert balance <= previous
            previous = balance

    def test_order_independent(self, scenario_items):
        extra = build_line_items([
            {'category': 'EQUIPMENT', 'description': 'Tent', 'quantity': 1, 'unit_price': '99.99'},
            {'category': 'FOOD', 'description': 'Churros', 'quantity': 40, 'unit_price': '1.15', 'taxable': False},
        ])
        items = scenario_items + extra
        config = FinancialConfig(tax_rate=Decimal('7.25'))
        expected = calculate_summary(items, config)

        for ordering in itertools.permutations(items):
            assert calculate_summary(ordering, config) == expected

    def test_empty_quote(self):
        summary = calculate_summary([], FinancialConfig(tax_rate=Decimal('10')))
        assert summary.grand_total == Decimal('0')
        assert summary.balance == Decimal('0')

    def test_grand_total_identity(self, scenario_items):
        for rate in ('0', '6.25', '8.875', '100'):
            summary = calculate_summary(scenario_items, FinancialConfig(tax_rate=Decimal(rate)))
            assert summary.grand_total == summary.subtotal + summary.tax
            assert summary.tax == summary.taxable_amount * Decimal(rate) / 100

    def test_as_dict_is_rounded_half_up(self, scenario_items):
        config = FinancialConfig(tax_rate=Decimal('8.5'), deposit_value=Decimal('50'))
        data = calculate_summary(scenario_items, config, [_payment('200')]).as_dict()

        assert data['deposit'] == '87.13'
        assert data['balance'] == '-25.75'
        assert data['grand_total'] == '174.25'


class TestBuildFinancialConfig:
    """Tests for financial configuration validation."""

    def test_defaults_fill_missing_keys(self):
        defaults = FinancialConfig(tax_rate=Decimal('5'), deposit_value=Decimal('25'))
        config = build_financial_config({'deposit_type': 'fixed'}, defaults=defaults)

        assert config.tax_rate == Decimal('5')
        assert config.deposit_type == DepositType.FIXED
        assert config.deposit_value == Decimal('25')

    @pytest.mark.parametrize('data', [
        {'tax_rate': -1},
        {'tax_rate': 101},
        {'deposit_value': 150},
        {'deposit_type': 'HALF'},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            build_financial_config(data)

    def test_fixed_deposit_may_exceed_hundred(self):
        config = build_financial_config({'deposit_type': 'FIXED', 'deposit_value': 500})
        assert config.deposit_value == Decimal('500')

    @pytest.mark.parametrize('data, field', [
        ({'tax_rate': '8.8755'}, 'tax_rate'),
        ({'deposit_type': 'FIXED', 'deposit_value': '100.0001'}, 'deposit_value'),
    ])
    def test_finer_than_column_scale_is_rejected(self, data, field):
        with pytest.raises(ValidationError) as exc:
            build_financial_config(data)
        assert exc.value.field == field

    def test_three_place_tax_rate_accepted(self):
        assert build_financial_config({'tax_rate': '8.875'}).tax_rate == Decimal('8.875')
