"""
Financial calculator for quotes.

Pure functions over line items, a financial configuration and payments.
Nothing here is cached: every value is derived from its inputs on each
call, using exact Decimal arithmetic. Rounding happens only in
FinancialSummary.rounded() (presentation).
"""
import enum
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Iterable

from restaurant_ops.exceptions import ValidationError
from restaurant_ops.utils.formatters import money
from restaurant_ops.utils.number_format import parse_decimal

ZERO = Decimal('0')
HUNDRED = Decimal('100')

# Scales of the quote columns holding the configuration
TAX_RATE_PLACES = 3
DEPOSIT_VALUE_PLACES = 3


class DepositType(enum.Enum):
    """Deposit type enum."""
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


@dataclass(frozen=True)
class FinancialConfig:
    """Per-quote financial settings."""

    tax_rate: Decimal = ZERO  # percent: 8.5 means 8.5%
    deposit_type: DepositType = DepositType.PERCENTAGE
    deposit_value: Decimal = ZERO


@dataclass(frozen=True)
class FinancialSummary:
    """Derived amounts for one quote. Exact values, unrounded."""

    subtotal: Decimal
    taxable_amount: Decimal
    tax: Decimal
    grand_total: Decimal
    deposit: Decimal
    total_payments: Decimal
    balance: Decimal

    @property
    def is_overpaid(self) -> bool:
        return self.total_payments > self.grand_total

    @property
    def is_paid_in_full(self) -> bool:
        return self.total_payments >= self.grand_total

    @property
    def is_deposit_covered(self) -> bool:
        return self.total_payments >= self.deposit

    def rounded(self) -> "FinancialSummary":
        """Copy with every amount rounded half up to cents."""
        return FinancialSummary(**{name: money(value) for name, value in asdict(self).items()})

    def as_dict(self) -> dict:
        """Rounded amounts as strings, for JSON and templates."""
        return {name: str(value) for name, value in asdict(self.rounded()).items()}


def _amount(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def subtotal(line_items: Iterable) -> Decimal:
    """Sum of every line item total."""
    return sum((item.total for item in line_items), ZERO)


def taxable_amount(line_items: Iterable) -> Decimal:
    """Sum of the totals of taxable line items."""
    return sum((item.total for item in line_items if item.taxable), ZERO)


def tax(taxable: Decimal, tax_rate) -> Decimal:
    return taxable * (_amount(tax_rate) / HUNDRED)


def deposit(grand_total: Decimal, config: FinancialConfig) -> Decimal:
    """Percentage of the grand total, or a fixed amount independent of it."""
    if config.deposit_type == DepositType.PERCENTAGE:
        return grand_total * (_amount(config.deposit_value) / HUNDRED)
    return _amount(config.deposit_value)


def total_payments(payments: Iterable) -> Decimal:
    return sum((_amount(payment.amount) for payment in payments), ZERO)


def calculate_summary(line_items: Iterable, config: FinancialConfig, payments: Iterable = ()) -> FinancialSummary:
    """
    Derive the full financial summary of a quote.

    subtotal       = sum(item.total)
    taxable_amount = sum(item.total for taxable items)
    tax            = taxable_amount * tax_rate / 100
    grand_total    = subtotal + tax
    deposit        = grand_total * deposit_value / 100  (PERCENTAGE)
                     deposit_value                      (FIXED)
    balance        = grand_total - sum(payment.amount)
    """
    line_items = list(line_items)
    sub = subtotal(line_items)
    taxable = taxable_amount(line_items)
    tax_amount = tax(taxable, config.tax_rate)
    grand_total = sub + tax_amount
    paid = total_payments(payments)

    return FinancialSummary(
        subtotal=sub,
        taxable_amount=taxable,
        tax=tax_amount,
        grand_total=grand_total,
        deposit=deposit(grand_total, config),
        total_payments=paid,
        balance=grand_total - paid,
    )


def parse_deposit_type(value) -> DepositType:
    if isinstance(value, DepositType):
        return value
    if isinstance(value, str):
        try:
            return DepositType(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError(f'Invalid deposit type: {value}. Must be PERCENTAGE or FIXED', field='deposit_type')


def build_financial_config(data: dict = None, defaults: FinancialConfig = None) -> FinancialConfig:
    """
    Build a validated FinancialConfig from a mapping.

    Missing keys fall back to `defaults`. Tax rate and percentage deposits
    must lie within 0-100.
    """
    data = data or {}
    defaults = defaults or FinancialConfig()

    tax_rate = parse_decimal(data['tax_rate'], 'tax_rate', max_places=TAX_RATE_PLACES) if data.get('tax_rate') is not None else _amount(defaults.tax_rate)
    deposit_type = parse_deposit_type(data['deposit_type']) if data.get('deposit_type') is not None else defaults.deposit_type
    if data.get('deposit_value') is not None:
        deposit_value = parse_decimal(data['deposit_value'], 'deposit_value', max_places=DEPOSIT_VALUE_PLACES)
    else:
        deposit_value = _amount(defaults.deposit_value)

    if tax_rate > HUNDRED:
        raise ValidationError('tax_rate must be between 0 and 100', field='tax_rate')
    if deposit_type == DepositType.PERCENTAGE and deposit_value > HUNDRED:
        raise ValidationError('A percentage deposit must be between 0 and 100', field='deposit_value')

    return FinancialConfig(tax_rate=tax_rate, deposit_type=deposit_type, deposit_value=deposit_value)
