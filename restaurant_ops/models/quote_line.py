"""Quote line item model and per-category total computation."""
import enum
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship

from restaurant_ops.database import Base, IdType
from restaurant_ops.exceptions import ValidationError
from restaurant_ops.utils.number_format import parse_decimal


# Column scales; input finer than these would be rounded by the database
QUANTITY_PLACES = 3
PRICE_PLACES = 2
HOURS_PLACES = 2


class LineItemCategory(enum.Enum):
    """Line item category enum."""
    FOOD = "FOOD"
    LABOR = "LABOR"
    EQUIPMENT = "EQUIPMENT"


class QuoteLineItem(Base):
    """
    Quote Line Item (one priced row).

    The row total is never stored: it is recomputed from quantity, unit
    price and (for labor) hours every time it is read.
    """

    __tablename__ = 'quote_line_item'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_id = Column(IdType, ForeignKey('quote.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    category = Column(Enum(LineItemCategory, name='line_item_category'), nullable=False)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, QUANTITY_PLACES), nullable=False)
    unit_price = Column(Numeric(14, PRICE_PLACES), nullable=False)
    hours = Column(Numeric(8, HOURS_PLACES), nullable=True)  # LABOR only
    labor_role = Column(String(100), nullable=True)  # e.g. bartender, server
    taxable = Column(Boolean, nullable=False, default=True)

    # Relationships
    quote = relationship('Quote', back_populates='line_items')

    @property
    def total(self) -> Decimal:
        return compute_total(self)

    def __repr__(self):
        return (
            f"<QuoteLineItem(id={self.id}, category={self.category.value if self.category else None}, "
            f"description='{self.description}', qty={self.quantity})>"
        )


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _unit_total(item) -> Decimal:
    return _dec(item.quantity) * _dec(item.unit_price)


def _labor_total(item) -> Decimal:
    if item.hours is None:
        return _unit_total(item)
    return _dec(item.quantity) * _dec(item.unit_price) * _dec(item.hours)


_TOTAL_RULES = {
    LineItemCategory.FOOD: _unit_total,
    LineItemCategory.LABOR: _labor_total,
    LineItemCategory.EQUIPMENT: _unit_total,
}

# Every category needs a rule; adding a category without one fails at import
_missing_rules = set(LineItemCategory) - set(_TOTAL_RULES)
if _missing_rules:
    raise RuntimeError(f"No total rule for line item categories: {sorted(c.value for c in _missing_rules)}")


def validate_amounts(item) -> None:
    """Reject negative quantity, unit price or hours."""
    for field in ('quantity', 'unit_price', 'hours'):
        value = getattr(item, field, None)
        if value is None:
            if field == 'hours':
                continue
            raise ValidationError(f'{field} is required', field=field)
        if _dec(value) < 0:
            raise ValidationError(f'{field} cannot be negative', field=field)


def compute_total(item) -> Decimal:
    """
    Compute a line item total.

    LABOR with hours: quantity * unit_price * hours.
    Anything else:    quantity * unit_price.

    Works on any object exposing category, quantity, unit_price and hours.
    """
    validate_amounts(item)
    category = parse_category(item.category)
    return _TOTAL_RULES[category](item)


def parse_category(value) -> LineItemCategory:
    """Normalize a category value (enum or case-insensitive string)."""
    if isinstance(value, LineItemCategory):
        return value
    if isinstance(value, str):
        try:
            return LineItemCategory(value.strip().upper())
        except ValueError:
            pass
    allowed = ', '.join(c.value for c in LineItemCategory)
    raise ValidationError(f'Invalid line item category: {value}. Must be one of {allowed}', field='category')


def build_line_item(data: dict, position: int = 0) -> QuoteLineItem:
    """
    Build a validated QuoteLineItem from a mapping.

    Args:
        data: dict with category, description, quantity, unit_price and
              optionally hours, labor_role, taxable
        position: sort order within the quote

    Raises:
        ValidationError: on missing fields, negative numbers or hours on a
                         non-labor item
    """
    if not isinstance(data, dict):
        raise ValidationError('Line item must be an object', field='line_items')

    category = parse_category(data.get('category'))

    description = (data.get('description') or '').strip()
    if not description:
        raise ValidationError('Line item description is required', field='description')

    quantity = parse_decimal(data.get('quantity'), 'quantity', max_places=QUANTITY_PLACES)
    unit_price = parse_decimal(data.get('unit_price'), 'unit_price', max_places=PRICE_PLACES)
    hours = parse_decimal(data.get('hours'), 'hours', allow_none=True, max_places=HOURS_PLACES)

    if hours is not None and category != LineItemCategory.LABOR:
        raise ValidationError('hours only applies to labor line items', field='hours')

    labor_role = (data.get('labor_role') or '').strip() or None
    taxable = data.get('taxable', True)
    if not isinstance(taxable, bool):
        raise ValidationError('taxable must be true or false', field='taxable')

    return QuoteLineItem(
        position=position,
        category=category,
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        hours=hours,
        labor_role=labor_role if category == LineItemCategory.LABOR else None,
        taxable=taxable,
    )


def build_line_items(items_data) -> list:
    """Build an ordered list of line items; positions follow input order."""
    if items_data is None:
        return []
    if not isinstance(items_data, (list, tuple)):
        raise ValidationError('line_items must be a list', field='line_items')
    return [build_line_item(data, position=index) for index, data in enumerate(items_data)]
