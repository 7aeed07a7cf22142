"""Number parsing utilities for amounts, quantities and rates."""
from decimal import Decimal, InvalidOperation

from restaurant_ops.exceptions import ValidationError


def parse_decimal(value, field: str, allow_none: bool = False, max_places: int = None) -> Decimal:
    """
    Parse a user-supplied number (int, float, Decimal or string) to Decimal.

    Floats go through str() so 8.5 becomes Decimal('8.5'), not its binary
    expansion.

    Rules:
    - Comma is accepted as decimal separator ("12,5")
    - No negatives
    - Booleans are rejected
    - At most `max_places` decimal places, when given (the column scale)

    Raises:
        ValidationError: if the value is missing, not numeric, negative or
                         more precise than max_places.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f'{field} is required', field=field)

    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number', field=field)

    try:
        if isinstance(value, str):
            decimal_value = Decimal(value.strip().replace(',', '.'))
        else:
            decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'{field} must be a number', field=field)

    if not decimal_value.is_finite():
        raise ValidationError(f'{field} must be a finite number', field=field)

    if decimal_value < 0:
        raise ValidationError(f'{field} cannot be negative', field=field)

    if max_places is not None and decimal_value.normalize().as_tuple().exponent < -max_places:
        raise ValidationError(f'{field} allows at most {max_places} decimal places', field=field)

    return decimal_value


def parse_positive_decimal(value, field: str, max_places: int = None) -> Decimal:
    """Like parse_decimal but zero is rejected too (payment amounts)."""
    decimal_value = parse_decimal(value, field, max_places=max_places)
    if decimal_value == 0:
        raise ValidationError(f'{field} must be greater than 0', field=field)
    return decimal_value
