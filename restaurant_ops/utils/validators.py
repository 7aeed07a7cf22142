"""Shared validation utilities for request payloads."""

import re
from datetime import date, datetime
from typing import Optional

from restaurant_ops.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def require_text(value, field: str, max_length: int = None) -> str:
    """Return the stripped string, or raise if it is missing or too long."""
    text = value.strip() if isinstance(value, str) else ''
    if not text:
        raise ValidationError(f'{field} is required', field=field)
    if max_length and len(text) > max_length:
        raise ValidationError(f'{field} must be at most {max_length} characters', field=field)
    return text


def optional_text(value, field: str, max_length: int = None) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be text', field=field)
    text = value.strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f'{field} must be at most {max_length} characters', field=field)
    return text or None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address, or None when empty

    Raises:
        ValidationError: If email format is invalid
    """
    if not email:
        return None
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(f'Invalid email address: {email}', field='email')
    return email


def parse_date(value, field: str) -> Optional[date]:
    """Accept a date, a datetime or an ISO string (YYYY-MM-DD)."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f'{field} must be a date (YYYY-MM-DD)', field=field)


def parse_non_negative_int(value, field: str) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a whole number', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a whole number', field=field)
    if isinstance(value, float) and value != number:
        raise ValidationError(f'{field} must be a whole number', field=field)
    if number < 0:
        raise ValidationError(f'{field} cannot be negative', field=field)
    return number
