"""Request parsing helpers shared by the JSON blueprints."""
from flask import request

from restaurant_ops.exceptions import ValidationError


def json_body() -> dict:
    """Return the JSON object body of the current request."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', field='body')
    return data


def actor() -> str:
    """Staff member performing the request (set by the auth proxy)."""
    return request.headers.get('X-Actor') or None


def expected_version(data: dict):
    """Optimistic lock version from the body or the If-Match header."""
    value = data.get('version', request.headers.get('If-Match'))
    if value is None or value == '':
        return None
    try:
        return int(str(value).strip('"'))
    except ValueError:
        raise ValidationError('version must be an integer', field='version')
