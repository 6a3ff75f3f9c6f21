"""
Parsing helpers for JSON request bodies (camelCase keys, loose types).
"""

from datetime import datetime, timezone
from workshop.business.errors import ValidationError


def parse_int(value):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_float(value):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_datetime(value, field='date'):
    """Accept ISO-8601 strings (a trailing Z is allowed) or datetime objects"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")
    # Stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_quantity_map(raw, field):
    """
    {"<productId>": qty} -> {int: float}; non-numeric keys or values fail validation.
    """
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError(f"{field} must be an object keyed by product id")
    result = {}
    errors = []
    for key, value in raw.items():
        product_id = parse_int(key)
        quantity = parse_float(value)
        if product_id is None or quantity is None or quantity < 0:
            errors.append(f"{field}[{key}] must be a non-negative number")
            continue
        result[product_id] = quantity
    if errors:
        raise ValidationError(f"Invalid {field}", errors=errors)
    return result


def first_present(data, *keys):
    """Return the first non-None value among camelCase/snake_case aliases"""
    for key in keys:
        if data.get(key) is not None:
            return data.get(key)
    return None
