"""
Request validation.

Everything here runs before the store is touched; failures raise
InvalidInputError with a message naming the offending field.
"""
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .config import config
from .errors import InvalidInputError

MESSAGE_MAX_LENGTH = 2000


def _text(body: dict, key: str, label: str, max_length: int) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{label} is required")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInputError(f"{label} must be at most {max_length} characters")
    return value


def _positive_int(body: dict, key: str, message: str, maximum: Optional[int] = None) -> int:
    value = body.get(key)
    # bool is an int subclass; JSON true must not count as 1 second
    if isinstance(value, bool):
        raise InvalidInputError(message)
    if isinstance(value, Decimal) and value == value.to_integral_value():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise InvalidInputError(message)
    if maximum is not None and value > maximum:
        raise InvalidInputError(message)
    return value


def _time_to_complete(body: dict) -> int:
    limit = config.MAX_TIME_TO_COMPLETE_SECONDS
    return _positive_int(body, 'timeToCompleteSeconds',
                         f"Time to complete must be between 1 and {limit} seconds", limit)


def _expiry_seconds(body: dict) -> int:
    limit = config.MAX_EXPIRY_SECONDS
    return _positive_int(body, 'expirySeconds',
                         f"Expiry time must be between 1 and {limit} seconds", limit)


def _pay_amount(body: dict) -> Decimal:
    value = body.get('payAmount')
    if value is None or isinstance(value, bool):
        raise InvalidInputError('Pay amount must be greater than 0')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError('Pay amount must be a number')
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError('Pay amount must be greater than 0')
    return amount


def parse_create_request(body: dict) -> Dict[str, Any]:
    """Validate a create-job body."""
    return {
        'name': _text(body, 'name', 'Job name', config.JOB_NAME_MAX_LENGTH),
        'description': _text(body, 'description', 'Job description',
                             config.JOB_DESCRIPTION_MAX_LENGTH),
        'categoryId': _text(body, 'categoryId', 'Category ID', 200),
        'payAmount': _pay_amount(body),
        'timeToCompleteSeconds': _time_to_complete(body),
        'expirySeconds': _expiry_seconds(body),
    }


def parse_edit_request(body: dict) -> Dict[str, Any]:
    """
    Validate an edit-job body. Any subset of the editable fields may be sent,
    but at least one must be.
    """
    changes: Dict[str, Any] = {}
    if 'name' in body:
        changes['name'] = _text(body, 'name', 'Job name', config.JOB_NAME_MAX_LENGTH)
    if 'description' in body:
        changes['description'] = _text(body, 'description', 'Job description',
                                       config.JOB_DESCRIPTION_MAX_LENGTH)
    if 'payAmount' in body:
        changes['payAmount'] = _pay_amount(body)
    if 'timeToCompleteSeconds' in body:
        changes['timeToCompleteSeconds'] = _time_to_complete(body)
    if 'expirySeconds' in body:
        changes['expirySeconds'] = _expiry_seconds(body)

    if not changes:
        raise InvalidInputError('No editable fields provided')
    return changes


def parse_relist_window(body: dict) -> timedelta:
    """expiryDays from a relist body, defaulting to DEFAULT_RELIST_DAYS."""
    if body.get('expiryDays') is None:
        return timedelta(days=config.DEFAULT_RELIST_DAYS)

    message = f"expiryDays must be between 1 and {config.MAX_RELIST_DAYS}"
    return timedelta(days=_positive_int(body, 'expiryDays', message, config.MAX_RELIST_DAYS))


def parse_message(body: dict, key: str) -> Optional[str]:
    """Optional free-text annotation (approval message, rejection reason)."""
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{key} must be a string")
    value = value.strip()
    if len(value) > MESSAGE_MAX_LENGTH:
        raise InvalidInputError(f"{key} must be at most {MESSAGE_MAX_LENGTH} characters")
    return value or None


def parse_page(offset: Optional[str], limit: Optional[str]) -> Dict[str, int]:
    """Pagination query parameters."""
    try:
        offset_value = int(offset) if offset is not None else 0
        limit_value = int(limit) if limit is not None else config.DEFAULT_PAGE_SIZE
    except ValueError:
        raise InvalidInputError('offset and limit must be integers')
    if offset_value < 0:
        raise InvalidInputError('offset must not be negative')
    if not 1 <= limit_value <= config.MAX_PAGE_SIZE:
        raise InvalidInputError(f"limit must be between 1 and {config.MAX_PAGE_SIZE}")
    return {'offset': offset_value, 'limit': limit_value}
