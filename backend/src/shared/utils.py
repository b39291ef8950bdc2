"""
Common utility functions for Lambda handlers.
"""
import base64
import binascii
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from .errors import InvalidInputError, JobError

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, o):
        if isinstance(o, Decimal):
            # Convert to int if it's a whole number, otherwise float
            if o % 1 == 0:
                return int(o)
            return float(o)
        return super().default(o)


def format_response(
    status_code: int,
    body: Any,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """
    Format a standard API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers to include

    Returns:
        API Gateway response dict
    """
    default_headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Credentials': True,
        'Content-Type': 'application/json'
    }

    if headers:
        default_headers.update(headers)

    return {
        'statusCode': status_code,
        'headers': default_headers,
        'body': json.dumps(body, cls=DecimalEncoder)
    }


def error_response(error: JobError) -> Dict[str, Any]:
    """Format a domain error as an API Gateway response."""
    return format_response(error.status_code, error.to_dict())


def parse_body(event: dict) -> dict:
    """
    Parse the JSON body from an API Gateway event.

    Handles base64 encoded bodies. A missing body parses as an empty dict.

    Raises:
        InvalidInputError: if the body is not a JSON object
    """
    body = event.get('body')
    if body is None or body == '':
        return {}
    if isinstance(body, dict):
        return body

    try:
        if event.get('isBase64Encoded'):
            body = base64.b64decode(body).decode('utf-8')
        parsed = json.loads(body, parse_float=Decimal)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, TypeError):
        raise InvalidInputError('Invalid JSON')

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise InvalidInputError('Request body must be a JSON object')
    return parsed


def get_path_param(event: dict, param_name: str) -> Optional[str]:
    """Extract path parameter from event."""
    try:
        return event['pathParameters'][param_name]
    except (KeyError, TypeError):
        return None


def get_query_param(event: dict, param_name: str, default: str = None) -> Optional[str]:
    """Extract query string parameter from event."""
    params = event.get('queryStringParameters') or {}
    value = params.get(param_name)
    return default if value in (None, '') else value


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Render a datetime as a fixed-width ISO-8601 UTC string.

    Fixed width keeps lexical order equal to chronological order, which the
    DynamoDB conditions on expiryDate/submissionDeadline rely on.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def next_timestamp(now: datetime, previous: Optional[str]) -> str:
    """
    Timestamp for updatedAt that never moves backwards relative to the
    previous value, even when Lambda containers disagree about the clock.
    """
    if previous:
        last = parse_timestamp(previous)
        if now <= last:
            now = last + timedelta(microseconds=1)
    return format_timestamp(now)
