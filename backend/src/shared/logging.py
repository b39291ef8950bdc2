"""
Logging for the jobs service.

Everything logs through the ``jobs`` logger (or a child of it), so LOG_LEVEL
controls the whole service. Lambda forwards the stream to CloudWatch.
"""
import json
import logging

from .config import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Request parts that carry user content or credentials
REDACTED_KEYS = ('body', 'headers', 'multiValueHeaders')

logger = logging.getLogger('jobs')
logger.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))

if not logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)


def get_logger(name: str) -> logging.Logger:
    """Child of the service logger, e.g. ``jobs.sweepers``."""
    return logger.getChild(name)


def _strip_claims(event: dict) -> dict:
    context = event.get('requestContext')
    claims = ((context or {}).get('authorizer') or {}).get('claims')
    if not claims:
        return event
    # Keep who called, drop email and group membership
    authorizer = {'claims': {'sub': claims.get('sub')}}
    return dict(event, requestContext=dict(context, authorizer=authorizer))


def log_event(event: dict) -> None:
    """Log an incoming Lambda event without payloads, headers or token claims."""
    try:
        safe_event = {k: v for k, v in event.items() if k not in REDACTED_KEYS}
        logger.info(f"Lambda event: {json.dumps(_strip_claims(safe_event), default=str)}")
    except Exception as e:
        logger.warning(f"Could not log event: {e}")
