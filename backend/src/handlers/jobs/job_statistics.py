"""
Job Statistics Handler.
GET /admin/jobs/statistics
"""
from shared.errors import JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response


def handler(event, context):
    """Aggregate job figures for the admin dashboard."""
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        stats = get_engine().statistics(caller)
        return format_response(200, {'statistics': stats})

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error computing job statistics: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
