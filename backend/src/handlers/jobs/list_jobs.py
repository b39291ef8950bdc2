"""
List Jobs Handler.
GET /jobs
"""
from shared.errors import JobError
from shared.listing import parse_statuses
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_query_param
from shared.validation import parse_page


def handler(event, context):
    """
    List jobs visible to the caller.

    Query params:
        type: posted (default) | claimed | completed | available
        status: comma separated statuses
        categoryId, q, sortBy, sortOrder, offset, limit
    """
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        page = parse_page(get_query_param(event, 'offset'), get_query_param(event, 'limit'))

        result = get_engine().list_jobs(
            caller,
            view=get_query_param(event, 'type', 'posted'),
            statuses=parse_statuses(get_query_param(event, 'status')),
            category_id=get_query_param(event, 'categoryId'),
            query=get_query_param(event, 'q'),
            sort_by=get_query_param(event, 'sortBy', 'newest'),
            sort_order=get_query_param(event, 'sortOrder', 'desc'),
            offset=page['offset'],
            limit=page['limit'],
        )

        logger.info(f"Returning {result['count']} of {result['total']} jobs for {caller.user_id}")
        return format_response(200, result)

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error listing jobs: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
