"""
Create Job Handler.
POST /jobs
"""
from shared.errors import JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, parse_body


def handler(event, context):
    """
    Create a new open job owned by the caller.

    Body: { "name", "description", "categoryId", "payAmount",
            "timeToCompleteSeconds", "expirySeconds" }
    """
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job = get_engine().create(caller, parse_body(event))

        return format_response(201, {
            'message': 'Job created successfully',
            'job': job.to_view()
        })

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error creating job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
