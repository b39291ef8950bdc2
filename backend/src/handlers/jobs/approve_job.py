"""
Approve Job Handler.
POST /jobs/{jobId}/approve
"""
from shared.errors import InvalidInputError, JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_path_param, parse_body
from shared.validation import parse_message


def handler(event, context):
    """
    Approve a submitted job. Owner or admin only.

    Body (optional): { "message": "..." }
    """
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInputError('Job ID is required')

        message = parse_message(parse_body(event), 'message')
        job = get_engine().approve(caller, job_id, message)

        return format_response(200, {
            'message': 'Job approved successfully',
            'job': job.to_view()
        })

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error approving job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
