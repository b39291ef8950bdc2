"""
Relist Job Handler.
POST /jobs/{jobId}/relist
"""
from shared.errors import InvalidInputError, JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_path_param, parse_body
from shared.validation import parse_relist_window


def handler(event, context):
    """
    Put an approved, expired or lapsed job back on the board.

    Body (optional): { "expiryDays": 7 }
    """
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInputError('Job ID is required')

        window = parse_relist_window(parse_body(event))
        job = get_engine().relist(caller, job_id, window)

        return format_response(200, {
            'message': 'Job relisted successfully',
            'job': job.to_view()
        })

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error relisting job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
