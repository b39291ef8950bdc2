"""
View Job Handler.
GET /jobs/{jobId}
"""
from shared.errors import InvalidInputError, JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_path_param


def handler(event, context):
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInputError('Job ID is required')

        job = get_engine().view(caller, job_id)
        return format_response(200, {'job': job.to_view()})

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error getting job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
