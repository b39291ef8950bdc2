"""
Edit Job Handler.
PUT /jobs/{jobId}
"""
from shared.errors import InvalidInputError, JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_path_param, parse_body


def handler(event, context):
    """
    Update an open, unclaimed job. Only the owner may edit.

    Body: any of { "name", "description", "payAmount",
                   "timeToCompleteSeconds", "expirySeconds" }
    """
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInputError('Job ID is required')

        job = get_engine().edit(caller, job_id, parse_body(event))

        return format_response(200, {
            'message': 'Job updated successfully',
            'job': job.to_view()
        })

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error updating job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
