"""
Delete Job Handler.
DELETE /jobs/{jobId}
"""
from shared.errors import InvalidInputError, JobError
from shared.logging import log_event, logger
from shared.runtime import get_engine, get_identity_resolver
from shared.utils import error_response, format_response, get_path_param


def handler(event, context):
    """Delete an open, unclaimed job. Only the owner may delete."""
    log_event(event)

    try:
        caller = get_identity_resolver().resolve(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInputError('Job ID is required')

        get_engine().delete(caller, job_id)

        return format_response(200, {
            'message': 'Job deleted successfully',
            'jobId': job_id
        })

    except JobError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error deleting job: {e}")
        return format_response(500, {'error': 'Internal', 'message': 'Internal server error'})
