"""
Expire Jobs Handler.
Triggered by an EventBridge schedule to expire postings past their expiryDate.
"""
from shared.logging import logger
from shared.runtime import get_expiry_sweeper


def handler(event, context):
    """
    Scheduled sweep. Every active job (open, claimed or submitted) whose
    expiryDate has passed moves to expired and a job.expired event is sent.

    A failed candidate scan is raised so the scheduler records the failure
    and retries; failures on individual jobs are counted in the result.
    """
    logger.info("Running job expiry check...")
    result = get_expiry_sweeper().run()
    return {
        'statusCode': 200,
        'body': result.to_dict()
    }
