"""
Timeout Claims Handler.
Triggered by an EventBridge schedule to release claims past their submissionDeadline.
"""
from shared.logging import logger
from shared.runtime import get_timeout_sweeper


def handler(event, context):
    """
    Scheduled sweep. Claimed jobs whose submissionDeadline has passed go back
    to open with the claim cleared, and a job.timedout event is sent.
    """
    logger.info("Running claim timeout check...")
    result = get_timeout_sweeper().run()
    return {
        'statusCode': 200,
        'body': result.to_dict()
    }
