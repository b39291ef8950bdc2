"""
SQS utility functions for message operations.
"""
import boto3
import json
from typing import Any, Dict, Optional
from .config import config
from .logging import logger
from .utils import DecimalEncoder


def get_sqs_client():
    return boto3.client('sqs', region_name=config.AWS_REGION)


def send_message(
    queue_url: str,
    message_body: Dict[str, Any],
    group_id: Optional[str] = None,
    deduplication_id: Optional[str] = None,
    client=None
) -> bool:
    """
    Send a single message to an SQS queue.

    Args:
        queue_url: SQS queue URL
        message_body: Message body as dict (will be JSON serialized)
        group_id: MessageGroupId, required by FIFO queues
        deduplication_id: MessageDeduplicationId for FIFO queues
        client: Optional SQS client, defaults to a new one

    Returns:
        True if sent successfully, False otherwise
    """
    params = {
        'QueueUrl': queue_url,
        'MessageBody': json.dumps(message_body, cls=DecimalEncoder)
    }
    if group_id:
        params['MessageGroupId'] = group_id
    if deduplication_id:
        params['MessageDeduplicationId'] = deduplication_id

    try:
        (client or get_sqs_client()).send_message(**params)
        logger.info(f"Message sent to {queue_url}")
        return True
    except Exception as e:
        logger.error(f"Error sending message to SQS: {e}")
        return False
