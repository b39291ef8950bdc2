"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the jobs service.
"""
import os


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # DynamoDB Tables
    JOBS_TABLE = os.environ.get('JOBS_TABLE', '')
    CATEGORIES_TABLE = os.environ.get('CATEGORIES_TABLE', '')

    # DynamoDB GSIs on the jobs table
    OWNER_INDEX = os.environ.get('OWNER_INDEX', 'OwnerJobsIndex')
    CLAIMER_INDEX = os.environ.get('CLAIMER_INDEX', 'ClaimerJobsIndex')
    STATUS_INDEX = os.environ.get('STATUS_INDEX', 'StatusExpiryIndex')

    # EventBridge
    EVENT_BUS_NAME = os.environ.get('EVENT_BUS_NAME', 'default')
    EVENT_SOURCE = os.environ.get('EVENT_SOURCE', 'jobs-service')

    # SQS FIFO queues consumed by sweeper notification processing
    JOB_EXPIRY_QUEUE_URL = os.environ.get('JOB_EXPIRY_QUEUE_URL', '')
    JOB_TIMEOUT_QUEUE_URL = os.environ.get('JOB_TIMEOUT_QUEUE_URL', '')

    # Cognito
    USER_POOL_ID = os.environ.get('USER_POOL_ID', '')
    ADMIN_GROUP_NAME = os.environ.get('ADMIN_GROUP_NAME', 'admin')

    # Relist window (days)
    DEFAULT_RELIST_DAYS = int(os.environ.get('DEFAULT_RELIST_DAYS', '7'))
    MAX_RELIST_DAYS = int(os.environ.get('MAX_RELIST_DAYS', '90'))

    # Field limits
    JOB_NAME_MAX_LENGTH = int(os.environ.get('JOB_NAME_MAX_LENGTH', '200'))
    JOB_DESCRIPTION_MAX_LENGTH = int(os.environ.get('JOB_DESCRIPTION_MAX_LENGTH', '5000'))

    # Duration limits (seconds); deadlines must stay inside the datetime range
    MAX_EXPIRY_SECONDS = int(os.environ.get('MAX_EXPIRY_SECONDS', str(365 * 24 * 3600)))
    MAX_TIME_TO_COMPLETE_SECONDS = int(os.environ.get('MAX_TIME_TO_COMPLETE_SECONDS', str(365 * 24 * 3600)))

    # Listing
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', '20'))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', '100'))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


config = Config()
