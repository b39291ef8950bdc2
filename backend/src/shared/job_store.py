"""
Job Store: the keyed store behind the lifecycle engine.

All writes are single-item and conditional. A failed condition is an
expected outcome (someone else won the race) and comes back as a
WriteResult instead of an exception. Transport failures raise
StoreUnavailableError.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .dynamo import (
    CONDITIONAL_CHECK_FAILED,
    build_update_expression,
    get_table,
    query_all,
    scan_all,
    to_dynamo_condition,
)
from .errors import StoreUnavailableError
from .logging import logger
from .models import Job
from .transitions import Condition


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a conditional write."""
    OK = 'OK'
    PRECONDITION_FAILED = 'PRECONDITION_FAILED'

    status: str
    job: Optional[Job] = None

    @property
    def ok(self) -> bool:
        return self.status == self.OK

    @classmethod
    def success(cls, job: Optional[Job] = None) -> 'WriteResult':
        return cls(cls.OK, job)

    @classmethod
    def precondition_failed(cls) -> 'WriteResult':
        return cls(cls.PRECONDITION_FAILED)


class JobStore:
    """Interface every job store implements."""

    def get(self, job_id: str) -> Optional[Job]:
        raise NotImplementedError

    def put_new(self, job: Job) -> WriteResult:
        raise NotImplementedError

    def conditional_update(
        self,
        job_id: str,
        set_fields: Dict[str, Any],
        remove_fields: Iterable[str],
        condition: Condition,
    ) -> WriteResult:
        raise NotImplementedError

    def conditional_delete(self, job_id: str, condition: Condition) -> WriteResult:
        raise NotImplementedError

    def scan(self, condition: Optional[Condition] = None) -> List[Job]:
        raise NotImplementedError

    def query_by_owner(self, owner_id: str) -> List[Job]:
        raise NotImplementedError

    def query_by_claimer(self, claimer_id: str) -> List[Job]:
        raise NotImplementedError

    def query_by_status(self, status: str) -> List[Job]:
        raise NotImplementedError


class DynamoJobStore(JobStore):
    """JobStore on a DynamoDB table keyed by jobId."""

    def __init__(
        self,
        table=None,
        owner_index: str = None,
        claimer_index: str = None,
        status_index: str = None,
    ):
        self.table = table if table is not None else get_table(config.JOBS_TABLE)
        self.owner_index = owner_index or config.OWNER_INDEX
        self.claimer_index = claimer_index or config.CLAIMER_INDEX
        self.status_index = status_index or config.STATUS_INDEX

    def get(self, job_id: str) -> Optional[Job]:
        try:
            response = self.table.get_item(Key={'jobId': job_id}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error getting job {job_id}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e

        item = response.get('Item')
        return Job.from_item(item) if item else None

    def put_new(self, job: Job) -> WriteResult:
        try:
            self.table.put_item(
                Item=job.to_item(),
                ConditionExpression='attribute_not_exists(jobId)'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == CONDITIONAL_CHECK_FAILED:
                return WriteResult.precondition_failed()
            logger.error(f"Error saving job {job.jobId}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e
        except BotoCoreError as e:
            logger.error(f"Error saving job {job.jobId}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e

        logger.info(f"Job saved to database: {job.jobId}")
        return WriteResult.success(job)

    def conditional_update(self, job_id, set_fields, remove_fields, condition) -> WriteResult:
        update_expression, names, values = build_update_expression(set_fields, remove_fields)
        params = {
            'Key': {'jobId': job_id},
            'UpdateExpression': update_expression,
            'ConditionExpression': to_dynamo_condition(condition),
            'ExpressionAttributeNames': names,
            'ReturnValues': 'ALL_NEW',
        }
        if values:
            params['ExpressionAttributeValues'] = values

        try:
            response = self.table.update_item(**params)
        except ClientError as e:
            if e.response['Error']['Code'] == CONDITIONAL_CHECK_FAILED:
                return WriteResult.precondition_failed()
            logger.error(f"Error updating job {job_id}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e
        except BotoCoreError as e:
            logger.error(f"Error updating job {job_id}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e

        return WriteResult.success(Job.from_item(response['Attributes']))

    def conditional_delete(self, job_id: str, condition: Condition) -> WriteResult:
        try:
            self.table.delete_item(
                Key={'jobId': job_id},
                ConditionExpression=to_dynamo_condition(condition)
            )
        except ClientError as e:
            if e.response['Error']['Code'] == CONDITIONAL_CHECK_FAILED:
                return WriteResult.precondition_failed()
            logger.error(f"Error deleting job {job_id}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e
        except BotoCoreError as e:
            logger.error(f"Error deleting job {job_id}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e

        return WriteResult.success()

    def scan(self, condition: Optional[Condition] = None) -> List[Job]:
        filter_expression = to_dynamo_condition(condition) if condition is not None else None
        try:
            items = scan_all(self.table, filter_expression)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning jobs: {e}")
            raise StoreUnavailableError('Job store unavailable') from e
        return [Job.from_item(item) for item in items]

    def _query(self, index_name: str, key_name: str, key_value: str) -> List[Job]:
        try:
            items = query_all(self.table, index_name, key_name, key_value)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error querying {index_name} for {key_value}: {e}")
            raise StoreUnavailableError('Job store unavailable') from e
        return [Job.from_item(item) for item in items]

    def query_by_owner(self, owner_id: str) -> List[Job]:
        return self._query(self.owner_index, 'ownerId', owner_id)

    def query_by_claimer(self, claimer_id: str) -> List[Job]:
        return self._query(self.claimer_index, 'claimerId', claimer_id)

    def query_by_status(self, status: str) -> List[Job]:
        return self._query(self.status_index, 'status', status)
