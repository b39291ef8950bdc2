"""
Production wiring.

Lambda containers are reused between invocations, so every component is
built once on first use and cached for the life of the container.
"""
from functools import lru_cache

from .auth import CognitoIdentityResolver
from .categories import DynamoCategoryResolver
from .config import config
from .engine import JobLifecycleEngine
from .events import EventBridgeBus, EventEmitter, NotificationQueue
from .job_store import DynamoJobStore
from .sweepers import ExpirySweeper, TimeoutSweeper

EXPIRY_GROUP_ID = 'job-expiry'
TIMEOUT_GROUP_ID = 'job-timeout'


@lru_cache(maxsize=None)
def get_job_store() -> DynamoJobStore:
    return DynamoJobStore()


@lru_cache(maxsize=None)
def get_event_bus() -> EventBridgeBus:
    return EventBridgeBus()


@lru_cache(maxsize=None)
def get_engine() -> JobLifecycleEngine:
    return JobLifecycleEngine(
        store=get_job_store(),
        emitter=EventEmitter(get_event_bus()),
        categories=DynamoCategoryResolver(),
    )


@lru_cache(maxsize=None)
def get_identity_resolver() -> CognitoIdentityResolver:
    return CognitoIdentityResolver()


def _sweeper_emitter(queue_url: str, group_id: str) -> EventEmitter:
    queue = NotificationQueue(queue_url, group_id) if queue_url else None
    return EventEmitter(get_event_bus(), queue)


@lru_cache(maxsize=None)
def get_expiry_sweeper() -> ExpirySweeper:
    return ExpirySweeper(
        get_job_store(),
        _sweeper_emitter(config.JOB_EXPIRY_QUEUE_URL, EXPIRY_GROUP_ID),
    )


@lru_cache(maxsize=None)
def get_timeout_sweeper() -> TimeoutSweeper:
    return TimeoutSweeper(
        get_job_store(),
        _sweeper_emitter(config.JOB_TIMEOUT_QUEUE_URL, TIMEOUT_GROUP_ID),
    )
