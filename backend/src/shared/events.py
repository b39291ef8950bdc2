"""
Lifecycle events.

One event is published per committed transition. Events carry enough
denormalized job data for notification and payment consumers to act without
reading the jobs table. Delivery is at-least-once, so each event carries an
idempotency key consumers deduplicate on.

Publishing never raises: the transition is already committed and a lost
notification must not turn it into a failed request.
"""
import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import boto3

from .config import config
from .logging import logger
from .models import CategoryInfo, Caller, EventType, Job
from .sqs import send_message
from .transitions import Transition
from .utils import DecimalEncoder

EVENT_VERSION = 1


@dataclass(frozen=True)
class LifecycleEvent:
    """An immutable, versioned record of one job transition."""
    event_type: str
    job_id: str
    occurred_at: str
    detail: Mapping[str, Any]
    version: int = EVENT_VERSION

    @classmethod
    def create(cls, event_type: str, job_id: str, occurred_at: str, detail: Dict[str, Any]):
        return cls(event_type, job_id, occurred_at, MappingProxyType(dict(detail)))

    @property
    def idempotency_key(self) -> str:
        return f"{self.job_id}:{self.event_type}:{self.occurred_at}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'eventType': self.event_type,
            'version': self.version,
            'jobId': self.job_id,
            'occurredAt': self.occurred_at,
            'idempotencyKey': self.idempotency_key,
            **self.detail,
        }


def _base_detail(job: Job) -> Dict[str, Any]:
    return {
        'ownerId': job.ownerId,
        'categoryId': job.categoryId,
        'jobName': job.name,
        'payAmount': job.payAmount,
    }


def build_event(
    transition: Transition,
    category: Optional[CategoryInfo] = None,
    actor: Optional[Caller] = None,
) -> LifecycleEvent:
    """Build the event for a committed transition."""
    before, after = transition.before, transition.after
    job = after or before
    detail = _base_detail(job)
    event_type = transition.event_type

    if event_type == EventType.CREATED:
        category = category or CategoryInfo(job.categoryId)
        detail.update({
            'categoryName': category.name,
            'snsTopicArn': category.snsTopicArn,
            'description': job.description,
            'timeToCompleteSeconds': job.timeToCompleteSeconds,
            'status': job.status,
            'expiryDate': job.expiryDate,
            'createdAt': job.createdAt,
            'relisted': before is not None,
        })
    elif event_type == EventType.CLAIMED:
        detail.update({
            'claimerId': job.claimerId,
            'claimedAt': job.claimedAt,
            'submissionDeadline': job.submissionDeadline,
        })
    elif event_type == EventType.SUBMITTED:
        detail.update({
            'claimerId': job.claimerId,
            'claimerEmail': actor.email if actor else None,
            'submittedAt': job.submittedAt,
        })
    elif event_type == EventType.APPROVED:
        detail.update({
            'claimerId': job.claimerId,
            'approvedAt': job.approvedAt,
            'approvedBy': job.approvedBy,
            'approvalMessage': job.approvalMessage,
        })
    elif event_type == EventType.REJECTED:
        # The claim is gone after a reject: report who was displaced.
        detail.update({
            'claimerId': before.claimerId,
            'rejectedAt': job.rejectedAt,
            'rejectedBy': job.rejectedBy,
            'rejectionReason': job.rejectionMessage,
        })
    elif event_type == EventType.EXPIRED:
        detail.update({
            'description': job.description,
            'expiryDate': job.expiryDate,
            'expiredAt': job.expiredAt,
            'originalStatus': before.status,
            'claimerId': job.claimerId,
        })
    elif event_type == EventType.TIMED_OUT:
        detail.update({
            'claimerId': before.claimerId,
            'description': job.description,
            'claimedAt': before.claimedAt,
            'submissionDeadline': before.submissionDeadline,
            'timedOutAt': job.timedOutAt,
            'timeToCompleteSeconds': job.timeToCompleteSeconds,
        })
    else:
        raise ValueError(f"Transition {transition.action} has no event")

    return LifecycleEvent.create(event_type, job.jobId, transition.timestamp, detail)


class EventBridgeBus:
    """Publishes lifecycle events to an EventBridge bus."""

    def __init__(self, client=None, bus_name: str = None, source: str = None):
        self.client = client or boto3.client('events', region_name=config.AWS_REGION)
        self.bus_name = bus_name or config.EVENT_BUS_NAME
        self.source = source or config.EVENT_SOURCE

    def publish(self, event: LifecycleEvent) -> bool:
        try:
            response = self.client.put_events(Entries=[{
                'Source': self.source,
                'DetailType': event.event_type,
                'Detail': json.dumps(event.to_dict(), cls=DecimalEncoder),
                'EventBusName': self.bus_name,
            }])
        except Exception as e:
            logger.error(f"Error publishing {event.event_type} event for job {event.job_id}: {e}")
            return False

        if response.get('FailedEntryCount', 0) > 0:
            logger.error(f"Failed to publish {event.event_type} event: {response.get('Entries')}")
            return False

        logger.info(f"Successfully published {event.event_type} event for job: {event.job_id}")
        return True


class NotificationQueue:
    """
    SQS FIFO queue feeding sweeper notification processing.

    Messages are deduplicated on (jobId, transition timestamp), so a sweep
    that re-sends after a partial failure does not notify twice.
    """

    def __init__(self, queue_url: str, group_id: str, client=None):
        self.queue_url = queue_url
        self.group_id = group_id
        self.client = client

    @staticmethod
    def deduplication_id(event: LifecycleEvent) -> str:
        return f"{event.job_id}-{event.occurred_at}"

    def enqueue(self, event: LifecycleEvent) -> bool:
        return send_message(
            self.queue_url,
            event.to_dict(),
            group_id=self.group_id,
            deduplication_id=self.deduplication_id(event),
            client=self.client
        )


class EventEmitter:
    """Fans a committed transition out to the bus and, for sweepers, the queue."""

    def __init__(self, bus, queue: Optional[NotificationQueue] = None):
        self.bus = bus
        self.queue = queue

    def emit(self, event: LifecycleEvent) -> bool:
        """Publish ``event``. Returns False if any delivery failed. Never raises."""
        try:
            published = self.bus.publish(event)
        except Exception as e:
            logger.error(f"Event bus error for {event.idempotency_key}: {e}")
            published = False

        if self.queue is not None:
            try:
                published = self.queue.enqueue(event) and published
            except Exception as e:
                logger.error(f"Notification queue error for {event.idempotency_key}: {e}")
                published = False

        if not published:
            logger.warning(f"Event {event.idempotency_key} was not fully delivered")
        return published

    def emit_transition(
        self,
        transition: Transition,
        category: Optional[CategoryInfo] = None,
        actor: Optional[Caller] = None,
    ) -> bool:
        if transition.event_type is None:
            return False
        try:
            event = build_event(transition, category=category, actor=actor)
        except Exception as e:
            logger.error(f"Error building event for job {transition.job_id}: {e}")
            return False
        return self.emit(event)
