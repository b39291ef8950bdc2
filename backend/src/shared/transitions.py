"""
Job state machine.

Each ``plan_*`` function looks at the current job row and decides whether the
requested action is legal. When it is, it returns a Transition describing the
attributes to set and remove, the event to publish and the condition the store
must still find true at write time. When it is not, it raises the matching
domain error.

Nothing in here touches storage: the same plan is applied by the DynamoDB
store in production and by the in-memory store in tests.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from .errors import ConflictError, ConflictReason, ForbiddenError
from .models import (
    ANNOTATION_FIELDS,
    CLAIM_FIELDS,
    Action,
    Caller,
    EventType,
    Job,
    JobStatus,
)
from .utils import format_timestamp, next_timestamp, parse_timestamp

# DynamoDB TTL housekeeping deletes rows one day after the posting deadline
TTL_GRACE = timedelta(days=1)


# =============================================================================
# Conditions
# =============================================================================

class Condition:
    """A predicate over a stored job item."""

    def evaluate(self, item: Optional[Dict[str, Any]]) -> bool:
        raise NotImplementedError

    def __and__(self, other: 'Condition') -> 'Condition':
        return AllOf((self, other))

    def __or__(self, other: 'Condition') -> 'Condition':
        return AnyOf((self, other))


@dataclass(frozen=True)
class Equals(Condition):
    attr: str
    value: Any

    def evaluate(self, item):
        return item is not None and self.attr in item and item[self.attr] == self.value


@dataclass(frozen=True)
class OneOf(Condition):
    attr: str
    values: Tuple[Any, ...]

    def evaluate(self, item):
        return item is not None and item.get(self.attr) in self.values


@dataclass(frozen=True)
class Missing(Condition):
    attr: str

    def evaluate(self, item):
        return item is None or item.get(self.attr) is None


@dataclass(frozen=True)
class Before(Condition):
    """attr < value. Timestamps compare lexically."""
    attr: str
    value: Any

    def evaluate(self, item):
        return item is not None and item.get(self.attr) is not None and item[self.attr] < self.value


@dataclass(frozen=True)
class After(Condition):
    """attr > value. Timestamps compare lexically."""
    attr: str
    value: Any

    def evaluate(self, item):
        return item is not None and item.get(self.attr) is not None and item[self.attr] > self.value


@dataclass(frozen=True)
class AllOf(Condition):
    conditions: Tuple[Condition, ...]

    def evaluate(self, item):
        return all(c.evaluate(item) for c in self.conditions)


@dataclass(frozen=True)
class AnyOf(Condition):
    conditions: Tuple[Condition, ...]

    def evaluate(self, item):
        return any(c.evaluate(item) for c in self.conditions)


# =============================================================================
# Transitions
# =============================================================================

@dataclass(frozen=True)
class Transition:
    """A planned, not yet applied, change to one job."""
    action: str
    job_id: str
    condition: Condition
    before: Optional[Job] = None
    after: Optional[Job] = None
    set_fields: Dict[str, Any] = field(default_factory=dict)
    remove_fields: Tuple[str, ...] = ()
    event_type: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def is_create(self) -> bool:
        return self.before is None

    @property
    def is_delete(self) -> bool:
        return self.after is None


def _update(
    action: str,
    job: Job,
    condition: Condition,
    timestamp: str,
    set_fields: Dict[str, Any],
    remove_fields: Iterable[str] = (),
    event_type: Optional[str] = None,
) -> Transition:
    set_fields = dict(set_fields, updatedAt=timestamp)
    # Remove regardless of what the read saw: a racing writer may have set a
    # field since, and REMOVE of a missing attribute is a no-op.
    remove = tuple(name for name in dict.fromkeys(remove_fields) if name not in set_fields)
    return Transition(
        action=action,
        job_id=job.jobId,
        condition=condition,
        before=job,
        after=job.with_changes(set_fields, remove),
        set_fields=set_fields,
        remove_fields=remove,
        event_type=event_type,
        timestamp=timestamp,
    )


def _is_past(value: Optional[str], now: datetime) -> bool:
    return value is not None and parse_timestamp(value) < now


def _ttl_for(expiry: datetime) -> int:
    return int((expiry + TTL_GRACE).timestamp())


def is_expired(job: Job, now: datetime) -> bool:
    """True when the posting deadline has passed."""
    return _is_past(job.expiryDate, now)


def is_owner(job: Job, caller: Caller) -> bool:
    return job.ownerId == caller.user_id


def can_review(job: Job, caller: Caller) -> bool:
    return is_owner(job, caller) or caller.is_admin


def _require_owner(job: Job, caller: Caller) -> None:
    if not is_owner(job, caller):
        raise ForbiddenError('Job does not belong to you')


def _require_reviewer(job: Job, caller: Caller) -> None:
    if not can_review(job, caller):
        raise ForbiddenError('Only the job owner or an admin can review this job')


def _require_status(job: Job, allowed: Sequence[str], verb: str) -> None:
    if job.status not in allowed:
        raise ConflictError(
            f"Job cannot be {verb} in status '{job.status}'",
            ConflictReason.WRONG_STATUS,
        )


def plan_create(
    job_id: str,
    owner: Caller,
    request: Dict[str, Any],
    now: datetime,
) -> Transition:
    """Plan a brand new open job from a validated create request."""
    timestamp = format_timestamp(now)
    expiry = now + timedelta(seconds=request['expirySeconds'])
    job = Job(
        jobId=job_id,
        ownerId=owner.user_id,
        categoryId=request['categoryId'],
        name=request['name'],
        description=request['description'],
        payAmount=request['payAmount'],
        timeToCompleteSeconds=request['timeToCompleteSeconds'],
        status=JobStatus.OPEN,
        createdAt=timestamp,
        updatedAt=timestamp,
        expiryDate=format_timestamp(expiry),
        ttl=_ttl_for(expiry),
    )
    return Transition(
        action=Action.CREATE,
        job_id=job_id,
        condition=Missing('jobId'),
        after=job,
        set_fields=job.to_item(),
        event_type=EventType.CREATED,
        timestamp=timestamp,
    )


def plan_claim(job: Job, caller: Caller, now: datetime) -> Transition:
    """Open → claimed, starting the submission countdown."""
    if job.status in JobStatus.CLAIM_HELD or (job.status == JobStatus.OPEN and job.has_claim):
        raise ConflictError('Job has already been claimed by another user',
                            ConflictReason.ALREADY_CLAIMED)
    _require_status(job, (JobStatus.OPEN,), 'claimed')
    if not job.expiryDate or parse_timestamp(job.expiryDate) <= now:
        raise ConflictError('Job has expired', ConflictReason.DEADLINE_PASSED)

    now_iso = format_timestamp(now)
    deadline = now + timedelta(seconds=job.timeToCompleteSeconds)
    condition = (
        Equals('status', JobStatus.OPEN)
        & Missing('claimerId')
        & After('expiryDate', now_iso)
    )
    return _update(
        Action.CLAIM, job, condition, next_timestamp(now, job.updatedAt),
        {
            'status': JobStatus.CLAIMED,
            'claimerId': caller.user_id,
            'claimedAt': now_iso,
            'submissionDeadline': format_timestamp(deadline),
        },
        event_type=EventType.CLAIMED,
    )


def plan_submit(job: Job, caller: Caller, now: datetime) -> Transition:
    """Claimed → submitted, by the claimer, before the submission deadline."""
    if job.claimerId != caller.user_id:
        if job.status == JobStatus.CLAIMED:
            raise ForbiddenError('Job is not claimed by you')
        raise ConflictError(
            f"Job cannot be submitted in status '{job.status}'",
            ConflictReason.WRONG_STATUS,
        )
    _require_status(job, (JobStatus.CLAIMED,), 'submitted')
    if not job.submissionDeadline or parse_timestamp(job.submissionDeadline) <= now:
        raise ConflictError('Submission deadline has passed', ConflictReason.DEADLINE_PASSED)

    now_iso = format_timestamp(now)
    condition = (
        Equals('status', JobStatus.CLAIMED)
        & Equals('claimerId', caller.user_id)
        & After('submissionDeadline', now_iso)
    )
    return _update(
        Action.SUBMIT, job, condition, next_timestamp(now, job.updatedAt),
        {'status': JobStatus.SUBMITTED, 'submittedAt': now_iso},
        event_type=EventType.SUBMITTED,
    )


def _review_condition(job: Job) -> Condition:
    # Pin the submission under review so a reject/re-claim/re-submit cycle
    # between read and write is not approved unseen.
    return (
        Equals('status', JobStatus.SUBMITTED)
        & Equals('claimerId', job.claimerId)
        & Equals('submittedAt', job.submittedAt)
    )


def plan_approve(job: Job, caller: Caller, now: datetime, message: Optional[str] = None) -> Transition:
    """Submitted → approved, by the owner or an admin."""
    _require_reviewer(job, caller)
    _require_status(job, (JobStatus.SUBMITTED,), 'approved')

    timestamp = next_timestamp(now, job.updatedAt)
    set_fields = {
        'status': JobStatus.APPROVED,
        'approvedAt': timestamp,
        'approvedBy': caller.user_id,
    }
    remove = ['rejectionMessage']
    if message:
        set_fields['approvalMessage'] = message
    else:
        remove.append('approvalMessage')
    return _update(
        Action.APPROVE, job, _review_condition(job), timestamp,
        set_fields, remove, event_type=EventType.APPROVED,
    )


def plan_reject(job: Job, caller: Caller, now: datetime, reason: Optional[str] = None) -> Transition:
    """Submitted → open again, clearing the claim. The reason stays on the job."""
    _require_reviewer(job, caller)
    _require_status(job, (JobStatus.SUBMITTED,), 'rejected')

    timestamp = next_timestamp(now, job.updatedAt)
    set_fields = {
        'status': JobStatus.OPEN,
        'rejectedAt': timestamp,
        'rejectedBy': caller.user_id,
    }
    remove = list(CLAIM_FIELDS) + ['approvalMessage']
    if reason:
        set_fields['rejectionMessage'] = reason
    else:
        remove.append('rejectionMessage')
    return _update(
        Action.REJECT, job, _review_condition(job), timestamp,
        set_fields, remove, event_type=EventType.REJECTED,
    )


def plan_edit(job: Job, caller: Caller, now: datetime, changes: Dict[str, Any]) -> Transition:
    """
    Update the mutable fields of an open job.

    ``changes`` is a validated edit request: any of name, description,
    payAmount, timeToCompleteSeconds and expirySeconds.
    """
    _require_owner(job, caller)
    _require_status(job, (JobStatus.OPEN,), 'edited')

    set_fields = {k: v for k, v in changes.items() if k != 'expirySeconds'}
    if 'expirySeconds' in changes:
        expiry = now + timedelta(seconds=changes['expirySeconds'])
        set_fields['expiryDate'] = format_timestamp(expiry)
        set_fields['ttl'] = _ttl_for(expiry)

    condition = (
        Equals('status', JobStatus.OPEN)
        & Equals('ownerId', caller.user_id)
        & Missing('claimerId')
    )
    return _update(Action.EDIT, job, condition, next_timestamp(now, job.updatedAt), set_fields)


def plan_delete(job: Job, caller: Caller) -> Transition:
    """Remove an open job. Only the owner may do this."""
    _require_owner(job, caller)
    _require_status(job, (JobStatus.OPEN,), 'deleted')

    condition = (
        Equals('status', JobStatus.OPEN)
        & Equals('ownerId', caller.user_id)
        & Missing('claimerId')
    )
    return Transition(action=Action.DELETE, job_id=job.jobId, condition=condition, before=job)


def is_relistable(job: Job, now: datetime) -> bool:
    """Approved and expired jobs relist, as do active postings past their deadline."""
    if job.status in JobStatus.TERMINAL:
        return True
    return job.status in JobStatus.ACTIVE and is_expired(job, now)


def plan_relist(job: Job, caller: Caller, now: datetime, window: timedelta) -> Transition:
    """Put a finished or lapsed posting back on the board with a new deadline."""
    _require_owner(job, caller)
    if not is_relistable(job, now):
        raise ConflictError(
            f"Job cannot be relisted. Current status: {job.status} (not expired)",
            ConflictReason.WRONG_STATUS,
        )

    now_iso = format_timestamp(now)
    expiry = now + window
    condition = Equals('ownerId', caller.user_id) & (
        OneOf('status', JobStatus.TERMINAL)
        | (OneOf('status', JobStatus.ACTIVE) & Before('expiryDate', now_iso))
    )
    timestamp = next_timestamp(now, job.updatedAt)
    return _update(
        Action.RELIST, job, condition, timestamp,
        {
            'status': JobStatus.OPEN,
            'expiryDate': format_timestamp(expiry),
            'ttl': _ttl_for(expiry),
            'relistedAt': timestamp,
        },
        CLAIM_FIELDS + ANNOTATION_FIELDS,
        event_type=EventType.CREATED,
    )


def plan_expire(job: Job, now: datetime) -> Transition:
    """Active posting past its expiryDate → expired. Claim fields are kept."""
    _require_status(job, JobStatus.ACTIVE, 'expired')
    if not is_expired(job, now):
        raise ConflictError('Job has not reached its expiry date', ConflictReason.WRONG_STATUS)

    now_iso = format_timestamp(now)
    condition = OneOf('status', JobStatus.ACTIVE) & Before('expiryDate', now_iso)
    return _update(
        Action.EXPIRE, job, condition, next_timestamp(now, job.updatedAt),
        {'status': JobStatus.EXPIRED, 'expiredAt': now_iso},
        event_type=EventType.EXPIRED,
    )


def plan_timeout(job: Job, now: datetime) -> Transition:
    """Claimed job past its submissionDeadline → open, claim cleared."""
    _require_status(job, (JobStatus.CLAIMED,), 'timed out')
    if not _is_past(job.submissionDeadline, now):
        raise ConflictError('Submission deadline has not passed', ConflictReason.WRONG_STATUS)

    now_iso = format_timestamp(now)
    condition = (
        Equals('status', JobStatus.CLAIMED)
        & Equals('claimerId', job.claimerId)
        & Before('submissionDeadline', now_iso)
    )
    return _update(
        Action.TIMEOUT, job, condition, next_timestamp(now, job.updatedAt),
        {'status': JobStatus.OPEN, 'timedOutAt': now_iso},
        CLAIM_FIELDS,
        event_type=EventType.TIMED_OUT,
    )
