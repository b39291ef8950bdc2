"""
Data models and status constants for the jobs service.
Based on the job lifecycle: open → claimed → submitted → approved, with expired as the
other terminal state and relist as the way back to open.
"""
from dataclasses import asdict, dataclass, fields, replace
from decimal import Decimal
from typing import Any, Dict, Optional


class JobStatus:
    """Job lifecycle statuses."""
    OPEN = 'open'
    CLAIMED = 'claimed'
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    EXPIRED = 'expired'

    ALL = (OPEN, CLAIMED, SUBMITTED, APPROVED, EXPIRED)
    # Statuses a posting can still expire from
    ACTIVE = (OPEN, CLAIMED, SUBMITTED)
    # Statuses holding a live claim
    CLAIM_HELD = (CLAIMED, SUBMITTED)
    TERMINAL = (APPROVED, EXPIRED)


class Action:
    """Transitions the engine knows how to plan."""
    CREATE = 'create'
    CLAIM = 'claim'
    SUBMIT = 'submit'
    APPROVE = 'approve'
    REJECT = 'reject'
    EDIT = 'edit'
    DELETE = 'delete'
    RELIST = 'relist'
    EXPIRE = 'expire'
    TIMEOUT = 'timeout'


class EventType:
    """Lifecycle event types published on the event bus."""
    CREATED = 'job.created'
    CLAIMED = 'job.claimed'
    SUBMITTED = 'job.submitted'
    APPROVED = 'job.approved'
    REJECTED = 'job.rejected'
    EXPIRED = 'job.expired'
    TIMED_OUT = 'job.timedout'


# Fields cleared together whenever a claim is reverted
CLAIM_FIELDS = ('claimerId', 'claimedAt', 'submissionDeadline', 'submittedAt')

# Annotations left behind by review, expiry and timeout transitions
ANNOTATION_FIELDS = (
    'approvalMessage', 'approvedAt', 'approvedBy',
    'rejectionMessage', 'rejectedAt', 'rejectedBy',
    'expiredAt', 'timedOutAt',
)

# Fields the owner may change while a job is open
EDITABLE_FIELDS = ('name', 'description', 'payAmount', 'timeToCompleteSeconds', 'expiryDate')


@dataclass(frozen=True)
class Caller:
    """Identity of whoever invoked a command."""
    user_id: str
    is_admin: bool = False
    email: Optional[str] = None


@dataclass(frozen=True)
class CategoryInfo:
    """Display metadata and notification topic for a job category."""
    categoryId: str
    name: str = 'Unknown'
    snsTopicArn: str = ''


@dataclass(frozen=True)
class Job:
    """
    A job row as stored in the jobs table (camelCase attribute names).

    Claim fields (claimerId, claimedAt, submissionDeadline, submittedAt) are
    live only while the job is claimed or submitted. Approved and expired rows
    may keep them as history of who last held the job.
    """
    jobId: str
    ownerId: str
    categoryId: str
    name: str
    description: str
    payAmount: Decimal
    timeToCompleteSeconds: int
    status: str
    createdAt: str
    updatedAt: str
    expiryDate: str
    claimerId: Optional[str] = None
    claimedAt: Optional[str] = None
    submissionDeadline: Optional[str] = None
    submittedAt: Optional[str] = None
    approvalMessage: Optional[str] = None
    rejectionMessage: Optional[str] = None
    approvedAt: Optional[str] = None
    approvedBy: Optional[str] = None
    rejectedAt: Optional[str] = None
    rejectedBy: Optional[str] = None
    expiredAt: Optional[str] = None
    timedOutAt: Optional[str] = None
    relistedAt: Optional[str] = None
    ttl: Optional[int] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'Job':
        """Build a Job from a DynamoDB item, ignoring unknown attributes."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in item.items() if k in known}
        data['payAmount'] = Decimal(str(data['payAmount']))
        data['timeToCompleteSeconds'] = int(data['timeToCompleteSeconds'])
        if data.get('ttl') is not None:
            data['ttl'] = int(data['ttl'])
        return cls(**data)

    def to_item(self) -> Dict[str, Any]:
        """DynamoDB item for this job. Unset attributes are omitted, not stored as NULL."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def with_changes(self, set_fields: Dict[str, Any], remove_fields=()) -> 'Job':
        """Copy of this job with attributes set and removed."""
        changes = dict(set_fields)
        for name in remove_fields:
            changes[name] = None
        return replace(self, **changes)

    @property
    def has_claim(self) -> bool:
        return self.claimerId is not None

    def to_view(self) -> Dict[str, Any]:
        """Job as returned by the API."""
        view = self.to_item()
        view.pop('ttl', None)
        return view
