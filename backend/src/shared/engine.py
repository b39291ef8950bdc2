"""
Job lifecycle engine.

Every command follows the same path: load the job, plan the transition,
apply it as one conditional write, publish the event. Owner, admin and seeker
requests all go through here; who may do what is decided by the plan
functions in transitions.py.
"""
import uuid
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

from .errors import (
    ConflictError,
    ConflictReason,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    JobError,
    NotFoundError,
)
from .events import EventEmitter
from .job_store import JobStore, WriteResult
from .listing import dedupe, filter_jobs, is_available, job_statistics, paginate, sort_jobs
from .logging import logger
from .models import Caller, CategoryInfo, Job, JobStatus
from .transitions import (
    Transition,
    plan_approve,
    plan_claim,
    plan_create,
    plan_delete,
    plan_edit,
    plan_reject,
    plan_relist,
    plan_submit,
)
from .utils import utc_now
from .validation import parse_create_request, parse_edit_request

LIST_VIEWS = ('posted', 'claimed', 'completed', 'available')


class JobLifecycleEngine:
    """Command and query entry point for jobs."""

    def __init__(
        self,
        store: JobStore,
        emitter: EventEmitter,
        categories=None,
        clock: Callable = utc_now,
        id_factory: Callable[[], str] = None,
    ):
        self.store = store
        self.emitter = emitter
        self.categories = categories
        self.clock = clock
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, caller: Caller, body: dict) -> Job:
        request = parse_create_request(body)
        category = self._category(request['categoryId'], required=True)

        transition = plan_create(self.id_factory(), caller, request, self.clock())
        result = self.store.put_new(transition.after)
        if not result.ok:
            raise ConflictError('Job with this ID already exists', ConflictReason.WRONG_STATUS)

        logger.info(f"Created job {transition.job_id} for owner {caller.user_id}")
        self.emitter.emit_transition(transition, category=category, actor=caller)
        return transition.after

    def edit(self, caller: Caller, job_id: str, body: dict) -> Job:
        changes = parse_edit_request(body)
        return self._execute(
            job_id, caller, lambda job, now: plan_edit(job, caller, now, changes))

    def delete(self, caller: Caller, job_id: str) -> None:
        self._execute(job_id, caller, lambda job, now: plan_delete(job, caller))

    def claim(self, caller: Caller, job_id: str) -> Job:
        return self._execute(job_id, caller, lambda job, now: plan_claim(job, caller, now))

    def submit(self, caller: Caller, job_id: str) -> Job:
        return self._execute(job_id, caller, lambda job, now: plan_submit(job, caller, now))

    def approve(self, caller: Caller, job_id: str, message: Optional[str] = None) -> Job:
        return self._execute(
            job_id, caller, lambda job, now: plan_approve(job, caller, now, message))

    def reject(self, caller: Caller, job_id: str, reason: Optional[str] = None) -> Job:
        return self._execute(
            job_id, caller, lambda job, now: plan_reject(job, caller, now, reason))

    def relist(self, caller: Caller, job_id: str, window: timedelta) -> Job:
        return self._execute(
            job_id, caller, lambda job, now: plan_relist(job, caller, now, window),
            with_category=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def view(self, caller: Caller, job_id: str) -> Job:
        job = self._load(job_id)
        if (job.status == JobStatus.OPEN
                or caller.is_admin
                or job.ownerId == caller.user_id
                or job.claimerId == caller.user_id):
            return job
        raise ForbiddenError('You do not have access to this job')

    def list_jobs(
        self,
        caller: Caller,
        view: str = 'posted',
        statuses: Iterable[str] = (),
        category_id: Optional[str] = None,
        query: Optional[str] = None,
        sort_by: str = 'newest',
        sort_order: str = 'desc',
        offset: int = 0,
        limit: int = 20,
    ) -> dict:
        view = (view or 'posted').lower()
        if view not in LIST_VIEWS:
            raise InvalidInputError(f"type must be one of: {', '.join(LIST_VIEWS)}")

        jobs = filter_jobs(self._jobs_for_view(caller, view), statuses, category_id, query)
        page = paginate(sort_jobs(jobs, sort_by, sort_order), offset, limit)
        page['filters'] = {
            'type': view,
            'status': ','.join(statuses) or 'all',
            'categoryId': category_id or 'all',
            'query': query or '',
        }
        return page

    def statistics(self, caller: Caller) -> dict:
        if not caller.is_admin:
            raise ForbiddenError('Forbidden: Only admins can view statistics')
        return job_statistics(self.store.scan(), self.clock())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _jobs_for_view(self, caller: Caller, view: str) -> List[Job]:
        if view == 'posted':
            return self.store.query_by_owner(caller.user_id)
        if view == 'claimed':
            return [job for job in self.store.query_by_claimer(caller.user_id)
                    if job.status in JobStatus.CLAIM_HELD]
        if view == 'completed':
            return [job for job in self.store.query_by_claimer(caller.user_id)
                    if job.status == JobStatus.APPROVED]
        now = self.clock()
        return [job for job in dedupe(self.store.query_by_status(JobStatus.OPEN))
                if is_available(job, now)]

    def _load(self, job_id: str) -> Job:
        job = self.store.get(job_id)
        if job is None:
            raise NotFoundError('Job not found')
        return job

    def _category(self, category_id: str, required: bool) -> Optional[CategoryInfo]:
        if self.categories is None:
            return None
        if required:
            category = self.categories.resolve(category_id)
            if category is None:
                raise NotFoundError(f"Category not found: {category_id}")
            return category
        try:
            return self.categories.resolve(category_id)
        except InternalError as e:
            logger.warning(f"Continuing without category {category_id}: {e}")
            return None

    def _apply(self, transition: Transition) -> WriteResult:
        if transition.is_delete:
            return self.store.conditional_delete(transition.job_id, transition.condition)
        return self.store.conditional_update(
            transition.job_id,
            transition.set_fields,
            transition.remove_fields,
            transition.condition,
        )

    def _execute(self, job_id: str, caller: Caller, plan, with_category: bool = False) -> Optional[Job]:
        job = self._load(job_id)
        transition = plan(job, self.clock())
        category = self._category(job.categoryId, required=False) if with_category else None

        result = self._apply(transition)
        if not result.ok:
            raise self._explain_conflict(job_id, plan)

        logger.info(f"{transition.action} committed on job {job_id} by {caller.user_id}")
        if transition.event_type:
            self.emitter.emit_transition(transition, category=category, actor=caller)
        return result.job or transition.after

    def _explain_conflict(self, job_id: str, plan) -> JobError:
        """
        Work out why a conditional write lost, by re-planning against a fresh read.
        """
        fresh = self.store.get(job_id)
        if fresh is None:
            return NotFoundError('Job not found')
        try:
            plan(fresh, self.clock())
        except ForbiddenError as e:
            # The row moved to someone else's claim between our read and write
            return ConflictError(e.message, ConflictReason.NOT_OWNER)
        except JobError as e:
            return e
        return ConflictError('Job was modified concurrently', ConflictReason.WRONG_STATUS)
