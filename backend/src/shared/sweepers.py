"""
Scheduled sweepers.

Each run scans for candidate jobs, then re-plans and conditionally applies the
transition for every candidate on its own. Losing a race on one job (someone
submitted or relisted it first) is a skip, and a store error on one job is
logged and counted, so a single bad row never aborts the sweep. Only a failed
candidate scan is fatal.
"""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable

from .errors import ConflictError
from .events import EventEmitter
from .job_store import JobStore
from .logging import get_logger
from .models import Job, JobStatus
from .transitions import Before, Condition, Equals, OneOf, Transition, plan_expire, plan_timeout
from .utils import format_timestamp, utc_now

logger = get_logger('sweepers')


@dataclass
class SweepResult:
    checked: int = 0
    transitioned: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class Sweeper:
    """Base sweep loop. Subclasses supply the candidate filter and the plan."""

    name = 'sweeper'

    def __init__(self, store: JobStore, emitter: EventEmitter, clock: Callable = utc_now):
        self.store = store
        self.emitter = emitter
        self.clock = clock

    def candidate_condition(self, now_iso: str) -> Condition:
        raise NotImplementedError

    def plan(self, job: Job, now: datetime) -> Transition:
        raise NotImplementedError

    def run(self) -> SweepResult:
        now = self.clock()
        candidates = self.store.scan(self.candidate_condition(format_timestamp(now)))
        logger.info(f"{self.name}: found {len(candidates)} candidate jobs")

        result = SweepResult(checked=len(candidates))
        for job in candidates:
            self._process(job, now, result)

        logger.info(
            f"{self.name} complete: {result.transitioned} transitioned, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _process(self, job: Job, now: datetime, result: SweepResult) -> None:
        try:
            transition = self.plan(job, now)
        except ConflictError as e:
            logger.info(f"{self.name}: skipping job {job.jobId}: {e.message}")
            result.skipped += 1
            return
        except Exception as e:
            # A malformed row must not abort the sweep for every other job
            logger.error(f"{self.name}: cannot plan job {job.jobId}: {e}")
            result.failed += 1
            return

        try:
            outcome = self.store.conditional_update(
                transition.job_id,
                transition.set_fields,
                transition.remove_fields,
                transition.condition,
            )
        except Exception as e:
            logger.error(f"{self.name}: error processing job {job.jobId}: {e}")
            result.failed += 1
            return

        if not outcome.ok:
            logger.info(f"{self.name}: job {job.jobId} changed before it could be updated")
            result.skipped += 1
            return

        result.transitioned += 1
        self.emitter.emit_transition(transition)


class ExpirySweeper(Sweeper):
    """Moves active postings past their expiryDate to expired."""

    name = 'expiry sweep'

    def candidate_condition(self, now_iso):
        return OneOf('status', JobStatus.ACTIVE) & Before('expiryDate', now_iso)

    def plan(self, job, now):
        return plan_expire(job, now)


class TimeoutSweeper(Sweeper):
    """Returns claimed jobs past their submissionDeadline to open."""

    name = 'timeout sweep'

    def candidate_condition(self, now_iso):
        return Equals('status', JobStatus.CLAIMED) & Before('submissionDeadline', now_iso)

    def plan(self, job, now):
        return plan_timeout(job, now)
